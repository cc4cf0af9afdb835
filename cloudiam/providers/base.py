"""Provider-neutral types and the CspProvider protocol."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Tuple

from ..core.errors import UnimplementedError
from ..utils.constants import CspType, PolicyScope


@dataclass
class RoleDefinition:
    """Desired state of a provider role."""

    name: str
    description: Optional[str] = None
    assume_role_policy: Optional[Dict[str, Any]] = None
    path: Optional[str] = None
    max_session_duration: Optional[int] = None
    permissions_boundary: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class ProviderRole:
    name: str
    arn: str
    role_id: Optional[str] = None
    path: Optional[str] = None
    description: Optional[str] = None
    assume_role_policy: Optional[Dict[str, Any]] = None
    max_session_duration: Optional[int] = None
    permissions_boundary: Optional[str] = None
    create_date: Optional[datetime] = None
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class PolicyDefinition:
    name: str
    policy_doc: Dict[str, Any]
    description: Optional[str] = None
    path: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class PolicyInfo:
    arn: str
    name: str
    policy_id: Optional[str] = None
    description: Optional[str] = None
    policy_doc: Optional[Dict[str, Any]] = None
    path: Optional[str] = None
    default_version: Optional[str] = None
    attachment_count: int = 0
    is_attachable: bool = True
    create_date: Optional[datetime] = None
    update_date: Optional[datetime] = None


@dataclass
class PolicyFilter:
    """Provider policy listing filter; marker continues a previous page."""

    scope: PolicyScope = PolicyScope.LOCAL
    path_prefix: Optional[str] = None
    policy_usage_type: Optional[str] = None
    only_attached: bool = False
    max_items: Optional[int] = None
    marker: Optional[str] = None


@dataclass
class AssumeRoleConfig:
    role_arn: str
    role_session_name: str
    duration_seconds: Optional[int] = None
    web_identity_token: Optional[str] = None
    # SAML provider ARN for assume-with-SAML
    principal_arn: Optional[str] = None
    external_id: Optional[str] = None
    policy: Optional[str] = None
    policy_arns: List[str] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class ProviderCredential:
    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str = field(repr=False)
    expiration: datetime
    provider: CspType


@dataclass(frozen=True)
class StaticCredentials:
    """Long-lived caller keys used to sign provider calls."""

    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: Optional[str] = field(default=None, repr=False)


class CspProvider(Protocol):
    """Operations every CSP adapter offers. All calls are deadline bound."""

    csp_type: CspType

    # Roles
    async def create_role(self, definition: RoleDefinition) -> ProviderRole: ...

    async def get_role(self, role_name: str) -> ProviderRole: ...

    async def update_role(self, definition: RoleDefinition) -> ProviderRole: ...

    async def delete_role(self, role_name: str) -> None: ...

    async def attach_role_policy(self, role_name: str, policy_arn: str) -> None: ...

    async def detach_role_policy(self, role_name: str, policy_arn: str) -> None: ...

    async def list_attached_role_policies(self, role_name: str) -> List[PolicyInfo]: ...

    async def list_role_policies(self, role_name: str) -> List[str]: ...

    async def get_role_policy(self, role_name: str, policy_name: str) -> Dict[str, Any]: ...

    async def put_role_policy(
        self, role_name: str, policy_name: str, document: Dict[str, Any]
    ) -> None: ...

    async def delete_role_policy(self, role_name: str, policy_name: str) -> None: ...

    # Policies
    async def create_policy(self, definition: PolicyDefinition) -> PolicyInfo: ...

    async def get_policy(self, policy_arn: str) -> PolicyInfo: ...

    async def get_policy_document(
        self, policy_arn: str, version_id: Optional[str] = None
    ) -> Dict[str, Any]: ...

    async def update_policy(self, policy_arn: str, definition: PolicyDefinition) -> PolicyInfo: ...

    async def delete_policy(self, policy_arn: str) -> None: ...

    async def list_policies(
        self, filter: PolicyFilter
    ) -> Tuple[List[PolicyInfo], Optional[str]]: ...

    # Credentials
    async def assume_role_with_web_identity(
        self, config: AssumeRoleConfig
    ) -> ProviderCredential: ...

    async def assume_role_with_saml(
        self, config: AssumeRoleConfig, saml_assertion: str
    ) -> ProviderCredential: ...

    async def assume_role(self, config: AssumeRoleConfig) -> ProviderCredential: ...

    async def validate_credentials(self) -> Dict[str, str]: ...


class UnsupportedProvider:
    """Adapter for a CSP type whose operations are not backed yet."""

    csp_type: CspType

    def __init__(
        self,
        region: Optional[str] = None,
        credentials: Optional[StaticCredentials] = None,
        timeout: Optional[float] = None,
        client_factory: Any = None,
    ):
        self.region = region
        self.credentials = credentials
        self.timeout = timeout

    def _unsupported(self, operation: str) -> UnimplementedError:
        return UnimplementedError(
            f"{operation} is not supported for {self.csp_type.value}",
            entity="CspProvider",
            identifier=self.csp_type.value,
        )

    async def create_role(self, definition: RoleDefinition) -> ProviderRole:
        raise self._unsupported("create_role")

    async def get_role(self, role_name: str) -> ProviderRole:
        raise self._unsupported("get_role")

    async def update_role(self, definition: RoleDefinition) -> ProviderRole:
        raise self._unsupported("update_role")

    async def delete_role(self, role_name: str) -> None:
        raise self._unsupported("delete_role")

    async def attach_role_policy(self, role_name: str, policy_arn: str) -> None:
        raise self._unsupported("attach_role_policy")

    async def detach_role_policy(self, role_name: str, policy_arn: str) -> None:
        raise self._unsupported("detach_role_policy")

    async def list_attached_role_policies(self, role_name: str) -> List[PolicyInfo]:
        raise self._unsupported("list_attached_role_policies")

    async def list_role_policies(self, role_name: str) -> List[str]:
        raise self._unsupported("list_role_policies")

    async def get_role_policy(self, role_name: str, policy_name: str) -> Dict[str, Any]:
        raise self._unsupported("get_role_policy")

    async def put_role_policy(
        self, role_name: str, policy_name: str, document: Dict[str, Any]
    ) -> None:
        raise self._unsupported("put_role_policy")

    async def delete_role_policy(self, role_name: str, policy_name: str) -> None:
        raise self._unsupported("delete_role_policy")

    async def create_policy(self, definition: PolicyDefinition) -> PolicyInfo:
        raise self._unsupported("create_policy")

    async def get_policy(self, policy_arn: str) -> PolicyInfo:
        raise self._unsupported("get_policy")

    async def get_policy_document(
        self, policy_arn: str, version_id: Optional[str] = None
    ) -> Dict[str, Any]:
        raise self._unsupported("get_policy_document")

    async def update_policy(self, policy_arn: str, definition: PolicyDefinition) -> PolicyInfo:
        raise self._unsupported("update_policy")

    async def delete_policy(self, policy_arn: str) -> None:
        raise self._unsupported("delete_policy")

    async def list_policies(self, filter: PolicyFilter) -> Tuple[List[PolicyInfo], Optional[str]]:
        raise self._unsupported("list_policies")

    async def assume_role_with_web_identity(self, config: AssumeRoleConfig) -> ProviderCredential:
        raise self._unsupported("assume_role_with_web_identity")

    async def assume_role_with_saml(
        self, config: AssumeRoleConfig, saml_assertion: str
    ) -> ProviderCredential:
        raise self._unsupported("assume_role_with_saml")

    async def assume_role(self, config: AssumeRoleConfig) -> ProviderCredential:
        raise self._unsupported("assume_role")

    async def validate_credentials(self) -> Dict[str, str]:
        raise self._unsupported("validate_credentials")
