"""
Temporary credential issuance.

An IdP config is resolved and validated while the database session is open;
the session is released before the broker and provider are called, so no
transaction spans a network round trip. Issuance is never retried here.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..config.database import release
from ..core.errors import CloudIamError, InvalidArgumentError, InvalidStateError, NotFoundError
from ..models.csp_account import CspAccount
from ..models.csp_idp_config import CspIdpConfig
from ..models.csp_role import CspRole
from ..providers.base import AssumeRoleConfig, ProviderCredential, StaticCredentials
from ..providers.registry import ProviderRegistry
from ..repositories.csp_account_repo import CspAccountRepository
from ..repositories.csp_idp_config_repo import CspIdpConfigRepository
from ..repositories.csp_mapping_repo import CspMappingRepository
from ..repositories.role_repo import RoleRepository
from ..schemas.credential import IssueCredentialRequest, TempCredential
from ..schemas.csp_idp_config import OidcIdpConfig, SamlIdpConfig, SecretKeyIdpConfig, parse_idp_config
from ..utils.constants import AuthMethod, CspType
from ..utils.logger import get_logger
from .csp_idp_config_service import reveal_secrets, static_credentials
from .identity_broker import IdentityBroker
from .secret_cipher import SecretCipher

logger = get_logger(__name__)

IdpConfigVariant = Union[OidcIdpConfig, SamlIdpConfig, SecretKeyIdpConfig]


def normalize_duration(duration_seconds: Optional[int]) -> int:
    """Unset or zero means the default session length; anything else goes to the provider as is."""
    if not duration_seconds:
        return settings.default_session_duration_seconds
    return duration_seconds


def temp_credentials_as_static(credential: TempCredential) -> StaticCredentials:
    """Sign further provider calls with an issued temporary credential."""
    return StaticCredentials(
        access_key_id=credential.access_key_id,
        secret_access_key=credential.secret_access_key,
        session_token=credential.session_token,
    )


@dataclass
class IssuePlan:
    """Everything issuance needs once the database session is released."""

    idp_config_id: int
    auth_method: AuthMethod
    variant: IdpConfigVariant
    csp_type: CspType
    region: Optional[str]
    role_arn: str
    csp_role_id: Optional[int] = None


class CredentialService:
    """Drives the broker and provider adapter to issue temporary credentials."""

    def __init__(
        self,
        db: AsyncSession,
        registry: ProviderRegistry,
        broker: IdentityBroker,
        cipher: SecretCipher,
    ):
        self.db = db
        self.registry = registry
        self.broker = broker
        self.cipher = cipher
        self.account_repo = CspAccountRepository(db)
        self.idp_config_repo = CspIdpConfigRepository(db)
        self.role_repo = RoleRepository(db)
        self.mapping_repo = CspMappingRepository(db)

    def _plan(
        self,
        config: CspIdpConfig,
        role_arn: Optional[str],
        csp_role_id: Optional[int] = None,
    ) -> IssuePlan:
        if not config.is_active:
            raise InvalidStateError(
                f"IdP config {config.id} is inactive", entity="CspIdpConfig", identifier=config.id
            )
        account: Optional[CspAccount] = config.csp_account
        if account is None:
            raise NotFoundError("CspAccount", config.csp_account_id)
        if not role_arn:
            raise InvalidArgumentError(
                "a role identifier is required to issue a credential",
                entity="CspRole",
                identifier=csp_role_id,
            )
        variant = parse_idp_config(
            config.auth_method, account.csp_type, reveal_secrets(config.config or {}, self.cipher)
        )
        return IssuePlan(
            idp_config_id=config.id,
            auth_method=config.auth_method,
            variant=variant,
            csp_type=account.csp_type,
            region=account.region,
            role_arn=role_arn,
            csp_role_id=csp_role_id,
        )

    async def _load_config(self, idp_config_id: int) -> CspIdpConfig:
        config = await self.idp_config_repo.get_by_id(idp_config_id)
        if not config:
            raise NotFoundError("CspIdpConfig", idp_config_id)
        return config

    async def _request_credential(self, plan: IssuePlan, assume: AssumeRoleConfig) -> ProviderCredential:
        if plan.auth_method == AuthMethod.OIDC:
            token = await self.broker.get_client_credentials_token()
            assume.web_identity_token = token.web_identity_token
            provider = self.registry.get(plan.csp_type, region=plan.region)
            return await provider.assume_role_with_web_identity(assume)
        if plan.auth_method == AuthMethod.SAML:
            assertion = await self.broker.get_saml_assertion()
            assume.principal_arn = plan.variant.saml_provider_arn
            provider = self.registry.get(plan.csp_type, region=plan.region)
            return await provider.assume_role_with_saml(assume, assertion.assertion)
        provider = self.registry.get(
            plan.csp_type, region=plan.region, credentials=static_credentials(plan.variant)
        )
        return await provider.assume_role(assume)

    async def _issue(
        self,
        plan: IssuePlan,
        session_name: Optional[str],
        duration_seconds: Optional[int],
    ) -> TempCredential:
        assume = AssumeRoleConfig(
            role_arn=plan.role_arn,
            role_session_name=session_name or settings.default_session_name,
            duration_seconds=normalize_duration(duration_seconds),
        )
        try:
            issued = await self._request_credential(plan, assume)
        except CloudIamError as exc:
            logger.warning(
                "Credential issuance failed",
                idp_config_id=plan.idp_config_id,
                auth_method=plan.auth_method.value,
                role_arn=plan.role_arn,
                error=exc.__class__.__name__,
                detail=exc.message,
            )
            raise

        credential = TempCredential(
            provider=plan.csp_type,
            auth_type=plan.auth_method.auth_type,
            access_key_id=issued.access_key_id,
            secret_access_key=issued.secret_access_key,
            session_token=issued.session_token,
            region=plan.region or (settings.default_aws_region if plan.csp_type == CspType.AWS else None),
            issued_at=datetime.now(timezone.utc),
            expires_at=issued.expiration,
            is_active=True,
            role_arn=plan.role_arn,
            csp_role_id=plan.csp_role_id,
        )
        logger.info(
            "Issued temporary credential",
            idp_config_id=plan.idp_config_id,
            auth_method=plan.auth_method.value,
            role_arn=plan.role_arn,
            duration_seconds=assume.duration_seconds,
            expires_at=credential.expires_at.isoformat(),
        )
        return credential

    async def assume_role_with_idp_config(
        self,
        idp_config_id: int,
        role_arn: str,
        session_name: Optional[str] = None,
        duration_seconds: Optional[int] = None,
        csp_role_id: Optional[int] = None,
    ) -> TempCredential:
        """
        Issue a credential for role_arn through one IdP config.
        Args:
            idp_config_id: trust configuration to federate with
            role_arn: provider role identifier to assume
            session_name: provider session name, defaults to DEFAULT_SESSION_NAME
            duration_seconds: None or 0 selects the default session length
        Returns:
            TempCredential with issued_at set to now and the provider's expiry
        """
        plan = self._plan(await self._load_config(idp_config_id), role_arn, csp_role_id)
        await release(self.db)
        return await self._issue(plan, session_name, duration_seconds)

    async def issue_for_role(self, request: IssueCredentialRequest) -> List[TempCredential]:
        """
        Issue one credential per CSP role the role maps to under the auth method.
        Every target is validated before the first network call and a single
        failure fails the whole request.
        """
        if request.role_id is not None:
            role = await self.role_repo.get_by_id(request.role_id)
            identifier = request.role_id
        else:
            role = await self.role_repo.get_by_name(request.role_name)
            identifier = request.role_name
        if not role:
            raise NotFoundError("RoleMaster", identifier)

        csp_roles = await self.mapping_repo.find_csp_roles(role.id, request.auth_method)
        if request.csp_role_id is not None:
            csp_roles = [r for r in csp_roles if r.id == request.csp_role_id]
        if request.csp_type is not None:
            csp_roles = [r for r in csp_roles if r.csp_type == request.csp_type]
        if not csp_roles:
            raise NotFoundError(
                "CspRole",
                role.id,
                message=f"no CSP roles mapped to role '{role.name}' for {request.auth_method.value}",
            )

        plans = [self._plan_for_csp_role(csp_role, request.auth_method) for csp_role in csp_roles]
        await release(self.db)

        credentials = []
        for plan in plans:
            credentials.append(
                await self._issue(plan, request.session_name, request.duration_seconds)
            )
        logger.info(
            "Issued credentials for role",
            role_id=role.id,
            auth_method=request.auth_method.value,
            count=len(credentials),
        )
        return credentials

    def _plan_for_csp_role(self, csp_role: CspRole, auth_method: AuthMethod) -> IssuePlan:
        config = csp_role.csp_idp_config
        if config is None:
            raise InvalidStateError(
                f"CSP role {csp_role.id} has no IdP config", entity="CspRole", identifier=csp_role.id
            )
        if config.auth_method != auth_method:
            raise InvalidStateError(
                f"CSP role {csp_role.id} trusts {config.auth_method.value}, not {auth_method.value}",
                entity="CspRole",
                identifier=csp_role.id,
            )
        account = config.csp_account
        if account is not None and account.csp_type != csp_role.csp_type:
            raise InvalidStateError(
                f"CSP role {csp_role.id} is {csp_role.csp_type.value} but its IdP config "
                f"belongs to a {account.csp_type.value} account",
                entity="CspRole",
                identifier=csp_role.id,
            )
        if csp_role.csp_account_id is not None and csp_role.csp_account_id != config.csp_account_id:
            raise InvalidStateError(
                f"CSP role {csp_role.id} and its IdP config belong to different accounts",
                entity="CspRole",
                identifier=csp_role.id,
            )
        return self._plan(config, csp_role.iam_identifier, csp_role.id)

    async def credential_for_account(
        self, account_id: int, session_name: Optional[str] = None
    ) -> Tuple[CspAccount, TempCredential]:
        """Credential for the account's first active IdP config and its role_arn."""
        account = await self.account_repo.get_by_id(account_id)
        if not account:
            raise NotFoundError("CspAccount", account_id)
        configs = await self.idp_config_repo.get_active_by_account_id(account_id)
        if not configs:
            raise InvalidStateError(
                f"no active IdP config for CSP account {account_id}",
                entity="CspAccount",
                identifier=account_id,
            )
        config = configs[0]
        role_arn = (config.config or {}).get("role_arn")
        if not role_arn:
            raise InvalidArgumentError(
                f"IdP config {config.id} has no role_arn",
                entity="CspIdpConfig",
                identifier=config.id,
            )
        plan = self._plan(config, role_arn)
        await release(self.db)
        credential = await self._issue(plan, session_name, None)
        return account, credential
