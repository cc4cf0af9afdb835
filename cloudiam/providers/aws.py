"""
AWS adapter on boto3 IAM and STS clients.

boto3 is blocking, so every call runs in a worker thread and is bounded by
the provider timeout. botocore errors are translated to the typed errors in
``cloudiam.core.errors``.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import unquote

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)

from .base import (
    AssumeRoleConfig,
    PolicyDefinition,
    PolicyFilter,
    PolicyInfo,
    ProviderCredential,
    ProviderRole,
    RoleDefinition,
    StaticCredentials,
)
from ..config import settings
from ..core.errors import (
    AlreadyExistsError,
    CloudIamError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    ProviderError,
    ProviderUnavailableError,
)
from ..utils.constants import CspType, MAX_POLICY_VERSIONS
from ..utils.logger import get_logger

logger = get_logger(__name__)

ClientFactory = Callable[[str, str, Optional[StaticCredentials], Config], Any]

_NOT_FOUND_CODES = {"NoSuchEntity", "NoSuchEntityException"}
_ALREADY_EXISTS_CODES = {"EntityAlreadyExists", "EntityAlreadyExistsException"}
_PERMISSION_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "UnauthorizedOperation",
    "InvalidClientTokenId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "ExpiredTokenException",
    "InvalidIdentityToken",
    "IDPRejectedClaim",
}
_UNAVAILABLE_CODES = {
    "ServiceFailure",
    "ServiceUnavailable",
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "IDPCommunicationError",
}
_INVALID_ARGUMENT_CODES = {
    "ValidationError",
    "InvalidInput",
    "MalformedPolicyDocument",
    "MalformedPolicyDocumentException",
    "InvalidParameterValue",
    "PackedPolicyTooLarge",
    "InvalidAuthorizationMessageException",
}


def boto3_client_factory(
    service_name: str,
    region_name: str,
    credentials: Optional[StaticCredentials],
    config: Config,
) -> Any:
    """Build a boto3 client, signed with the caller's keys when given."""
    kwargs: Dict[str, Any] = {"region_name": region_name, "config": config}
    if credentials is not None:
        kwargs.update(
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
            aws_session_token=credentials.session_token,
        )
    return boto3.client(service_name, **kwargs)


def translate_client_error(exc: ClientError, operation: str, entity: str, identifier: Any) -> CloudIamError:
    """Map a botocore ClientError to the matching typed error."""
    error = exc.response.get("Error", {})
    code = error.get("Code", "Unknown")
    message = error.get("Message") or str(exc)
    if code in _NOT_FOUND_CODES:
        return NotFoundError(entity, identifier, message=f"{entity} not found: {message}")
    if code in _ALREADY_EXISTS_CODES:
        return AlreadyExistsError(message, entity=entity, identifier=identifier)
    if code in _INVALID_ARGUMENT_CODES:
        return InvalidArgumentError(f"{operation}: {message}", entity=entity, identifier=identifier)
    kwargs = {"provider": CspType.AWS.value, "code": code, "entity": entity, "identifier": identifier}
    if code in _PERMISSION_CODES:
        return PermissionDeniedError(f"{operation} denied: {message}", **kwargs)
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    if code in _UNAVAILABLE_CODES or (isinstance(status, int) and status >= 500):
        return ProviderUnavailableError(f"{operation} unavailable: {message}", **kwargs)
    return ProviderError(f"{operation} failed: {message}", **kwargs)


def decode_policy_document(document: Any) -> Dict[str, Any]:
    """IAM returns documents URL-encoded; boto3 usually decodes them already."""
    if isinstance(document, dict):
        return document
    if not document:
        return {}
    try:
        return json.loads(unquote(document))
    except ValueError as exc:
        raise ProviderError(
            "policy document is not valid JSON", provider=CspType.AWS.value, code="InvalidDocument"
        ) from exc


def _to_tags(tags: Dict[str, str]) -> List[Dict[str, str]]:
    return [{"Key": key, "Value": value} for key, value in tags.items()]


def _from_tags(tags: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    return {tag["Key"]: tag["Value"] for tag in tags or []}


def _role_from_response(role: Dict[str, Any]) -> ProviderRole:
    boundary = role.get("PermissionsBoundary") or {}
    assume_policy = role.get("AssumeRolePolicyDocument")
    return ProviderRole(
        name=role["RoleName"],
        arn=role["Arn"],
        role_id=role.get("RoleId"),
        path=role.get("Path"),
        description=role.get("Description"),
        assume_role_policy=decode_policy_document(assume_policy) if assume_policy else None,
        max_session_duration=role.get("MaxSessionDuration"),
        permissions_boundary=boundary.get("PermissionsBoundaryArn"),
        create_date=role.get("CreateDate"),
        tags=_from_tags(role.get("Tags")),
    )


def _policy_from_response(policy: Dict[str, Any]) -> PolicyInfo:
    return PolicyInfo(
        arn=policy.get("Arn") or policy.get("PolicyArn", ""),
        name=policy.get("PolicyName", ""),
        policy_id=policy.get("PolicyId"),
        description=policy.get("Description"),
        path=policy.get("Path"),
        default_version=policy.get("DefaultVersionId"),
        attachment_count=policy.get("AttachmentCount", 0),
        is_attachable=policy.get("IsAttachable", True),
        create_date=policy.get("CreateDate"),
        update_date=policy.get("UpdateDate"),
    )


def _credential_from_response(response: Dict[str, Any], operation: str) -> ProviderCredential:
    creds = response.get("Credentials") or {}
    if not creds.get("AccessKeyId") or not creds.get("SessionToken"):
        raise ProviderError(
            f"{operation} returned no credentials", provider=CspType.AWS.value, code="EmptyCredentials"
        )
    expiration = creds.get("Expiration")
    if isinstance(expiration, str):
        expiration = datetime.fromisoformat(expiration.replace("Z", "+00:00"))
    if expiration is not None and expiration.tzinfo is None:
        expiration = expiration.replace(tzinfo=timezone.utc)
    return ProviderCredential(
        access_key_id=creds["AccessKeyId"],
        secret_access_key=creds["SecretAccessKey"],
        session_token=creds["SessionToken"],
        expiration=expiration,
        provider=CspType.AWS,
    )


class AwsProvider:
    """AWS IAM/STS implementation of the CspProvider protocol."""

    csp_type = CspType.AWS

    def __init__(
        self,
        region: Optional[str] = None,
        credentials: Optional[StaticCredentials] = None,
        timeout: Optional[float] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.region = region or settings.default_aws_region
        self.credentials = credentials
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self._client_factory = client_factory or boto3_client_factory
        self._clients: Dict[str, Any] = {}

    def _client(self, service_name: str) -> Any:
        if service_name not in self._clients:
            config = Config(
                region_name=self.region,
                connect_timeout=self.timeout,
                read_timeout=self.timeout,
                retries={"max_attempts": 1, "mode": "standard"},
            )
            self._clients[service_name] = self._client_factory(
                service_name, self.region, self.credentials, config
            )
        return self._clients[service_name]

    async def _call(
        self,
        service_name: str,
        operation: str,
        entity: str = "CspRole",
        identifier: Any = None,
        **params: Any,
    ) -> Dict[str, Any]:
        method = getattr(self._client(service_name), operation)
        try:
            return await asyncio.wait_for(asyncio.to_thread(method, **params), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise ProviderUnavailableError(
                f"{operation} timed out after {self.timeout}s",
                provider=CspType.AWS.value,
                code="Timeout",
                entity=entity,
                identifier=identifier,
            ) from exc
        except ClientError as exc:
            raise translate_client_error(exc, operation, entity, identifier) from exc
        except (NoCredentialsError, PartialCredentialsError) as exc:
            raise PermissionDeniedError(
                f"{operation}: AWS credentials are missing",
                provider=CspType.AWS.value,
                code=exc.__class__.__name__,
            ) from exc
        except (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError) as exc:
            raise ProviderUnavailableError(
                f"{operation}: {exc}", provider=CspType.AWS.value, code=exc.__class__.__name__
            ) from exc
        except BotoCoreError as exc:
            raise ProviderError(
                f"{operation}: {exc}", provider=CspType.AWS.value, code=exc.__class__.__name__
            ) from exc

    async def _iam(self, operation: str, entity: str, identifier: Any, **params: Any) -> Dict[str, Any]:
        return await self._call("iam", operation, entity=entity, identifier=identifier, **params)

    async def _sts(self, operation: str, identifier: Any = None, **params: Any) -> Dict[str, Any]:
        return await self._call("sts", operation, entity="CspRole", identifier=identifier, **params)

    # Roles

    async def create_role(self, definition: RoleDefinition) -> ProviderRole:
        if not definition.assume_role_policy:
            raise InvalidArgumentError(
                "assume role policy is required to create a role",
                entity="CspRole",
                identifier=definition.name,
            )
        params: Dict[str, Any] = {
            "RoleName": definition.name,
            "AssumeRolePolicyDocument": json.dumps(definition.assume_role_policy),
        }
        if definition.description:
            params["Description"] = definition.description
        if definition.path:
            params["Path"] = definition.path
        if definition.max_session_duration:
            params["MaxSessionDuration"] = definition.max_session_duration
        if definition.permissions_boundary:
            params["PermissionsBoundary"] = definition.permissions_boundary
        if definition.tags:
            params["Tags"] = _to_tags(definition.tags)
        response = await self._iam("create_role", "CspRole", definition.name, **params)
        logger.info("Created AWS role", role_name=definition.name)
        return _role_from_response(response["Role"])

    async def get_role(self, role_name: str) -> ProviderRole:
        response = await self._iam("get_role", "CspRole", role_name, RoleName=role_name)
        return _role_from_response(response["Role"])

    async def update_role(self, definition: RoleDefinition) -> ProviderRole:
        params: Dict[str, Any] = {"RoleName": definition.name}
        if definition.description is not None:
            params["Description"] = definition.description
        if definition.max_session_duration:
            params["MaxSessionDuration"] = definition.max_session_duration
        await self._iam("update_role", "CspRole", definition.name, **params)
        if definition.assume_role_policy:
            await self._iam(
                "update_assume_role_policy",
                "CspRole",
                definition.name,
                RoleName=definition.name,
                PolicyDocument=json.dumps(definition.assume_role_policy),
            )
        if definition.permissions_boundary:
            await self._iam(
                "put_role_permissions_boundary",
                "CspRole",
                definition.name,
                RoleName=definition.name,
                PermissionsBoundary=definition.permissions_boundary,
            )
        logger.info("Updated AWS role", role_name=definition.name)
        return await self.get_role(definition.name)

    async def delete_role(self, role_name: str) -> None:
        # IAM refuses to delete a role that still has policies
        for policy in await self.list_attached_role_policies(role_name):
            await self.detach_role_policy(role_name, policy.arn)
        for policy_name in await self.list_role_policies(role_name):
            await self.delete_role_policy(role_name, policy_name)
        await self._iam("delete_role", "CspRole", role_name, RoleName=role_name)
        logger.info("Deleted AWS role", role_name=role_name)

    async def attach_role_policy(self, role_name: str, policy_arn: str) -> None:
        await self._iam(
            "attach_role_policy", "CspPolicy", policy_arn, RoleName=role_name, PolicyArn=policy_arn
        )

    async def detach_role_policy(self, role_name: str, policy_arn: str) -> None:
        await self._iam(
            "detach_role_policy", "CspPolicy", policy_arn, RoleName=role_name, PolicyArn=policy_arn
        )

    async def list_attached_role_policies(self, role_name: str) -> List[PolicyInfo]:
        policies: List[PolicyInfo] = []
        params: Dict[str, Any] = {"RoleName": role_name}
        while True:
            response = await self._iam("list_attached_role_policies", "CspRole", role_name, **params)
            policies.extend(_policy_from_response(p) for p in response.get("AttachedPolicies", []))
            if not response.get("IsTruncated"):
                return policies
            params["Marker"] = response["Marker"]

    async def list_role_policies(self, role_name: str) -> List[str]:
        names: List[str] = []
        params: Dict[str, Any] = {"RoleName": role_name}
        while True:
            response = await self._iam("list_role_policies", "CspRole", role_name, **params)
            names.extend(response.get("PolicyNames", []))
            if not response.get("IsTruncated"):
                return names
            params["Marker"] = response["Marker"]

    async def get_role_policy(self, role_name: str, policy_name: str) -> Dict[str, Any]:
        response = await self._iam(
            "get_role_policy", "CspPolicy", policy_name, RoleName=role_name, PolicyName=policy_name
        )
        return decode_policy_document(response.get("PolicyDocument"))

    async def put_role_policy(self, role_name: str, policy_name: str, document: Dict[str, Any]) -> None:
        await self._iam(
            "put_role_policy",
            "CspPolicy",
            policy_name,
            RoleName=role_name,
            PolicyName=policy_name,
            PolicyDocument=json.dumps(document),
        )

    async def delete_role_policy(self, role_name: str, policy_name: str) -> None:
        await self._iam(
            "delete_role_policy", "CspPolicy", policy_name, RoleName=role_name, PolicyName=policy_name
        )

    # Policies

    async def create_policy(self, definition: PolicyDefinition) -> PolicyInfo:
        params: Dict[str, Any] = {
            "PolicyName": definition.name,
            "PolicyDocument": json.dumps(definition.policy_doc),
        }
        if definition.description:
            params["Description"] = definition.description
        if definition.path:
            params["Path"] = definition.path
        if definition.tags:
            params["Tags"] = _to_tags(definition.tags)
        response = await self._iam("create_policy", "CspPolicy", definition.name, **params)
        info = _policy_from_response(response["Policy"])
        info.policy_doc = definition.policy_doc
        logger.info("Created AWS policy", policy_arn=info.arn)
        return info

    async def get_policy(self, policy_arn: str) -> PolicyInfo:
        response = await self._iam("get_policy", "CspPolicy", policy_arn, PolicyArn=policy_arn)
        return _policy_from_response(response["Policy"])

    async def get_policy_document(self, policy_arn: str, version_id: Optional[str] = None) -> Dict[str, Any]:
        """Document of the given version, or of the default version."""
        if not version_id:
            version_id = (await self.get_policy(policy_arn)).default_version
        response = await self._iam(
            "get_policy_version", "CspPolicy", policy_arn, PolicyArn=policy_arn, VersionId=version_id
        )
        return decode_policy_document(response["PolicyVersion"].get("Document"))

    async def update_policy(self, policy_arn: str, definition: PolicyDefinition) -> PolicyInfo:
        """
        Publish the document as the new default version.
        When the version limit is reached the oldest non-default version is removed first.
        """
        response = await self._iam("list_policy_versions", "CspPolicy", policy_arn, PolicyArn=policy_arn)
        versions = response.get("Versions", [])
        if len(versions) >= MAX_POLICY_VERSIONS:
            candidates = [v for v in versions if not v.get("IsDefaultVersion")]
            if candidates:
                oldest = min(candidates, key=lambda v: v["CreateDate"])
                await self._iam(
                    "delete_policy_version",
                    "CspPolicy",
                    policy_arn,
                    PolicyArn=policy_arn,
                    VersionId=oldest["VersionId"],
                )
        await self._iam(
            "create_policy_version",
            "CspPolicy",
            policy_arn,
            PolicyArn=policy_arn,
            PolicyDocument=json.dumps(definition.policy_doc),
            SetAsDefault=True,
        )
        logger.info("Updated AWS policy", policy_arn=policy_arn)
        info = await self.get_policy(policy_arn)
        info.policy_doc = definition.policy_doc
        return info

    async def delete_policy(self, policy_arn: str) -> None:
        response = await self._iam("list_policy_versions", "CspPolicy", policy_arn, PolicyArn=policy_arn)
        for version in response.get("Versions", []):
            if version.get("IsDefaultVersion"):
                continue
            await self._iam(
                "delete_policy_version",
                "CspPolicy",
                policy_arn,
                PolicyArn=policy_arn,
                VersionId=version["VersionId"],
            )
        await self._iam("delete_policy", "CspPolicy", policy_arn, PolicyArn=policy_arn)
        logger.info("Deleted AWS policy", policy_arn=policy_arn)

    async def list_policies(self, filter: PolicyFilter) -> Tuple[List[PolicyInfo], Optional[str]]:
        """One page of policies and the marker of the next page, if any."""
        params: Dict[str, Any] = {"Scope": filter.scope.value, "OnlyAttached": filter.only_attached}
        if filter.path_prefix:
            params["PathPrefix"] = filter.path_prefix
        if filter.policy_usage_type:
            params["PolicyUsageFilter"] = filter.policy_usage_type
        if filter.max_items:
            params["MaxItems"] = filter.max_items
        if filter.marker:
            params["Marker"] = filter.marker
        response = await self._iam("list_policies", "CspPolicy", None, **params)
        items = [_policy_from_response(p) for p in response.get("Policies", [])]
        next_marker = response.get("Marker") if response.get("IsTruncated") else None
        return items, next_marker

    # Credentials

    def _assume_params(self, config: AssumeRoleConfig) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "RoleArn": config.role_arn,
            "RoleSessionName": config.role_session_name,
        }
        if config.duration_seconds:
            params["DurationSeconds"] = config.duration_seconds
        if config.policy:
            params["Policy"] = config.policy
        if config.policy_arns:
            params["PolicyArns"] = [{"arn": arn} for arn in config.policy_arns]
        return params

    async def assume_role_with_web_identity(self, config: AssumeRoleConfig) -> ProviderCredential:
        if not config.web_identity_token:
            raise InvalidArgumentError(
                "web identity token is required", entity="CspRole", identifier=config.role_arn
            )
        params = self._assume_params(config)
        params["WebIdentityToken"] = config.web_identity_token
        response = await self._sts("assume_role_with_web_identity", config.role_arn, **params)
        logger.info("Assumed AWS role with web identity", role_arn=config.role_arn)
        return _credential_from_response(response, "assume_role_with_web_identity")

    async def assume_role_with_saml(self, config: AssumeRoleConfig, saml_assertion: str) -> ProviderCredential:
        if not config.principal_arn:
            raise InvalidArgumentError(
                "SAML provider ARN is required", entity="CspRole", identifier=config.role_arn
            )
        if not saml_assertion:
            raise InvalidArgumentError(
                "SAML assertion is required", entity="CspRole", identifier=config.role_arn
            )
        params: Dict[str, Any] = {
            "RoleArn": config.role_arn,
            "PrincipalArn": config.principal_arn,
            "SAMLAssertion": saml_assertion,
        }
        if config.duration_seconds:
            params["DurationSeconds"] = config.duration_seconds
        if config.policy:
            params["Policy"] = config.policy
        response = await self._sts("assume_role_with_saml", config.role_arn, **params)
        logger.info("Assumed AWS role with SAML", role_arn=config.role_arn)
        return _credential_from_response(response, "assume_role_with_saml")

    async def assume_role(self, config: AssumeRoleConfig) -> ProviderCredential:
        if self.credentials is None:
            raise InvalidArgumentError(
                "static credentials are required to assume a role",
                entity="CspRole",
                identifier=config.role_arn,
            )
        params = self._assume_params(config)
        if config.external_id:
            params["ExternalId"] = config.external_id
        if config.tags:
            params["Tags"] = _to_tags(config.tags)
        response = await self._sts("assume_role", config.role_arn, **params)
        logger.info("Assumed AWS role with static keys", role_arn=config.role_arn)
        return _credential_from_response(response, "assume_role")

    async def validate_credentials(self) -> Dict[str, str]:
        """Caller identity of the configured keys."""
        response = await self._sts("get_caller_identity")
        return {
            "account": response.get("Account", ""),
            "arn": response.get("Arn", ""),
            "user_id": response.get("UserId", ""),
        }
