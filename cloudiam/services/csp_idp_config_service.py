"""CSP IdP configuration service."""

from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..config.database import release, transaction
from ..core.errors import (
    AlreadyExistsError,
    DependentsExistError,
    InvalidArgumentError,
    NotFoundError,
    ProviderError,
    UnimplementedError,
)
from ..models.csp_idp_config import CspIdpConfig
from ..providers.base import AssumeRoleConfig, StaticCredentials
from ..providers.registry import ProviderRegistry
from ..repositories.csp_account_repo import CspAccountRepository
from ..repositories.csp_idp_config_repo import CspIdpConfigRepository
from ..repositories.csp_role_repo import CspRoleRepository
from ..schemas.csp_idp_config import (
    MASKED_VALUE,
    SECRET_CONFIG_FIELDS,
    ConnectionTestResult,
    CspIdpConfigCreate,
    CspIdpConfigFilter,
    CspIdpConfigUpdate,
    SecretKeyIdpConfig,
    parse_idp_config,
)
from ..utils.constants import AuthMethod, MIN_SESSION_DURATION_SECONDS
from ..utils.logger import get_logger
from .identity_broker import IdentityBroker
from .secret_cipher import SecretCipher

logger = get_logger(__name__)


def is_encrypted(config: Dict[str, Any]) -> bool:
    return str(config.get("encrypted", "")).lower() == "true"


def reveal_secrets(config: Dict[str, Any], cipher: SecretCipher) -> Dict[str, Any]:
    """Copy of a stored config with encrypted secret fields decrypted."""
    revealed = dict(config)
    if not is_encrypted(revealed):
        return revealed
    for key in SECRET_CONFIG_FIELDS:
        if revealed.get(key):
            revealed[key] = cipher.decrypt(revealed[key])
    revealed["encrypted"] = "false"
    return revealed


def seal_secrets(config: Dict[str, Any], cipher: SecretCipher) -> Dict[str, Any]:
    """Copy of a plaintext config with secret fields encrypted."""
    sealed = dict(config)
    for key in SECRET_CONFIG_FIELDS:
        if sealed.get(key):
            sealed[key] = cipher.encrypt(sealed[key])
    sealed["encrypted"] = "true"
    return sealed


def static_credentials(variant: SecretKeyIdpConfig) -> StaticCredentials:
    """Caller keys held by a (revealed) SECRET_KEY config."""
    if not variant.access_key_id or variant.secret_access_key is None:
        raise InvalidArgumentError(
            "SECRET_KEY config requires access_key_id and secret_access_key",
            entity="CspIdpConfig",
        )
    return StaticCredentials(
        access_key_id=variant.access_key_id,
        secret_access_key=variant.secret_access_key.get_secret_value(),
    )


class CspIdpConfigService:
    """Service for CspIdpConfig operations."""

    def __init__(
        self,
        db: AsyncSession,
        registry: ProviderRegistry,
        broker: IdentityBroker,
        cipher: SecretCipher,
    ):
        self.db = db
        self.repo = CspIdpConfigRepository(db)
        self.account_repo = CspAccountRepository(db)
        self.csp_role_repo = CspRoleRepository(db)
        self.registry = registry
        self.broker = broker
        self.cipher = cipher

    def _prepare_config(
        self, auth_method: AuthMethod, csp_type, config: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Validate a plaintext config and seal its secrets when at-rest encryption is on."""
        variant = parse_idp_config(auth_method, csp_type, config)
        stored = variant.to_config_dict()
        if (
            auth_method == AuthMethod.SECRET_KEY
            and settings.secret_key_encryption_enabled
            and not is_encrypted(stored)
        ):
            stored = seal_secrets(stored, self.cipher)
        return stored

    async def create_config(self, data: CspIdpConfigCreate) -> CspIdpConfig:
        async with transaction(self.db):
            account = await self.account_repo.get_by_id(data.csp_account_id)
            if not account:
                raise NotFoundError("CspAccount", data.csp_account_id)
            if await self.repo.exists_by_name_and_account_id(data.name, data.csp_account_id):
                raise AlreadyExistsError(
                    f"IdP config with name '{data.name}' already exists for account {data.csp_account_id}",
                    entity="CspIdpConfig",
                    identifier=data.name,
                )
            stored = self._prepare_config(data.auth_method, account.csp_type, data.config)
            config = await self.repo.create(
                CspIdpConfig(
                    name=data.name,
                    csp_account_id=data.csp_account_id,
                    auth_method=data.auth_method,
                    config=stored,
                    description=data.description,
                    is_active=True,
                )
            )
        logger.info(
            "Created IdP config",
            idp_config_id=config.id,
            csp_account_id=config.csp_account_id,
            auth_method=config.auth_method.value,
            encrypted=is_encrypted(config.config),
        )
        return config

    async def get_config(self, config_id: int) -> CspIdpConfig:
        config = await self.repo.get_by_id(config_id)
        if not config:
            raise NotFoundError("CspIdpConfig", config_id)
        return config

    async def list_configs(self, filter: Optional[CspIdpConfigFilter] = None) -> List[CspIdpConfig]:
        return await self.repo.list(filter)

    async def list_active_by_account(self, account_id: int) -> List[CspIdpConfig]:
        return await self.repo.get_active_by_account_id(account_id)

    async def list_by_auth_method(self, auth_method: AuthMethod) -> List[CspIdpConfig]:
        return await self.repo.get_by_auth_method(auth_method)

    async def update_config(self, config_id: int, data: CspIdpConfigUpdate) -> CspIdpConfig:
        """
        Update name, description, state or config map.
        Secret fields sent back masked keep their stored value.
        """
        async with transaction(self.db):
            config = await self.get_config(config_id)
            changes = data.model_dump(exclude_unset=True)
            new_name = changes.get("name")
            if new_name and new_name != config.name:
                if await self.repo.exists_by_name_and_account_id(new_name, config.csp_account_id):
                    raise AlreadyExistsError(
                        f"IdP config with name '{new_name}' already exists for account {config.csp_account_id}",
                        entity="CspIdpConfig",
                        identifier=new_name,
                    )
            if changes.get("config") is not None:
                current = reveal_secrets(config.config or {}, self.cipher)
                incoming = dict(changes["config"])
                for key in SECRET_CONFIG_FIELDS:
                    if incoming.get(key) == MASKED_VALUE:
                        incoming[key] = current.get(key, "")
                incoming.pop("encrypted", None)
                changes["config"] = self._prepare_config(
                    config.auth_method, config.csp_account.csp_type, incoming
                )
            config = await self.repo.update(config, changes)
        logger.info("Updated IdP config", idp_config_id=config_id, fields=sorted(changes))
        return config

    async def activate_config(self, config_id: int) -> CspIdpConfig:
        return await self._set_active(config_id, True)

    async def deactivate_config(self, config_id: int) -> CspIdpConfig:
        return await self._set_active(config_id, False)

    async def _set_active(self, config_id: int, is_active: bool) -> CspIdpConfig:
        async with transaction(self.db):
            config = await self.get_config(config_id)
            config = await self.repo.update(config, {"is_active": is_active})
        logger.info("Changed IdP config state", idp_config_id=config_id, is_active=is_active)
        return config

    async def delete_config(self, config_id: int) -> None:
        async with transaction(self.db):
            if not await self.repo.exists_by_id(config_id):
                raise NotFoundError("CspIdpConfig", config_id)
            role_count = await self.csp_role_repo.count_by_idp_config_id(config_id)
            if role_count:
                raise DependentsExistError("IdP config", config_id, "CSP roles", role_count)
            await self.repo.delete(config_id)
        logger.info("Deleted IdP config", idp_config_id=config_id)

    async def test_connection(self, config_id: int) -> ConnectionTestResult:
        """
        Probe the trust configuration against its provider.
        OIDC and SAML assume the config's role_arn for the minimum session;
        SECRET_KEY checks the caller identity of the static keys.
        """
        config = await self.get_config(config_id)
        csp_type = config.csp_account.csp_type
        region = config.csp_account.region
        variant = parse_idp_config(
            config.auth_method, csp_type, reveal_secrets(config.config or {}, self.cipher)
        )
        await release(self.db)

        try:
            if config.auth_method == AuthMethod.SECRET_KEY:
                provider = self.registry.get(csp_type, region=region, credentials=static_credentials(variant))
                identity = await provider.validate_credentials()
                detail = f"credentials valid for {identity.get('arn') or identity.get('account')}"
            else:
                if not variant.role_arn:
                    raise InvalidArgumentError(
                        "role_arn is required to test the connection",
                        entity="CspIdpConfig",
                        identifier=config_id,
                    )
                provider = self.registry.get(csp_type, region=region)
                assume = AssumeRoleConfig(
                    role_arn=variant.role_arn,
                    role_session_name="cloudiam-connection-test",
                    duration_seconds=MIN_SESSION_DURATION_SECONDS,
                )
                if config.auth_method == AuthMethod.OIDC:
                    token = await self.broker.get_client_credentials_token()
                    assume.web_identity_token = token.web_identity_token
                    await provider.assume_role_with_web_identity(assume)
                else:
                    assertion = await self.broker.get_saml_assertion()
                    assume.principal_arn = variant.saml_provider_arn
                    await provider.assume_role_with_saml(assume, assertion.assertion)
                detail = f"assumed {variant.role_arn}"
        except (ProviderError, UnimplementedError) as exc:
            logger.warning(
                "IdP connection test failed",
                idp_config_id=config_id,
                error=exc.__class__.__name__,
                detail=exc.message,
            )
            return ConnectionTestResult(idp_config_id=config_id, success=False, detail=exc.message)

        logger.info("IdP connection test succeeded", idp_config_id=config_id)
        return ConnectionTestResult(idp_config_id=config_id, success=True, detail=detail)
