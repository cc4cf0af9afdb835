"""Reusable FastAPI dependencies."""

from functools import lru_cache
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from ..config.database import get_db
from ..providers.registry import ProviderRegistry
from ..services.credential_service import CredentialService
from ..services.csp_account_service import CspAccountService
from ..services.csp_idp_config_service import CspIdpConfigService
from ..services.csp_policy_service import CspPolicyService
from ..services.csp_role_service import CspRoleService
from ..services.identity_broker import IdentityBroker, KeycloakIdentityBroker
from ..services.policy_sync_service import PolicySyncService
from ..services.role_mapping_service import RoleMappingService
from ..services.secret_cipher import SecretCipher


@lru_cache
def get_registry() -> ProviderRegistry:
    """Dependency to get the provider registry."""
    return ProviderRegistry()


@lru_cache
def get_identity_broker() -> IdentityBroker:
    """Dependency to get the identity broker client."""
    return KeycloakIdentityBroker()


@lru_cache
def get_secret_cipher() -> SecretCipher:
    """Dependency to get the secret cipher."""
    return SecretCipher()


async def get_csp_account_service(db: AsyncSession = Depends(get_db)) -> CspAccountService:
    return CspAccountService(db)


async def get_csp_role_service(db: AsyncSession = Depends(get_db)) -> CspRoleService:
    return CspRoleService(db)


async def get_role_mapping_service(db: AsyncSession = Depends(get_db)) -> RoleMappingService:
    return RoleMappingService(db)


async def get_csp_idp_config_service(
    db: AsyncSession = Depends(get_db),
    registry: ProviderRegistry = Depends(get_registry),
    broker: IdentityBroker = Depends(get_identity_broker),
    cipher: SecretCipher = Depends(get_secret_cipher),
) -> CspIdpConfigService:
    return CspIdpConfigService(db, registry=registry, broker=broker, cipher=cipher)


async def get_credential_service(
    db: AsyncSession = Depends(get_db),
    registry: ProviderRegistry = Depends(get_registry),
    broker: IdentityBroker = Depends(get_identity_broker),
    cipher: SecretCipher = Depends(get_secret_cipher),
) -> CredentialService:
    return CredentialService(db, registry=registry, broker=broker, cipher=cipher)


async def get_csp_policy_service(
    db: AsyncSession = Depends(get_db),
    registry: ProviderRegistry = Depends(get_registry),
    credential_service: CredentialService = Depends(get_credential_service),
) -> CspPolicyService:
    return CspPolicyService(db, credential_service=credential_service, registry=registry)


async def get_policy_sync_service(
    db: AsyncSession = Depends(get_db),
    registry: ProviderRegistry = Depends(get_registry),
    credential_service: CredentialService = Depends(get_credential_service),
) -> PolicySyncService:
    return PolicySyncService(db, credential_service=credential_service, registry=registry)
