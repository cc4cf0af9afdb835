"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from cloudiam.main import app
from cloudiam.config.database import Base, get_db
from cloudiam.core.dependencies import get_identity_broker, get_registry, get_secret_cipher
from cloudiam.middleware.rate_limit import limiter
from cloudiam.models import csp_account, csp_idp_config, csp_policy, csp_role, role  # noqa: F401
from cloudiam.models.csp_account import CspAccount
from cloudiam.models.csp_idp_config import CspIdpConfig
from cloudiam.models.csp_role import CspRole
from cloudiam.models.role import RoleMaster, RoleSub
from cloudiam.providers.base import ProviderCredential
from cloudiam.providers.registry import ProviderRegistry
from cloudiam.services.identity_broker import SamlAssertion, TokenResponse
from cloudiam.services.secret_cipher import SecretCipher
from cloudiam.utils.constants import AuthMethod, CspType, RoleType


# Test database URL (in-memory SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_ENCRYPTION_KEY = "00" * 32

ISSUED_EXPIRY = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create test database session on a fresh in-memory database."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()

    await engine.dispose()


@pytest.fixture
def cipher() -> SecretCipher:
    return SecretCipher(TEST_ENCRYPTION_KEY)


@pytest.fixture
def issued_credential() -> ProviderCredential:
    """Credential returned by the fake provider."""
    return ProviderCredential(
        access_key_id="ASIATESTKEY",
        secret_access_key="temp-secret",
        session_token="temp-token",
        expiration=ISSUED_EXPIRY,
        provider=CspType.AWS,
    )


@pytest.fixture
def fake_provider(issued_credential):
    """CspProvider double with every call succeeding."""
    provider = MagicMock()
    provider.csp_type = CspType.AWS
    provider.assume_role_with_web_identity = AsyncMock(return_value=issued_credential)
    provider.assume_role_with_saml = AsyncMock(return_value=issued_credential)
    provider.assume_role = AsyncMock(return_value=issued_credential)
    provider.validate_credentials = AsyncMock(
        return_value={"account": "123456789012", "arn": "arn:aws:iam::123456789012:user/ops", "user_id": "AIDA"}
    )
    provider.list_policies = AsyncMock(return_value=([], None))
    provider.get_policy_document = AsyncMock(return_value={"Version": "2012-10-17", "Statement": []})
    return provider


@pytest.fixture
def provider_factory(fake_provider):
    """Factory registered for AWS; records the region and credentials it was built with."""
    return MagicMock(return_value=fake_provider)


@pytest.fixture
def registry(provider_factory) -> ProviderRegistry:
    return ProviderRegistry(providers={CspType.AWS: provider_factory})


@pytest.fixture
def fake_broker():
    broker = MagicMock()
    broker.get_client_credentials_token = AsyncMock(
        return_value=TokenResponse(access_token="access-token", id_token="id-token", expires_in=300)
    )
    broker.get_saml_assertion = AsyncMock(return_value=SamlAssertion(assertion="PHNhbWw+"))
    return broker


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, registry, fake_broker, cipher) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_identity_broker] = lambda: fake_broker
    app.dependency_overrides[get_secret_cipher] = lambda: cipher
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    limiter.enabled = True
    app.dependency_overrides.clear()


# Stored fixtures


@pytest.fixture
async def aws_account(db_session: AsyncSession) -> CspAccount:
    account = CspAccount(
        name="prod-aws",
        csp_type=CspType.AWS,
        account_info={"account_id": "123456789012", "region": "ap-northeast-2"},
        is_active=True,
    )
    db_session.add(account)
    await db_session.commit()
    await db_session.refresh(account)
    return account


async def _add_config(
    db_session: AsyncSession, account: CspAccount, name: str, auth_method: AuthMethod, config: dict
) -> CspIdpConfig:
    idp_config = CspIdpConfig(
        name=name,
        csp_account_id=account.id,
        auth_method=auth_method,
        config=config,
        is_active=True,
    )
    db_session.add(idp_config)
    await db_session.commit()
    await db_session.refresh(idp_config)
    return idp_config


@pytest.fixture
async def oidc_config(db_session: AsyncSession, aws_account: CspAccount) -> CspIdpConfig:
    return await _add_config(
        db_session,
        aws_account,
        "keycloak-oidc",
        AuthMethod.OIDC,
        {
            "oidc_provider_arn": "arn:aws:iam::123456789012:oidc-provider/keycloak.example.com/realms/cloudiam",
            "audience": "cloudiam-client",
            "role_arn": "arn:aws:iam::123456789012:role/cloudiam-sync",
        },
    )


@pytest.fixture
async def secret_key_config(db_session: AsyncSession, aws_account: CspAccount) -> CspIdpConfig:
    return await _add_config(
        db_session,
        aws_account,
        "static-keys",
        AuthMethod.SECRET_KEY,
        {"access_key_id": "AKIASTATIC", "secret_access_key": "static-secret", "encrypted": "false"},
    )


@pytest.fixture
async def saml_config(db_session: AsyncSession, aws_account: CspAccount) -> CspIdpConfig:
    return await _add_config(
        db_session,
        aws_account,
        "keycloak-saml",
        AuthMethod.SAML,
        {
            "saml_provider_arn": "arn:aws:iam::123456789012:saml-provider/keycloak",
            "sso_service_location": "https://keycloak.example.com/realms/cloudiam/protocol/saml",
        },
    )


@pytest.fixture
async def csp_role_record(db_session: AsyncSession, aws_account: CspAccount, oidc_config: CspIdpConfig) -> CspRole:
    record = CspRole(
        name="cloudiam-operator",
        csp_type=CspType.AWS,
        iam_identifier="arn:aws:iam::123456789012:role/cloudiam-operator",
        csp_account_id=aws_account.id,
        csp_idp_config_id=oidc_config.id,
    )
    db_session.add(record)
    await db_session.commit()
    await db_session.refresh(record)
    return record


@pytest.fixture
async def csp_capable_role(db_session: AsyncSession) -> RoleMaster:
    """Role carrying the csp role type."""
    master = RoleMaster(name="operator", predefined=True)
    db_session.add(master)
    await db_session.flush()
    db_session.add(RoleSub(role_id=master.id, role_type=RoleType.CSP))
    await db_session.commit()
    await db_session.refresh(master)
    return master
