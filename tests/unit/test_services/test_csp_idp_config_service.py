"""Unit tests for CspIdpConfigService."""

import pytest

from cloudiam.config import settings
from cloudiam.core.errors import (
    AlreadyExistsError,
    BrokerError,
    DependentsExistError,
    InvalidArgumentError,
    NotFoundError,
)
from cloudiam.schemas.csp_idp_config import MASKED_VALUE, CspIdpConfigCreate, CspIdpConfigUpdate
from cloudiam.services.csp_idp_config_service import CspIdpConfigService
from cloudiam.utils.constants import AuthMethod, MIN_SESSION_DURATION_SECONDS


@pytest.fixture
def service(db_session, registry, fake_broker, cipher):
    return CspIdpConfigService(db_session, registry=registry, broker=fake_broker, cipher=cipher)


@pytest.fixture
def encryption_enabled(monkeypatch):
    monkeypatch.setattr(settings, "secret_key_encryption_enabled", True)


def secret_key_create(account_id: int, name: str = "static") -> CspIdpConfigCreate:
    return CspIdpConfigCreate(
        name=name,
        csp_account_id=account_id,
        auth_method=AuthMethod.SECRET_KEY,
        config={"access_key_id": "AKIASTATIC", "secret_access_key": "static-secret"},
    )


@pytest.mark.asyncio
async def test_create_validates_required_fields(service, aws_account):
    with pytest.raises(InvalidArgumentError):
        await service.create_config(
            CspIdpConfigCreate(
                name="broken",
                csp_account_id=aws_account.id,
                auth_method=AuthMethod.OIDC,
                config={"audience": "cloudiam-client"},
            )
        )


@pytest.mark.asyncio
async def test_create_for_unknown_account(service):
    with pytest.raises(NotFoundError):
        await service.create_config(secret_key_create(999))


@pytest.mark.asyncio
async def test_duplicate_name_in_account(service, aws_account, oidc_config):
    data = secret_key_create(aws_account.id, name="keycloak-oidc")

    with pytest.raises(AlreadyExistsError):
        await service.create_config(data)


@pytest.mark.asyncio
async def test_secret_stored_encrypted_when_enabled(service, aws_account, cipher, encryption_enabled):
    config = await service.create_config(secret_key_create(aws_account.id))

    assert config.config["encrypted"] == "true"
    assert config.config["secret_access_key"] != "static-secret"
    assert cipher.decrypt(config.config["secret_access_key"]) == "static-secret"


@pytest.mark.asyncio
async def test_secret_stored_plain_when_disabled(service, aws_account):
    config = await service.create_config(secret_key_create(aws_account.id))

    assert config.config["encrypted"] == "false"
    assert config.config["secret_access_key"] == "static-secret"


@pytest.mark.asyncio
async def test_masked_secret_keeps_stored_value(service, aws_account, cipher, encryption_enabled):
    """Sending the masked placeholder back leaves the stored secret in place."""
    created = await service.create_config(secret_key_create(aws_account.id))

    updated = await service.update_config(
        created.id,
        CspIdpConfigUpdate(config={"access_key_id": "AKIAROTATED", "secret_access_key": MASKED_VALUE}),
    )

    assert updated.config["access_key_id"] == "AKIAROTATED"
    assert cipher.decrypt(updated.config["secret_access_key"]) == "static-secret"


@pytest.mark.asyncio
async def test_activate_and_deactivate(service, oidc_config):
    assert not (await service.deactivate_config(oidc_config.id)).is_active
    assert (await service.activate_config(oidc_config.id)).is_active
    assert [c.id for c in await service.list_by_auth_method(AuthMethod.OIDC)] == [oidc_config.id]


@pytest.mark.asyncio
async def test_delete_config_referenced_by_csp_role(service, oidc_config, csp_role_record):
    with pytest.raises(DependentsExistError):
        await service.delete_config(oidc_config.id)


@pytest.mark.asyncio
async def test_delete_unreferenced_config(service, aws_account, oidc_config):
    await service.delete_config(oidc_config.id)

    assert await service.list_active_by_account(aws_account.id) == []


class TestConnection:
    """Test the provider connection check."""

    @pytest.mark.asyncio
    async def test_oidc_check_assumes_role_arn(self, service, oidc_config, fake_provider):
        result = await service.test_connection(oidc_config.id)

        assert result.success
        assume = fake_provider.assume_role_with_web_identity.await_args.args[0]
        assert assume.role_arn == "arn:aws:iam::123456789012:role/cloudiam-sync"
        assert assume.duration_seconds == MIN_SESSION_DURATION_SECONDS

    @pytest.mark.asyncio
    async def test_secret_key_check_uses_caller_identity(self, service, secret_key_config, fake_provider):
        result = await service.test_connection(secret_key_config.id)

        assert result.success
        assert "arn:aws:iam::123456789012:user/ops" in result.detail
        fake_provider.validate_credentials.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_broker_failure_reports_unsuccessful(self, service, oidc_config, fake_broker):
        fake_broker.get_client_credentials_token.side_effect = BrokerError(
            "identity broker rejected client credentials grant with status 401", provider="keycloak"
        )

        result = await service.test_connection(oidc_config.id)

        assert not result.success
        assert "401" in result.detail
