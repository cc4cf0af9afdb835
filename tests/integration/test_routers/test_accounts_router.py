"""Integration tests for the CSP account and IdP config endpoints."""

import pytest
from httpx import AsyncClient

from cloudiam.schemas.csp_idp_config import MASKED_VALUE


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_account_lifecycle(client: AsyncClient):
    """Create, read, update, validate and delete an account."""
    response = await client.post(
        "/csp-accounts",
        json={"name": "sandbox", "csp_type": "aws", "account_info": {"account_id": "210987654321"}},
    )
    assert response.status_code == 201
    account = response.json()
    assert account["is_active"] is True

    response = await client.patch(f"/csp-accounts/{account['id']}", json={"description": "Sandbox"})
    assert response.json()["description"] == "Sandbox"

    response = await client.post(f"/csp-accounts/{account['id']}/validate")
    assert response.status_code == 200

    response = await client.delete(f"/csp-accounts/{account['id']}")
    assert response.status_code == 204

    response = await client.get(f"/csp-accounts/{account['id']}")
    assert response.status_code == 404
    assert response.json()["error_code"] == "NotFoundError"


@pytest.mark.asyncio
async def test_duplicate_account_is_bad_request(client: AsyncClient, aws_account):
    response = await client.post("/csp-accounts", json={"name": "prod-aws", "csp_type": "aws"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "AlreadyExistsError"


@pytest.mark.asyncio
async def test_invalid_account_info_is_bad_request(client: AsyncClient):
    response = await client.post("/csp-accounts", json={"name": "corp", "csp_type": "azure"})
    account_id = response.json()["id"]

    response = await client.post(f"/csp-accounts/{account_id}/validate")

    assert response.status_code == 400
    assert response.json()["error_code"] == "InvalidArgumentError"


@pytest.mark.asyncio
async def test_delete_account_with_idp_config_conflicts(client: AsyncClient, aws_account, oidc_config):
    response = await client.delete(f"/csp-accounts/{aws_account.id}")

    assert response.status_code == 409
    assert response.json()["error_code"] == "DependentsExistError"


@pytest.mark.asyncio
async def test_list_accounts_filters(client: AsyncClient, aws_account):
    await client.post("/csp-accounts", json={"name": "dev-gcp", "csp_type": "gcp"})

    response = await client.get("/csp-accounts", params={"csp_type": "gcp"})

    assert [a["name"] for a in response.json()] == ["dev-gcp"]


@pytest.mark.asyncio
async def test_idp_config_secrets_are_masked(client: AsyncClient, aws_account):
    response = await client.post(
        "/idp-configs",
        json={
            "name": "static-keys",
            "csp_account_id": aws_account.id,
            "auth_method": "SECRET_KEY",
            "config": {"access_key_id": "AKIASTATIC", "secret_access_key": "static-secret"},
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["config"]["secret_access_key"] == MASKED_VALUE
    assert "static-secret" not in response.text

    response = await client.get(f"/idp-configs/{body['id']}")
    assert response.json()["config"]["access_key_id"] == "AKIASTATIC"


@pytest.mark.asyncio
async def test_idp_config_missing_field_is_bad_request(client: AsyncClient, aws_account):
    response = await client.post(
        "/idp-configs",
        json={
            "name": "saml",
            "csp_account_id": aws_account.id,
            "auth_method": "SAML",
            "config": {"issuer_url": "https://keycloak.test/realms/cloudiam"},
        },
    )

    assert response.status_code == 400
    assert "saml_provider_arn" in response.json()["detail"]


@pytest.mark.asyncio
async def test_idp_config_connection_test(client: AsyncClient, oidc_config):
    response = await client.post(f"/idp-configs/{oidc_config.id}/test")

    assert response.status_code == 200
    assert response.json()["success"] is True
