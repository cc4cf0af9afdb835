"""Unit tests for the AWS provider adapter."""

import time
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from cloudiam.core.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    ProviderError,
    ProviderUnavailableError,
)
from cloudiam.providers.aws import AwsProvider, decode_policy_document, translate_client_error
from cloudiam.providers.base import (
    AssumeRoleConfig,
    PolicyDefinition,
    PolicyFilter,
    StaticCredentials,
)
from cloudiam.utils.constants import CspType, PolicyScope

EXPIRY = datetime(2030, 1, 1, tzinfo=timezone.utc)


def client_error(code: str, status: int = 400, operation: str = "GetRole") -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": f"{code} raised"}, "ResponseMetadata": {"HTTPStatusCode": status}},
        operation,
    )


@pytest.fixture
def clients():
    return {"iam": MagicMock(), "sts": MagicMock()}


@pytest.fixture
def client_factory(clients):
    return MagicMock(side_effect=lambda service, region, credentials, config: clients[service])


@pytest.fixture
def provider(client_factory):
    return AwsProvider(region="ap-northeast-2", timeout=5, client_factory=client_factory)


def sts_response():
    return {
        "Credentials": {
            "AccessKeyId": "ASIA",
            "SecretAccessKey": "secret",
            "SessionToken": "token",
            "Expiration": EXPIRY,
        }
    }


class TestTranslateClientError:
    """Test botocore error translation."""

    @pytest.mark.parametrize(
        "code,expected",
        [
            ("NoSuchEntity", NotFoundError),
            ("EntityAlreadyExists", AlreadyExistsError),
            ("MalformedPolicyDocument", InvalidArgumentError),
            ("AccessDenied", PermissionDeniedError),
            ("Throttling", ProviderUnavailableError),
            ("SomethingElse", ProviderError),
        ],
    )
    def test_maps_codes(self, code, expected):
        error = translate_client_error(client_error(code), "get_role", "CspRole", "ops")

        assert type(error) is expected
        assert error.entity == "CspRole"

    def test_server_errors_are_unavailable(self):
        error = translate_client_error(client_error("InternalFailure", status=503), "get_role", "CspRole", "ops")

        assert isinstance(error, ProviderUnavailableError)
        assert error.code == "InternalFailure"


def test_decode_policy_document_accepts_url_encoded_json():
    document = decode_policy_document("%7B%22Version%22%3A%20%222012-10-17%22%7D")

    assert document == {"Version": "2012-10-17"}


@pytest.mark.asyncio
async def test_get_role_not_found(provider, clients):
    """NoSuchEntity surfaces as NotFoundError."""
    clients["iam"].get_role.side_effect = client_error("NoSuchEntity")

    with pytest.raises(NotFoundError):
        await provider.get_role("missing")


@pytest.mark.asyncio
async def test_endpoint_failure_is_unavailable(provider, clients):
    clients["iam"].get_role.side_effect = EndpointConnectionError(endpoint_url="https://iam.amazonaws.com")

    with pytest.raises(ProviderUnavailableError):
        await provider.get_role("ops")


@pytest.mark.asyncio
async def test_call_past_deadline_is_unavailable(client_factory, clients):
    """A call running past the provider timeout fails with ProviderUnavailableError."""
    clients["iam"].get_role.side_effect = lambda **kwargs: time.sleep(0.5)
    provider = AwsProvider(timeout=0.05, client_factory=client_factory)

    with pytest.raises(ProviderUnavailableError) as exc_info:
        await provider.get_role("slow")

    assert exc_info.value.code == "Timeout"


@pytest.mark.asyncio
async def test_clients_are_built_once_per_service(provider, clients, client_factory):
    clients["iam"].get_role.return_value = {"Role": {"RoleName": "ops", "Arn": "arn:aws:iam::1:role/ops"}}

    await provider.get_role("ops")
    await provider.get_role("ops")

    assert client_factory.call_count == 1
    config = client_factory.call_args.args[3]
    assert config.retries["max_attempts"] == 1


@pytest.mark.asyncio
async def test_update_policy_prunes_oldest_non_default_version(provider, clients):
    """At the version limit the oldest non-default version is deleted before publishing."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    clients["iam"].list_policy_versions.return_value = {
        "Versions": [
            {"VersionId": f"v{i}", "IsDefaultVersion": i == 1, "CreateDate": base + timedelta(days=i)}
            for i in range(1, 6)
        ]
    }
    clients["iam"].get_policy.return_value = {
        "Policy": {"Arn": "arn:aws:iam::1:policy/p", "PolicyName": "p", "DefaultVersionId": "v6"}
    }

    info = await provider.update_policy(
        "arn:aws:iam::1:policy/p", PolicyDefinition(name="p", policy_doc={"Statement": []})
    )

    clients["iam"].delete_policy_version.assert_called_once_with(
        PolicyArn="arn:aws:iam::1:policy/p", VersionId="v2"
    )
    assert clients["iam"].create_policy_version.call_args.kwargs["SetAsDefault"] is True
    assert info.default_version == "v6"
    assert info.policy_doc == {"Statement": []}


@pytest.mark.asyncio
async def test_update_policy_below_limit_keeps_versions(provider, clients):
    clients["iam"].list_policy_versions.return_value = {
        "Versions": [{"VersionId": "v1", "IsDefaultVersion": True, "CreateDate": EXPIRY}]
    }
    clients["iam"].get_policy.return_value = {"Policy": {"Arn": "arn", "PolicyName": "p"}}

    await provider.update_policy("arn", PolicyDefinition(name="p", policy_doc={}))

    clients["iam"].delete_policy_version.assert_not_called()


@pytest.mark.asyncio
async def test_delete_policy_removes_non_default_versions_first(provider, clients):
    clients["iam"].list_policy_versions.return_value = {
        "Versions": [
            {"VersionId": "v1", "IsDefaultVersion": False},
            {"VersionId": "v2", "IsDefaultVersion": True},
        ]
    }

    await provider.delete_policy("arn")

    clients["iam"].delete_policy_version.assert_called_once_with(PolicyArn="arn", VersionId="v1")
    clients["iam"].delete_policy.assert_called_once_with(PolicyArn="arn")


@pytest.mark.asyncio
async def test_list_policies_returns_marker_only_when_truncated(provider, clients):
    clients["iam"].list_policies.side_effect = [
        {"Policies": [{"Arn": "arn:1", "PolicyName": "one"}], "IsTruncated": True, "Marker": "m1"},
        {"Policies": [{"Arn": "arn:2", "PolicyName": "two"}], "IsTruncated": False, "Marker": "stale"},
    ]

    first, marker = await provider.list_policies(PolicyFilter(scope=PolicyScope.LOCAL))
    second, last_marker = await provider.list_policies(PolicyFilter(marker=marker))

    assert [p.name for p in first] == ["one"]
    assert marker == "m1"
    assert [p.arn for p in second] == ["arn:2"]
    assert last_marker is None
    assert clients["iam"].list_policies.call_args_list[0].kwargs["Scope"] == "Local"
    assert clients["iam"].list_policies.call_args_list[1].kwargs["Marker"] == "m1"


@pytest.mark.asyncio
async def test_delete_role_detaches_policies_first(provider, clients):
    clients["iam"].list_attached_role_policies.return_value = {
        "AttachedPolicies": [{"PolicyArn": "arn:aws:iam::1:policy/p", "PolicyName": "p"}],
        "IsTruncated": False,
    }
    clients["iam"].list_role_policies.return_value = {"PolicyNames": ["inline"], "IsTruncated": False}

    await provider.delete_role("ops")

    clients["iam"].detach_role_policy.assert_called_once_with(
        RoleName="ops", PolicyArn="arn:aws:iam::1:policy/p"
    )
    clients["iam"].delete_role_policy.assert_called_once_with(RoleName="ops", PolicyName="inline")
    clients["iam"].delete_role.assert_called_once_with(RoleName="ops")


@pytest.mark.asyncio
async def test_assume_role_with_web_identity(provider, clients):
    clients["sts"].assume_role_with_web_identity.return_value = sts_response()

    credential = await provider.assume_role_with_web_identity(
        AssumeRoleConfig(
            role_arn="arn:aws:iam::1:role/ops",
            role_session_name="session",
            duration_seconds=7200,
            web_identity_token="jwt",
        )
    )

    kwargs = clients["sts"].assume_role_with_web_identity.call_args.kwargs
    assert kwargs["DurationSeconds"] == 7200
    assert kwargs["WebIdentityToken"] == "jwt"
    assert credential.provider == CspType.AWS
    assert credential.expiration == EXPIRY


@pytest.mark.asyncio
async def test_assume_role_with_web_identity_requires_token(provider, clients):
    with pytest.raises(InvalidArgumentError):
        await provider.assume_role_with_web_identity(
            AssumeRoleConfig(role_arn="arn:aws:iam::1:role/ops", role_session_name="session")
        )

    clients["sts"].assume_role_with_web_identity.assert_not_called()


@pytest.mark.asyncio
async def test_assume_role_with_saml_requires_principal(provider):
    with pytest.raises(InvalidArgumentError):
        await provider.assume_role_with_saml(
            AssumeRoleConfig(role_arn="arn:aws:iam::1:role/ops", role_session_name="session"), "PHNhbWw+"
        )


@pytest.mark.asyncio
async def test_assume_role_requires_static_credentials(provider):
    with pytest.raises(InvalidArgumentError):
        await provider.assume_role(
            AssumeRoleConfig(role_arn="arn:aws:iam::1:role/ops", role_session_name="session")
        )


@pytest.mark.asyncio
async def test_assume_role_with_static_credentials(client_factory, clients):
    clients["sts"].assume_role.return_value = sts_response()
    keys = StaticCredentials(access_key_id="AKIA", secret_access_key="secret")
    provider = AwsProvider(credentials=keys, client_factory=client_factory)

    credential = await provider.assume_role(
        AssumeRoleConfig(role_arn="arn:aws:iam::1:role/billing", role_session_name="session", external_id="ext")
    )

    assert client_factory.call_args.args[2] is keys
    assert clients["sts"].assume_role.call_args.kwargs["ExternalId"] == "ext"
    assert credential.session_token == "token"


@pytest.mark.asyncio
async def test_empty_sts_response_is_provider_error(client_factory, clients):
    clients["sts"].assume_role.return_value = {"Credentials": {}}
    provider = AwsProvider(
        credentials=StaticCredentials(access_key_id="AKIA", secret_access_key="secret"),
        client_factory=client_factory,
    )

    with pytest.raises(ProviderError):
        await provider.assume_role(AssumeRoleConfig(role_arn="arn", role_session_name="session"))


@pytest.mark.asyncio
async def test_validate_credentials_returns_caller_identity(provider, clients):
    clients["sts"].get_caller_identity.return_value = {
        "Account": "123456789012",
        "Arn": "arn:aws:iam::123456789012:user/ops",
        "UserId": "AIDA",
    }

    identity = await provider.validate_credentials()

    assert identity == {"account": "123456789012", "arn": "arn:aws:iam::123456789012:user/ops", "user_id": "AIDA"}
