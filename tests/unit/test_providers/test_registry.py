"""Unit tests for the provider registry and unbacked providers."""

from unittest.mock import MagicMock

import pytest

from cloudiam.core.errors import UnimplementedError
from cloudiam.providers.aws import AwsProvider
from cloudiam.providers.azure import AzureProvider
from cloudiam.providers.base import AssumeRoleConfig, StaticCredentials
from cloudiam.providers.gcp import GcpProvider
from cloudiam.providers.registry import ProviderRegistry
from cloudiam.utils.constants import CspType


def test_default_registry_builds_aws_provider():
    registry = ProviderRegistry(timeout=3)
    keys = StaticCredentials(access_key_id="AKIA", secret_access_key="secret")

    provider = registry.get(CspType.AWS, region="us-east-1", credentials=keys)

    assert isinstance(provider, AwsProvider)
    assert provider.region == "us-east-1"
    assert provider.credentials is keys
    assert provider.timeout == 3


def test_registry_accepts_string_csp_type():
    assert isinstance(ProviderRegistry().get("gcp"), GcpProvider)


def test_unregistered_type_is_unimplemented():
    registry = ProviderRegistry(providers={CspType.AWS: MagicMock()})

    assert not registry.supports(CspType.AZURE)
    with pytest.raises(UnimplementedError):
        registry.get(CspType.AZURE)


def test_register_replaces_factory():
    registry = ProviderRegistry(providers={})
    factory = MagicMock()
    registry.register(CspType.AZURE, factory)

    registry.get(CspType.AZURE, region="koreacentral")

    assert registry.supports("azure")
    assert factory.call_args.kwargs["region"] == "koreacentral"


@pytest.mark.asyncio
@pytest.mark.parametrize("provider_class", [GcpProvider, AzureProvider])
async def test_unbacked_providers_report_unimplemented(provider_class):
    provider = provider_class()

    with pytest.raises(UnimplementedError):
        await provider.assume_role(AssumeRoleConfig(role_arn="role", role_session_name="session"))
    with pytest.raises(UnimplementedError):
        await provider.get_role("role")
