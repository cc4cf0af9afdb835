"""Unit tests for PolicySyncService."""

import pytest

from cloudiam.core.errors import InvalidStateError, NotFoundError, UnimplementedError
from cloudiam.models.csp_account import CspAccount
from cloudiam.models.csp_idp_config import CspIdpConfig
from cloudiam.models.csp_policy import CspPolicy
from cloudiam.providers.base import PolicyInfo
from cloudiam.repositories.csp_policy_repo import CspPolicyRepository
from cloudiam.schemas.csp_policy import CspPolicyFilter
from cloudiam.services.credential_service import CredentialService
from cloudiam.services.policy_sync_service import PolicySyncService
from cloudiam.utils.constants import AuthMethod, CspType, PolicyScope, PolicyType

ACCOUNT_POLICY = PolicyInfo(
    arn="arn:aws:iam::123456789012:policy/billing-read",
    name="billing-read",
    description="Read billing data",
)
OPS_POLICY = PolicyInfo(arn="arn:aws:iam::123456789012:policy/ops", name="ops")


@pytest.fixture
def service(db_session, registry, fake_broker, cipher):
    credential_service = CredentialService(db_session, registry=registry, broker=fake_broker, cipher=cipher)
    return PolicySyncService(db_session, credential_service=credential_service, registry=registry)


async def account_policies(db_session, account_id):
    return await CspPolicyRepository(db_session).list(CspPolicyFilter(csp_account_id=account_id))


@pytest.mark.asyncio
async def test_repeated_sync_creates_no_duplicates(service, db_session, aws_account, oidc_config, fake_provider):
    """Running the same sync twice yields the same local set."""
    fake_provider.list_policies.return_value = ([ACCOUNT_POLICY, OPS_POLICY], None)

    first = await service.sync_from_cloud(aws_account.id)
    second = await service.sync_from_cloud(aws_account.id)

    assert (first.created, first.updated) == (2, 0)
    assert (second.created, second.updated) == (0, 0)
    policies = await account_policies(db_session, aws_account.id)
    assert sorted(p.policy_arn for p in policies) == sorted([ACCOUNT_POLICY.arn, OPS_POLICY.arn])
    assert all(p.policy_type == PolicyType.MANAGED for p in policies)


@pytest.mark.asyncio
async def test_sync_follows_pagination_and_scope(service, aws_account, oidc_config, fake_provider):
    fake_provider.list_policies.side_effect = [([ACCOUNT_POLICY], "page-2"), ([OPS_POLICY], None)]

    result = await service.sync_from_cloud(aws_account.id, PolicyScope.ALL)

    assert result.created == 2
    filters = [call.args[0] for call in fake_provider.list_policies.await_args_list]
    assert [f.marker for f in filters] == [None, "page-2"]
    assert all(f.scope == PolicyScope.ALL for f in filters)


@pytest.mark.asyncio
async def test_sync_updates_changed_description(service, db_session, aws_account, oidc_config, fake_provider):
    fake_provider.list_policies.return_value = ([ACCOUNT_POLICY], None)
    await service.sync_from_cloud(aws_account.id)

    fake_provider.list_policies.return_value = (
        [PolicyInfo(arn=ACCOUNT_POLICY.arn, name="billing-read", description="Read-only billing")],
        None,
    )
    result = await service.sync_from_cloud(aws_account.id)

    assert result.updated == 1
    (policy,) = await account_policies(db_session, aws_account.id)
    assert policy.description == "Read-only billing"


@pytest.mark.asyncio
async def test_sync_never_deletes_local_policies(service, db_session, aws_account, oidc_config, fake_provider):
    """Policies gone from the provider stay in the store."""
    db_session.add(
        CspPolicy(
            name="legacy",
            csp_account_id=aws_account.id,
            policy_type=PolicyType.MANAGED,
            policy_arn="arn:aws:iam::123456789012:policy/legacy",
        )
    )
    await db_session.commit()
    fake_provider.list_policies.return_value = ([], None)

    await service.sync_from_cloud(aws_account.id)

    assert [p.name for p in await account_policies(db_session, aws_account.id)] == ["legacy"]


@pytest.mark.asyncio
async def test_sync_adopts_local_policy_with_same_name(
    service, db_session, aws_account, oidc_config, fake_provider
):
    db_session.add(
        CspPolicy(name="billing-read", csp_account_id=aws_account.id, policy_type=PolicyType.CUSTOM)
    )
    await db_session.commit()
    fake_provider.list_policies.return_value = ([ACCOUNT_POLICY], None)

    result = await service.sync_from_cloud(aws_account.id)

    assert result.created == 0
    (policy,) = await account_policies(db_session, aws_account.id)
    assert policy.policy_arn == ACCOUNT_POLICY.arn


@pytest.mark.asyncio
async def test_failing_record_is_skipped(service, db_session, aws_account, oidc_config, fake_provider):
    """A record that cannot be stored is skipped; the rest of the pass completes."""
    unnamed = PolicyInfo(arn="arn:aws:iam::123456789012:policy/broken", name=None)
    fake_provider.list_policies.return_value = ([unnamed, OPS_POLICY], None)

    result = await service.sync_from_cloud(aws_account.id)

    assert result.skipped == 1
    assert result.created == 1
    assert [p.name for p in result.policies] == ["ops"]


@pytest.mark.asyncio
async def test_sync_requires_active_idp_config(service, aws_account):
    with pytest.raises(InvalidStateError):
        await service.sync_from_cloud(aws_account.id)


@pytest.mark.asyncio
async def test_sync_unknown_account(service):
    with pytest.raises(NotFoundError):
        await service.sync_from_cloud(999)


@pytest.mark.asyncio
@pytest.mark.parametrize("csp_type", [CspType.GCP, CspType.AZURE])
async def test_sync_non_aws_account_is_unimplemented(service, db_session, fake_broker, csp_type):
    """Non-AWS accounts are refused before any credential is requested."""
    account = CspAccount(name=f"corp-{csp_type.value}", csp_type=csp_type, account_info={}, is_active=True)
    db_session.add(account)
    await db_session.flush()
    db_session.add(
        CspIdpConfig(
            name="wif",
            csp_account_id=account.id,
            auth_method=AuthMethod.OIDC,
            config={"workload_identity_provider": "projects/1/locations/global/workloadIdentityPools/p"},
            is_active=True,
        )
    )
    await db_session.commit()

    with pytest.raises(UnimplementedError):
        await service.sync_from_cloud(account.id)

    fake_broker.get_client_credentials_token.assert_not_awaited()
