"""Unit tests for CspPolicyService."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from cloudiam.core.errors import AlreadyExistsError, DependentsExistError, NotFoundError
from cloudiam.repositories.csp_policy_repo import CspPolicyRepository
from cloudiam.schemas.csp_policy import CspPolicyCreate
from cloudiam.services.credential_service import CredentialService
from cloudiam.services.csp_policy_service import CspPolicyService
from cloudiam.utils.constants import PolicyType

DOCUMENT = {
    "Version": "2012-10-17",
    "Statement": [{"Effect": "Allow", "Action": "ce:Get*", "Resource": "*"}],
}


@pytest.fixture
def service(db_session, registry, fake_broker, cipher):
    credential_service = CredentialService(db_session, registry=registry, broker=fake_broker, cipher=cipher)
    return CspPolicyService(db_session, credential_service=credential_service, registry=registry)


@pytest.fixture
async def billing_policy(service, aws_account):
    return await service.create_policy(
        CspPolicyCreate(
            name="billing-read",
            csp_account_id=aws_account.id,
            policy_type=PolicyType.CUSTOM,
            policy_doc=DOCUMENT,
        )
    )


@pytest.mark.asyncio
async def test_create_duplicate_name_in_account(service, aws_account, billing_policy):
    with pytest.raises(AlreadyExistsError):
        await service.create_policy(
            CspPolicyCreate(name="billing-read", csp_account_id=aws_account.id, policy_type=PolicyType.CUSTOM)
        )


@pytest.mark.asyncio
async def test_create_for_unknown_account(service):
    with pytest.raises(NotFoundError):
        await service.create_policy(
            CspPolicyCreate(name="orphan", csp_account_id=999, policy_type=PolicyType.CUSTOM)
        )


@pytest.mark.asyncio
async def test_delete_attached_policy_is_blocked_until_detached(
    service, db_session, billing_policy, csp_role_record
):
    """Delete fails while a role has the policy attached and succeeds once detached."""
    await service.attach_policy_to_role(csp_role_record.id, billing_policy.id)

    with pytest.raises(DependentsExistError) as exc_info:
        await service.delete_policy(billing_policy.id)
    assert exc_info.value.count == 1

    await service.detach_policy_from_role(csp_role_record.id, billing_policy.id)
    await service.delete_policy(billing_policy.id)

    repo = CspPolicyRepository(db_session)
    assert await repo.count_attachments_by_policy_id(billing_policy.id) == 0
    with pytest.raises(NotFoundError):
        await service.get_policy(billing_policy.id)


@pytest.mark.asyncio
async def test_attach_twice(service, billing_policy, csp_role_record):
    await service.attach_policy_to_role(csp_role_record.id, billing_policy.id)

    with pytest.raises(AlreadyExistsError):
        await service.attach_policy_to_role(csp_role_record.id, billing_policy.id)


@pytest.mark.asyncio
async def test_detach_unattached(service, billing_policy, csp_role_record):
    with pytest.raises(NotFoundError):
        await service.detach_policy_from_role(csp_role_record.id, billing_policy.id)


@pytest.mark.asyncio
async def test_attachment_lookups(service, billing_policy, csp_role_record):
    await service.attach_policy_to_role(csp_role_record.id, billing_policy.id)

    policies = await service.get_policies_by_role(csp_role_record.id)
    roles = await service.get_roles_by_policy(billing_policy.id)

    assert [p.id for p in policies] == [billing_policy.id]
    assert [r.id for r in roles] == [csp_role_record.id]


@pytest.mark.asyncio
async def test_stored_document_is_returned_without_provider(service, billing_policy, fake_provider):
    document = await service.get_policy_document(billing_policy.id)

    assert document == DOCUMENT
    fake_provider.get_policy_document.assert_not_awaited()


@pytest.mark.asyncio
async def test_managed_document_is_fetched_from_provider(service, aws_account, oidc_config, fake_provider):
    """A managed policy without a stored document reads its default version from the provider."""
    policy = await service.create_policy(
        CspPolicyCreate(
            name="ReadOnlyAccess",
            csp_account_id=aws_account.id,
            policy_type=PolicyType.MANAGED,
            policy_arn="arn:aws:iam::aws:policy/ReadOnlyAccess",
        )
    )

    document = await service.get_policy_document(policy.id)

    fake_provider.get_policy_document.assert_awaited_once_with("arn:aws:iam::aws:policy/ReadOnlyAccess")
    assert document["Version"] == "2012-10-17"


@pytest.mark.asyncio
async def test_custom_policy_without_document_is_not_found(service, aws_account):
    policy = await service.create_policy(
        CspPolicyCreate(name="empty", csp_account_id=aws_account.id, policy_type=PolicyType.CUSTOM)
    )

    with pytest.raises(NotFoundError):
        await service.get_policy_document(policy.id)


@pytest.mark.asyncio
async def test_delete_checks_attachments_before_deleting():
    """The attachment count gates the delete in the same unit of work."""
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    service = CspPolicyService(db, credential_service=MagicMock(), registry=MagicMock())
    service.repo = MagicMock()
    service.repo.exists_by_id = AsyncMock(return_value=True)
    service.repo.count_attachments_by_policy_id = AsyncMock(return_value=2)
    service.repo.delete_with_attachments = AsyncMock()

    with pytest.raises(DependentsExistError):
        await service.delete_policy(1)

    service.repo.delete_with_attachments.assert_not_awaited()
    db.rollback.assert_awaited_once()
    db.commit.assert_not_awaited()
