"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(with_updated: bool = True):
    columns = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]
    if with_updated:
        columns.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        )
    return columns


def upgrade() -> None:
    op.create_table(
        'csp_accounts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('csp_type', sa.String(50), nullable=False),
        sa.Column('account_info', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('name', 'csp_type', name='uq_csp_accounts_name_type'),
    )
    op.create_index('ix_csp_accounts_id', 'csp_accounts', ['id'])
    op.create_index('ix_csp_accounts_csp_type', 'csp_accounts', ['csp_type'])

    op.create_table(
        'csp_idp_configs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('csp_account_id', sa.Integer(), sa.ForeignKey('csp_accounts.id'), nullable=False),
        sa.Column('auth_method', sa.String(50), nullable=False),
        sa.Column('config', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('name', 'csp_account_id', name='uq_csp_idp_configs_name_account'),
    )
    op.create_index('ix_csp_idp_configs_id', 'csp_idp_configs', ['id'])
    op.create_index('ix_csp_idp_configs_csp_account_id', 'csp_idp_configs', ['csp_account_id'])

    op.create_table(
        'csp_roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('csp_type', sa.String(50), nullable=False),
        sa.Column('idp_identifier', sa.String(255), nullable=True),
        sa.Column('iam_identifier', sa.String(255), nullable=True),
        sa.Column('iam_role_id', sa.String(255), nullable=True),
        sa.Column('path', sa.String(255), nullable=True),
        sa.Column('status', sa.String(50), nullable=True),
        sa.Column('max_session_duration', sa.Integer(), nullable=True),
        sa.Column('permissions_boundary', sa.String(255), nullable=True),
        sa.Column('csp_account_id', sa.Integer(), sa.ForeignKey('csp_accounts.id'), nullable=True),
        sa.Column('csp_idp_config_id', sa.Integer(), sa.ForeignKey('csp_idp_configs.id'), nullable=True),
        sa.Column('extended_config', sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_csp_roles_id', 'csp_roles', ['id'])
    op.create_index('ix_csp_roles_name', 'csp_roles', ['name'])
    op.create_index('ix_csp_roles_csp_account_id', 'csp_roles', ['csp_account_id'])
    op.create_index('ix_csp_roles_csp_idp_config_id', 'csp_roles', ['csp_idp_config_id'])

    op.create_table(
        'csp_policies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('csp_account_id', sa.Integer(), sa.ForeignKey('csp_accounts.id'), nullable=False),
        sa.Column('policy_type', sa.String(50), nullable=False),
        sa.Column('policy_arn', sa.String(500), nullable=True),
        sa.Column('policy_doc', sa.JSON(), nullable=True),
        sa.Column('description', sa.String(1000), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('name', 'csp_account_id', name='uq_csp_policies_name_account'),
    )
    op.create_index('ix_csp_policies_id', 'csp_policies', ['id'])
    op.create_index('ix_csp_policies_csp_account_id', 'csp_policies', ['csp_account_id'])
    op.create_index('ix_csp_policies_policy_arn', 'csp_policies', ['policy_arn'])

    op.create_table(
        'csp_role_policy_mappings',
        sa.Column('csp_role_id', sa.Integer(), sa.ForeignKey('csp_roles.id'), primary_key=True),
        sa.Column('csp_policy_id', sa.Integer(), sa.ForeignKey('csp_policies.id'), primary_key=True),
        *_timestamps(with_updated=False),
    )

    op.create_table(
        'role_masters',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('role_masters.id'), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.String(1000), nullable=True),
        sa.Column('predefined', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_role_masters_id', 'role_masters', ['id'])
    op.create_index('ix_role_masters_name', 'role_masters', ['name'], unique=True)

    op.create_table(
        'role_subs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('role_masters.id'), nullable=False),
        sa.Column('role_type', sa.String(50), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('role_id', 'role_type', name='uq_role_subs_role_type'),
    )
    op.create_index('ix_role_subs_id', 'role_subs', ['id'])
    op.create_index('ix_role_subs_role_id', 'role_subs', ['role_id'])

    op.create_table(
        'role_csp_role_mappings',
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('role_masters.id'), primary_key=True),
        sa.Column('auth_method', sa.String(50), primary_key=True),
        sa.Column('csp_role_id', sa.Integer(), sa.ForeignKey('csp_roles.id'), primary_key=True),
        sa.Column('description', sa.String(1000), nullable=True),
        *_timestamps(with_updated=False),
    )


def downgrade() -> None:
    op.drop_table('role_csp_role_mappings')
    op.drop_index('ix_role_subs_role_id', table_name='role_subs')
    op.drop_index('ix_role_subs_id', table_name='role_subs')
    op.drop_table('role_subs')
    op.drop_index('ix_role_masters_name', table_name='role_masters')
    op.drop_index('ix_role_masters_id', table_name='role_masters')
    op.drop_table('role_masters')
    op.drop_table('csp_role_policy_mappings')
    op.drop_index('ix_csp_policies_policy_arn', table_name='csp_policies')
    op.drop_index('ix_csp_policies_csp_account_id', table_name='csp_policies')
    op.drop_index('ix_csp_policies_id', table_name='csp_policies')
    op.drop_table('csp_policies')
    op.drop_index('ix_csp_roles_csp_idp_config_id', table_name='csp_roles')
    op.drop_index('ix_csp_roles_csp_account_id', table_name='csp_roles')
    op.drop_index('ix_csp_roles_name', table_name='csp_roles')
    op.drop_index('ix_csp_roles_id', table_name='csp_roles')
    op.drop_table('csp_roles')
    op.drop_index('ix_csp_idp_configs_csp_account_id', table_name='csp_idp_configs')
    op.drop_index('ix_csp_idp_configs_id', table_name='csp_idp_configs')
    op.drop_table('csp_idp_configs')
    op.drop_index('ix_csp_accounts_csp_type', table_name='csp_accounts')
    op.drop_index('ix_csp_accounts_id', table_name='csp_accounts')
    op.drop_table('csp_accounts')
