"""create_directory_tables

Revision ID: 3f9c2a71d5e0
Revises:
Create Date: 2026-10-12 09:14:03.512447

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9c2a71d5e0'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = {
    'institutiontype': ('mother', 'child_online', 'child_offline'),
    'userrole': ('student', 'instructor', 'institution_admin', 'super_admin'),
    'membershipstatus': ('pending', 'approved', 'rejected', 'transferred'),
    'joinmethod': (
        'browse', 'invite_code', 'email_domain', 'admin_added', 'auto_parent'
    ),
    'auditseverity': ('info', 'warning', 'critical'),
}


def _enum(name: str) -> postgresql.ENUM:
    # Types are created up front; columns only reference them
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def upgrade() -> None:
    """Upgrade schema."""
    # Create the enum types first (PostgreSQL)
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).create(op.get_bind(), checkfirst=True)

    op.create_table(
        'institutions',
        sa.Column('id', sqlmodel.sql.sqltypes.AutoString(length=30), nullable=False),
        sa.Column('name', sqlmodel.sql.sqltypes.AutoString(length=200), nullable=False),
        sa.Column(
            'institution_type',
            _enum('institutiontype'),
            nullable=False,
        ),
        sa.Column(
            'parent_institution_id',
            sqlmodel.sql.sqltypes.AutoString(length=30),
            nullable=True,
        ),
        sa.Column('allowed_email_domains', sa.JSON(), nullable=False),
        sa.Column('invite_code', sqlmodel.sql.sqltypes.AutoString(length=8), nullable=False),
        sa.Column('allow_external_users', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column(
            'created_at',
            sa.DateTime(),
            server_default=sa.text('CURRENT_TIMESTAMP'),
            nullable=False,
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(),
            server_default=sa.text('CURRENT_TIMESTAMP'),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(['parent_institution_id'], ['institutions.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_institutions_parent_institution_id'),
        'institutions',
        ['parent_institution_id'],
    )
    op.create_index(op.f('ix_institutions_is_active'), 'institutions', ['is_active'])

    op.create_table(
        'users',
        sa.Column('uid', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=False),
        sa.Column('email', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('display_name', sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column('institution_id', sqlmodel.sql.sqltypes.AutoString(length=30), nullable=False),
        sa.Column(
            'active_institution_id',
            sqlmodel.sql.sqltypes.AutoString(length=30),
            nullable=True,
        ),
        sa.Column('role', _enum('userrole'), nullable=False),
        sa.Column('is_external', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.Column(
            'created_at',
            sa.DateTime(),
            server_default=sa.text('CURRENT_TIMESTAMP'),
            nullable=False,
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(),
            server_default=sa.text('CURRENT_TIMESTAMP'),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint('uid'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'])
    op.create_index(op.f('ix_users_institution_id'), 'users', ['institution_id'])

    # No foreign key on user_id: memberships survive a bulk user wipe
    op.create_table(
        'memberships',
        sa.Column('user_id', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=False),
        sa.Column('institution_id', sqlmodel.sql.sqltypes.AutoString(length=30), nullable=False),
        sa.Column(
            'role',
            _enum('userrole'),
            nullable=False,
        ),
        sa.Column(
            'status',
            _enum('membershipstatus'),
            nullable=False,
        ),
        sa.Column('is_external', sa.Boolean(), nullable=False),
        sa.Column(
            'join_method',
            _enum('joinmethod'),
            nullable=False,
        ),
        sa.Column('requested_at', sa.DateTime(), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('reviewed_by', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=True),
        sa.Column('review_note', sqlmodel.sql.sqltypes.AutoString(length=500), nullable=True),
        sa.Column('transferred_to', sqlmodel.sql.sqltypes.AutoString(length=30), nullable=True),
        sa.Column(
            'created_at',
            sa.DateTime(),
            server_default=sa.text('CURRENT_TIMESTAMP'),
            nullable=False,
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(),
            server_default=sa.text('CURRENT_TIMESTAMP'),
            nullable=False,
        ),
        sa.CheckConstraint(
            "(status = 'transferred') = (transferred_to IS NOT NULL)",
            name='ck_memberships_transferred_to',
        ),
        sa.ForeignKeyConstraint(['institution_id'], ['institutions.id']),
        sa.PrimaryKeyConstraint('user_id', 'institution_id'),
    )
    op.create_index(
        'ix_memberships_institution_status',
        'memberships',
        ['institution_id', 'status'],
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('institution_id', sqlmodel.sql.sqltypes.AutoString(length=30), nullable=False),
        sa.Column('actor_id', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=False),
        sa.Column('actor_email', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('actor_role', sqlmodel.sql.sqltypes.AutoString(length=30), nullable=False),
        sa.Column('action', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column('resource', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column('resource_id', sqlmodel.sql.sqltypes.AutoString(length=200), nullable=False),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column(
            'severity',
            _enum('auditseverity'),
            nullable=False,
        ),
        sa.Column(
            'created_at',
            sa.DateTime(),
            server_default=sa.text('CURRENT_TIMESTAMP'),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_audit_logs_institution_id'), 'audit_logs', ['institution_id'])
    op.create_index(op.f('ix_audit_logs_action'), 'audit_logs', ['action'])
    op.create_index(op.f('ix_audit_logs_created_at'), 'audit_logs', ['created_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('audit_logs')
    op.drop_table('memberships')
    op.drop_table('users')
    op.drop_table('institutions')

    # Drop the enum types (PostgreSQL)
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).drop(op.get_bind(), checkfirst=True)
