"""onboarding schema: tenants, invitations, reminders, notification logs

Revision ID: 001_onboarding_schema
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_onboarding_schema'
down_revision = None
branch_labels = None
depends_on = None

invitation_role = sa.Enum('administrator', 'senior_member', 'member', name='invitation_role')
invitation_status = sa.Enum('invited', 'active', 'cancelled', name='invitation_status')


def upgrade() -> None:
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('contact_email', sa.String(length=255), nullable=False),
        sa.Column('city', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('plan', sa.String(length=50), nullable=False, server_default='standard'),
        sa.Column('billing', sa.JSON(), nullable=True),
        sa.Column('branding', sa.JSON(), nullable=True),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        sa.Column('provisioning_status', sa.String(length=20), nullable=False, server_default='provisioned'),
        sa.Column('provisioning_resources', sa.JSON(), nullable=True),
        sa.Column('provisioning_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tenants_id', 'tenants', ['id'])
    op.create_index('ix_tenants_slug', 'tenants', ['slug'], unique=True)
    op.create_index('ix_tenants_manager_id', 'tenants', ['manager_id'])

    op.create_table(
        'invitations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('role', invitation_role, nullable=False),
        sa.Column('status', invitation_status, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=True),
        sa.Column('tenant_name', sa.String(length=255), nullable=True),
        sa.Column('invited_by', sa.String(length=255), nullable=True),
        sa.Column('token', sa.String(length=128), nullable=True),
        sa.Column('token_generation', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('retired_token_hash', sa.String(length=64), nullable=True),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=True),
        sa.Column('last_name', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('hashed_password', sa.String(length=255), nullable=True),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_invitations_id', 'invitations', ['id'])
    op.create_index('ix_invitations_email', 'invitations', ['email'], unique=True)
    op.create_index('ix_invitations_token', 'invitations', ['token'], unique=True)
    op.create_index('ix_invitations_retired_token_hash', 'invitations', ['retired_token_hash'])
    op.create_index('ix_invitations_status', 'invitations', ['status'])
    op.create_index('ix_invitations_tenant_id', 'invitations', ['tenant_id'])

    op.create_table(
        'invitation_reminders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invitation_id', sa.Integer(), nullable=False),
        sa.Column('token_generation', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('stage', sa.String(length=20), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('message_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['invitation_id'], ['invitations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'invitation_id', 'token_generation', 'stage',
            name='uq_invitation_reminders_invitation_generation_stage',
        ),
    )
    op.create_index('ix_invitation_reminders_id', 'invitation_reminders', ['id'])
    op.create_index('ix_invitation_reminders_invitation_id', 'invitation_reminders', ['invitation_id'])

    op.create_table(
        'notification_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invitation_id', sa.Integer(), nullable=True),
        sa.Column('email_type', sa.String(length=50), nullable=False),
        sa.Column('recipient', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('message_id', sa.String(length=255), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['invitation_id'], ['invitations.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notification_logs_id', 'notification_logs', ['id'])
    op.create_index('ix_notification_logs_invitation_id', 'notification_logs', ['invitation_id'])


def downgrade() -> None:
    op.drop_table('notification_logs')
    op.drop_table('invitation_reminders')
    op.drop_table('invitations')
    op.drop_table('tenants')
    invitation_status.drop(op.get_bind(), checkfirst=True)
    invitation_role.drop(op.get_bind(), checkfirst=True)
