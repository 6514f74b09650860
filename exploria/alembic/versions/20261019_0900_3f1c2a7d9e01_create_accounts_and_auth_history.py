"""create_accounts_and_auth_history

Revision ID: 3f1c2a7d9e01
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c2a7d9e01'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'accounts',
        sa.Column('user_refid', sa.TEXT(), nullable=False),
        sa.Column('firebase_uid', sa.TEXT(), nullable=False),
        sa.Column('email', sa.TEXT(), nullable=False),
        sa.Column('email_verified', sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        sa.Column('confirmed', sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        sa.Column('account_status', sa.TEXT(), nullable=False, server_default='active'),
        sa.Column('is_admin', sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        sa.Column('is_staff', sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        sa.Column('is_operator', sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        sa.Column('firstname', sa.TEXT(), nullable=True),
        sa.Column('lastname', sa.TEXT(), nullable=True),
        sa.Column('display_name', sa.TEXT(), nullable=True),
        sa.Column('birthday', sa.DATE(), nullable=True),
        sa.Column('gender', sa.TEXT(), nullable=True),
        sa.Column('mobile_number', sa.TEXT(), nullable=True),
        sa.Column('mobile_country_code', sa.TEXT(), nullable=True),
        sa.Column('nationality', sa.TEXT(), nullable=True),
        sa.Column('home_country', sa.TEXT(), nullable=True),
        sa.Column('home_city', sa.TEXT(), nullable=True),
        sa.Column('preferred_language', sa.TEXT(), nullable=True),
        sa.Column('preferred_currency', sa.TEXT(), nullable=True),
        sa.Column('profile_photo_url', sa.TEXT(), nullable=True),
        sa.Column('referral_code', sa.TEXT(), nullable=False),
        sa.Column('registration_source', sa.TEXT(), nullable=False, server_default='web'),
        sa.Column('member_tier', sa.TEXT(), nullable=True),
        sa.Column('loyalty_points', sa.BIGINT(), nullable=False, server_default='0'),
        sa.Column('gps_longitude', sa.FLOAT(), nullable=True),
        sa.Column('gps_latitude', sa.FLOAT(), nullable=True),
        sa.Column('gps_updated_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('last_login_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('last_login_ip', sa.TEXT(), nullable=True),
        sa.Column('last_login_device', sa.TEXT(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('user_refid'),
        # Storage-level arbiters for concurrent registration
        sa.UniqueConstraint('firebase_uid', name='uq_accounts_firebase_uid'),
        sa.UniqueConstraint('email', name='uq_accounts_email'),
        sa.UniqueConstraint('referral_code', name='uq_accounts_referral_code'),
        sa.CheckConstraint(
            "account_status IN ('active', 'suspended', 'locked', 'deleted')",
            name='ck_accounts_status',
        ),
    )
    op.create_index('idx_accounts_email_uid', 'accounts', ['email', 'firebase_uid'])

    op.create_table(
        'auth_history',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('auth_refid', sa.TEXT(), nullable=False),
        sa.Column('user_refid', sa.TEXT(), nullable=True),
        sa.Column('firebase_uid', sa.TEXT(), nullable=True),
        sa.Column('auth_type', sa.TEXT(), nullable=False),
        sa.Column('auth_method', sa.TEXT(), nullable=True),
        sa.Column('auth_status', sa.TEXT(), nullable=False, server_default='success'),
        sa.Column('failure_reason', sa.TEXT(), nullable=True),
        sa.Column('portal_type', sa.TEXT(), nullable=True),
        sa.Column('device_type', sa.TEXT(), nullable=True),
        sa.Column('device_model', sa.TEXT(), nullable=True),
        sa.Column('device_name', sa.TEXT(), nullable=True),
        sa.Column('os_name', sa.TEXT(), nullable=True),
        sa.Column('os_version', sa.TEXT(), nullable=True),
        sa.Column('browser_name', sa.TEXT(), nullable=True),
        sa.Column('browser_version', sa.TEXT(), nullable=True),
        sa.Column('app_version', sa.TEXT(), nullable=True),
        sa.Column('ip_address', sa.TEXT(), nullable=True),
        sa.Column('user_agent', sa.TEXT(), nullable=True),
        sa.Column('is_new_device', sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        sa.Column('request_id', sa.TEXT(), nullable=True),
        sa.Column('auth_timestamp', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('auth_refid', name='uq_auth_history_auth_refid'),
    )
    op.create_index('idx_auth_history_user_ts', 'auth_history', ['user_refid', 'auth_timestamp'])
    op.create_index('idx_auth_history_uid', 'auth_history', ['firebase_uid'])


def downgrade() -> None:
    op.drop_index('idx_auth_history_uid', table_name='auth_history')
    op.drop_index('idx_auth_history_user_ts', table_name='auth_history')
    op.drop_table('auth_history')
    op.drop_index('idx_accounts_email_uid', table_name='accounts')
    op.drop_table('accounts')
