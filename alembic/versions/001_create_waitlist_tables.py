"""create waitlist users and referrals

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'waitlist_users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verification_token', sa.String(64), nullable=True),
        sa.Column('verification_token_expires', sa.DateTime(), nullable=True),
        sa.Column('referral_code', sa.String(12), nullable=False),
        sa.Column('referred_by_id', sa.String(), nullable=True),
        sa.Column('referred_by_code', sa.String(12), nullable=True),
        sa.Column('referral_count', sa.Integer(), nullable=False, server_default="0"),
        sa.Column('current_tier', sa.Integer(), nullable=False, server_default="0"),
        sa.Column('tier1_unlocked_at', sa.DateTime(), nullable=True),
        sa.Column('tier2_unlocked_at', sa.DateTime(), nullable=True),
        sa.Column('tier3_unlocked_at', sa.DateTime(), nullable=True),
        sa.Column('tier4_unlocked_at', sa.DateTime(), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('convertkit_synced', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('convertkit_subscriber_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['referred_by_id'], ['waitlist_users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_waitlist_users_id'), 'waitlist_users', ['id'], unique=False)
    op.create_index(op.f('ix_waitlist_users_email'), 'waitlist_users', ['email'], unique=True)
    op.create_index(op.f('ix_waitlist_users_referral_code'), 'waitlist_users', ['referral_code'], unique=True)
    op.create_index(op.f('ix_waitlist_users_referred_by_id'), 'waitlist_users', ['referred_by_id'], unique=False)
    op.create_index(op.f('ix_waitlist_users_verification_token'), 'waitlist_users', ['verification_token'], unique=False)

    op.create_table(
        'waitlist_referrals',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('referrer_id', sa.String(), nullable=False),
        sa.Column('referred_id', sa.String(), nullable=False),
        sa.Column('referral_code', sa.String(12), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['referrer_id'], ['waitlist_users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referred_id'], ['waitlist_users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referred_id', name='uq_waitlist_referrals_referred'),
    )
    op.create_index(op.f('ix_waitlist_referrals_id'), 'waitlist_referrals', ['id'], unique=False)
    op.create_index(op.f('ix_waitlist_referrals_referrer_id'), 'waitlist_referrals', ['referrer_id'], unique=False)
    op.create_index(op.f('ix_waitlist_referrals_referral_code'), 'waitlist_referrals', ['referral_code'], unique=False)
    op.create_index('idx_waitlist_referrals_created', 'waitlist_referrals', ['created_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_waitlist_referrals_created', table_name='waitlist_referrals')
    op.drop_index(op.f('ix_waitlist_referrals_referral_code'), table_name='waitlist_referrals')
    op.drop_index(op.f('ix_waitlist_referrals_referrer_id'), table_name='waitlist_referrals')
    op.drop_index(op.f('ix_waitlist_referrals_id'), table_name='waitlist_referrals')
    op.drop_table('waitlist_referrals')

    op.drop_index(op.f('ix_waitlist_users_verification_token'), table_name='waitlist_users')
    op.drop_index(op.f('ix_waitlist_users_referred_by_id'), table_name='waitlist_users')
    op.drop_index(op.f('ix_waitlist_users_referral_code'), table_name='waitlist_users')
    op.drop_index(op.f('ix_waitlist_users_email'), table_name='waitlist_users')
    op.drop_index(op.f('ix_waitlist_users_id'), table_name='waitlist_users')
    op.drop_table('waitlist_users')
