"""add trial fingerprints table

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '1a2b3c4d5e6f'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create trial_fingerprints table for one-trial-per-device tracking"""
    op.create_table(
        'trial_fingerprints',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('fingerprint_hash', sa.String(length=128), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.Column('screen_resolution', sa.String(length=50), nullable=True),
        sa.Column('timezone', sa.String(length=100), nullable=True),
        sa.Column('trial_used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('trial_start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('trial_end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # The unique index is what makes the conditional upsert atomic
    op.create_index(op.f('ix_trial_fingerprints_id'), 'trial_fingerprints', ['id'], unique=False)
    op.create_index(op.f('ix_trial_fingerprints_fingerprint_hash'), 'trial_fingerprints', ['fingerprint_hash'], unique=True)
    op.create_index(op.f('ix_trial_fingerprints_user_id'), 'trial_fingerprints', ['user_id'], unique=False)
    op.create_index('ix_trial_fingerprints_ip_created', 'trial_fingerprints', ['ip_address', 'created_at'], unique=False)


def downgrade() -> None:
    """Drop trial_fingerprints table"""
    op.drop_index('ix_trial_fingerprints_ip_created', table_name='trial_fingerprints')
    op.drop_index(op.f('ix_trial_fingerprints_user_id'), table_name='trial_fingerprints')
    op.drop_index(op.f('ix_trial_fingerprints_fingerprint_hash'), table_name='trial_fingerprints')
    op.drop_index(op.f('ix_trial_fingerprints_id'), table_name='trial_fingerprints')
    op.drop_table('trial_fingerprints')
