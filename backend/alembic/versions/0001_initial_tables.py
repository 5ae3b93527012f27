"""Create pow_challenges, reward_claims and claim_attempts tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "pow_challenges",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("challenge", sa.String(255), unique=True, nullable=False),
        sa.Column("pubkey", sa.String(128), nullable=False),
        sa.Column("score", sa.BigInteger, nullable=False),
        sa.Column("difficulty", sa.Integer, nullable=False),
        sa.Column("timestamp_ms", sa.BigInteger, nullable=False),
        sa.Column("expires_at", sa.DateTime, nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("is_used", sa.Boolean, default=False, nullable=False),
    )
    op.create_index("ix_pow_challenges_pubkey", "pow_challenges", ["pubkey"])
    op.create_index("ix_pow_challenges_expires_at", "pow_challenges", ["expires_at"])

    # One row per (pubkey, score); the constraint is the double-claim guard
    op.create_table(
        "reward_claims",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("pubkey", sa.String(128), nullable=False),
        sa.Column("score", sa.BigInteger, nullable=False),
        sa.Column("satoshis", sa.Integer, nullable=False),
        sa.Column("pull_payment_id", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.UniqueConstraint("pubkey", "score", name="uq_reward_claims_pubkey_score"),
    )
    op.create_index("ix_reward_claims_pubkey", "reward_claims", ["pubkey"])

    op.create_table(
        "claim_attempts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("pubkey", sa.String(128), nullable=False),
        sa.Column("attempted_at_ms", sa.BigInteger, nullable=False),
    )
    op.create_index("ix_claim_attempts_pubkey", "claim_attempts", ["pubkey"])
    op.create_index("ix_claim_attempts_attempted_at_ms", "claim_attempts", ["attempted_at_ms"])


def downgrade() -> None:
    op.drop_index("ix_claim_attempts_attempted_at_ms", table_name="claim_attempts")
    op.drop_index("ix_claim_attempts_pubkey", table_name="claim_attempts")
    op.drop_table("claim_attempts")

    op.drop_index("ix_reward_claims_pubkey", table_name="reward_claims")
    op.drop_table("reward_claims")

    op.drop_index("ix_pow_challenges_expires_at", table_name="pow_challenges")
    op.drop_index("ix_pow_challenges_pubkey", table_name="pow_challenges")
    op.drop_table("pow_challenges")
