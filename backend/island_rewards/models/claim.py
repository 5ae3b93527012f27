from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from island_rewards.database import Base


class RewardClaim(Base):
    """A score that a pubkey has been paid for. Never expires."""

    __tablename__ = "reward_claims"
    __table_args__ = (UniqueConstraint("pubkey", "score", name="uq_reward_claims_pubkey_score"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pubkey: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    score: Mapped[int] = mapped_column(BigInteger, nullable=False)
    satoshis: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pull_payment_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC).replace(tzinfo=None), nullable=False
    )


class ClaimAttempt(Base):
    """Timestamp of a claim attempt, kept for 24 hours for rate checks."""

    __tablename__ = "claim_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pubkey: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    attempted_at_ms: Mapped[int] = mapped_column(BigInteger, index=True, nullable=False)
