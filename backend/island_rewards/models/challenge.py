import uuid
from datetime import UTC, datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from island_rewards.database import Base


class PowChallenge(Base):
    """
    A proof-of-work challenge issued for one reward claim.

    The challenge string embeds the pubkey, score and issue time so a solved
    nonce cannot be replayed for a different score. Rows are single-use:
    the first verification attempt marks them used, pass or fail.
    """

    __tablename__ = "pow_challenges"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    challenge: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    pubkey: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    score: Mapped[int] = mapped_column(BigInteger, nullable=False)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)

    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC).replace(tzinfo=None), nullable=False
    )
    is_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
