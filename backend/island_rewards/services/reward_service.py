"""
Satoshi Stacker rewards: tier table, claim ledger and the claim flow.

A claim is paid at most once per (pubkey, score). The ledger keeps two
independent per-pubkey collections: the claimed scores, kept forever, and
the timestamps of claim attempts, kept for 24 hours for abuse detection.
"""

import re
from dataclasses import dataclass

import httpx
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from island_rewards.config import settings
from island_rewards.logging_config import get_logger, short_pubkey
from island_rewards.models.claim import ClaimAttempt, RewardClaim
from island_rewards.schemas.reward import RewardClaimRequest
from island_rewards.services.pow_service import (
    ChallengeVerificationError,
    consume_challenge,
    now_ms,
)
from island_rewards.services.withdrawal_service import (
    PullPaymentConfig,
    WithdrawalQR,
    generate_withdrawal_qr,
)

logger = get_logger(__name__)

LIGHTNING_ADDRESS_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


@dataclass(frozen=True)
class RewardTier:
    min_score: int
    max_score: int | None  # None means no upper bound
    satoshis: int
    description: str

    def contains(self, score: int) -> bool:
        return score >= self.min_score and (self.max_score is None or score <= self.max_score)


REWARD_TIERS: tuple[RewardTier, ...] = (
    RewardTier(100, 999, 1, "Satoshi Starter"),
    RewardTier(1000, 4999, 5, "Bitcoin Beginner"),
    RewardTier(5000, 9999, 10, "Stacking Apprentice"),
    RewardTier(10000, 19999, 21, "HODLer"),
    RewardTier(20000, 49999, 50, "Diamond Hands"),
    RewardTier(50000, 99999, 100, "Bitcoin Maximalist"),
    RewardTier(100000, None, 210, "Legendary Stacker"),
)


def get_reward_tier(score: int) -> RewardTier | None:
    for tier in REWARD_TIERS:
        if tier.contains(score):
            return tier
    return None


def get_reward_amount(score: int) -> int:
    tier = get_reward_tier(score)
    return tier.satoshis if tier else 0


def validate_lightning_address(address: str) -> bool:
    """Loose check that ``address`` looks like ``name@domain.tld``."""
    return bool(LIGHTNING_ADDRESS_RE.match(address))


class ClaimLedger:
    """
    Claim bookkeeping bound to one database session.

    Construct one per request (or per job) and pass it to whatever needs it.
    The UNIQUE (pubkey, score) constraint makes ``record_reward_claim`` an
    atomic check-and-set, so concurrent claims of one score cannot both win.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def has_claimed_reward(self, pubkey: str, score: int) -> bool:
        stmt = select(RewardClaim.id).where(
            RewardClaim.pubkey == pubkey, RewardClaim.score == score
        )
        return self.db.execute(stmt).first() is not None

    def record_reward_claim(
        self,
        pubkey: str,
        score: int,
        satoshis: int | None = None,
        pull_payment_id: str | None = None,
    ) -> bool:
        """Record a claimed score. Returns False if it was already recorded."""
        if self.has_claimed_reward(pubkey, score):
            return False

        if satoshis is None:
            satoshis = get_reward_amount(score)
        self.db.add(
            RewardClaim(
                pubkey=pubkey,
                score=score,
                satoshis=satoshis,
                pull_payment_id=pull_payment_id,
            )
        )
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        return True

    def release_reward_claim(self, pubkey: str, score: int) -> None:
        """Forget a claim whose payout could not be created."""
        self.db.execute(
            delete(RewardClaim).where(RewardClaim.pubkey == pubkey, RewardClaim.score == score)
        )
        self.db.commit()

    def get_claim_history(self, pubkey: str) -> list[int]:
        stmt = (
            select(RewardClaim.score)
            .where(RewardClaim.pubkey == pubkey)
            .order_by(RewardClaim.id)
        )
        return list(self.db.scalars(stmt))

    def get_total_rewards_earned(self, pubkey: str) -> int:
        return sum(get_reward_amount(score) for score in self.get_claim_history(pubkey))

    def record_claim_attempt(self, pubkey: str, at_ms: int | None = None) -> None:
        """Store an attempt timestamp and drop this pubkey's attempts older than retention."""
        if at_ms is None:
            at_ms = now_ms()
        cutoff = at_ms - settings.claim_attempt_retention_seconds * 1000

        self.db.add(ClaimAttempt(pubkey=pubkey, attempted_at_ms=at_ms))
        self.db.execute(
            delete(ClaimAttempt).where(
                ClaimAttempt.pubkey == pubkey,
                ClaimAttempt.attempted_at_ms <= cutoff,
            )
        )
        self.db.commit()

    def count_recent_attempts(self, pubkey: str, at_ms: int | None = None) -> int:
        if at_ms is None:
            at_ms = now_ms()
        window_start = at_ms - settings.claim_rate_window_seconds * 1000
        stmt = select(func.count(ClaimAttempt.id)).where(
            ClaimAttempt.pubkey == pubkey,
            ClaimAttempt.attempted_at_ms > window_start,
        )
        return self.db.scalar(stmt) or 0

    def is_claim_rate_suspicious(self, pubkey: str, at_ms: int | None = None) -> bool:
        """More than the allowed number of attempts inside the trailing window."""
        return self.count_recent_attempts(pubkey, at_ms) > settings.claim_rate_max_attempts

    def cleanup_stale_attempts(self, at_ms: int | None = None) -> int:
        """Delete attempts older than the retention window for every pubkey."""
        if at_ms is None:
            at_ms = now_ms()
        cutoff = at_ms - settings.claim_attempt_retention_seconds * 1000
        result = self.db.execute(
            delete(ClaimAttempt).where(ClaimAttempt.attempted_at_ms <= cutoff)
        )
        self.db.commit()
        return result.rowcount


@dataclass(frozen=True)
class RewardResponse:
    success: bool
    satoshis: int = 0
    error: str | None = None
    error_code: str | None = None
    withdrawal: WithdrawalQR | None = None

    @classmethod
    def rejected(cls, error_code: str, error: str) -> "RewardResponse":
        return cls(success=False, error=error, error_code=error_code)


async def claim_reward(
    ledger: ClaimLedger,
    claim: RewardClaimRequest,
    config: PullPaymentConfig | None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RewardResponse:
    """
    Pay out the reward for a proof-of-work backed score.

    The proof is re-verified against the stored challenge and the claim slot
    is taken before any pull payment is created; a failed payout gives the
    slot back so the player can retry.
    """
    pubkey = claim.pubkey
    if claim.lightning_address is not None and not validate_lightning_address(
        claim.lightning_address
    ):
        return RewardResponse.rejected("invalid_lightning_address", "Invalid Lightning address")

    # Only requests that pass the rate check count as attempts
    if ledger.is_claim_rate_suspicious(pubkey):
        logger.warning("reward_claim_rate_suspicious", pubkey=short_pubkey(pubkey))
        return RewardResponse.rejected("rate_limited", "Too many claim attempts, try again later")
    ledger.record_claim_attempt(pubkey)

    if ledger.has_claimed_reward(pubkey, claim.score):
        return RewardResponse.rejected("already_claimed", "Reward already claimed for this score")

    tier = get_reward_tier(claim.score)
    if tier is None:
        return RewardResponse.rejected("score_too_low", "Score too low for rewards")

    try:
        consume_challenge(
            ledger.db,
            claim.challenge,
            claim.nonce,
            claim.hash,
            pubkey=pubkey,
            score=claim.score,
        )
    except ChallengeVerificationError as e:
        return RewardResponse.rejected("invalid_proof", str(e))

    if config is None:
        return RewardResponse.rejected("payout_failed", "Withdrawals are not configured")

    if not ledger.record_reward_claim(pubkey, claim.score, tier.satoshis):
        return RewardResponse.rejected("already_claimed", "Reward already claimed for this score")

    withdrawal = await generate_withdrawal_qr(
        config,
        tier.satoshis,
        f"Satoshi Stacker reward - {tier.description}",
        pubkey,
        transport=transport,
    )
    if withdrawal is None:
        ledger.release_reward_claim(pubkey, claim.score)
        return RewardResponse.rejected("payout_failed", "Failed to generate reward withdrawal")

    record = ledger.db.scalars(
        select(RewardClaim).where(RewardClaim.pubkey == pubkey, RewardClaim.score == claim.score)
    ).one()
    record.pull_payment_id = withdrawal.pull_payment_id
    ledger.db.commit()

    logger.info(
        "reward_claimed",
        pubkey=short_pubkey(pubkey),
        score=claim.score,
        satoshis=tier.satoshis,
        tier=tier.description,
        pull_payment_id=withdrawal.pull_payment_id,
    )
    return RewardResponse(success=True, satoshis=tier.satoshis, withdrawal=withdrawal)
