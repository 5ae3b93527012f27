import asyncio
import hashlib
import secrets
import time
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import update
from sqlalchemy.orm import Session

from island_rewards.config import settings
from island_rewards.logging_config import get_logger, short_pubkey
from island_rewards.models.challenge import PowChallenge

logger = get_logger(__name__)

HASH_HEX_LENGTH = 64
BASE_DIFFICULTY = 1
SCORE_PER_DIFFICULTY = 10_000
LEVELS_PER_DIFFICULTY = 5
BROWSER_HASHES_PER_SECOND = 50_000


class ChallengeVerificationError(ValueError):
    pass


@dataclass(frozen=True)
class ProofOfWorkChallenge:
    challenge: str
    difficulty: int
    timestamp: int  # epoch ms
    target: str


@dataclass(frozen=True)
class ProofOfWorkSolution:
    challenge: str
    nonce: int
    hash: str
    timestamp: int  # epoch ms


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def calculate_target(difficulty: int) -> str:
    """Readable form of the hash ceiling: ``difficulty`` zeros padded with 'f'."""
    return "0" * difficulty + "f" * (HASH_HEX_LENGTH - difficulty)


def generate_challenge(
    pubkey: str, score: int, difficulty: int, timestamp: int | None = None
) -> ProofOfWorkChallenge:
    """Build a fresh challenge bound to a pubkey and score."""
    if timestamp is None:
        timestamp = now_ms()
    # Uniqueness comes from the suffix; the string is not a secret
    suffix = secrets.token_hex(4)
    return ProofOfWorkChallenge(
        challenge=f"{pubkey}:{score}:{timestamp}:{suffix}",
        difficulty=difficulty,
        timestamp=timestamp,
        target=calculate_target(difficulty),
    )


def calculate_difficulty(score: int, level: int, max_difficulty: int | None = None) -> int:
    """
    Required leading hex zeros for a claim.

    One extra zero per 10k score and per 5 levels on top of the base of one,
    capped so the expected search stays bounded.
    """
    if max_difficulty is None:
        max_difficulty = settings.pow_max_difficulty
    score_factor = max(score, 0) // SCORE_PER_DIFFICULTY
    level_factor = max(level, 0) // LEVELS_PER_DIFFICULTY
    return min(BASE_DIFFICULTY + score_factor + level_factor, max_difficulty)


def hash_attempt(challenge: str, nonce: int) -> str:
    """Lowercase hex SHA-256 of ``"{challenge}:{nonce}"``."""
    return hashlib.sha256(f"{challenge}:{nonce}".encode()).hexdigest()


def meets_difficulty(hash_hex: str, difficulty: int) -> bool:
    return hash_hex.startswith("0" * difficulty)


async def solve_challenge(
    challenge: ProofOfWorkChallenge,
    cancel_event: asyncio.Event | None = None,
    yield_interval: int | None = None,
) -> ProofOfWorkSolution | None:
    """
    Search nonces 0, 1, 2, ... for a hash meeting the challenge difficulty.

    Hands control back to the event loop every ``yield_interval`` attempts so
    other coroutines keep running. Returns None as soon as ``cancel_event`` is
    set; cancelling the surrounding task also stops the search.
    """
    if yield_interval is None:
        yield_interval = settings.pow_yield_interval

    nonce = 0
    while cancel_event is None or not cancel_event.is_set():
        hash_hex = hash_attempt(challenge.challenge, nonce)
        if meets_difficulty(hash_hex, challenge.difficulty):
            return ProofOfWorkSolution(
                challenge=challenge.challenge,
                nonce=nonce,
                hash=hash_hex,
                timestamp=now_ms(),
            )

        nonce += 1
        if nonce % yield_interval == 0:
            await asyncio.sleep(0)

    return None


def verify_solution(challenge: ProofOfWorkChallenge, solution: ProofOfWorkSolution) -> bool:
    """Recompute the hash and check it against the challenge. Pure and repeatable."""
    if solution.challenge != challenge.challenge:
        return False

    max_age_ms = settings.pow_challenge_ttl_seconds * 1000
    if solution.timestamp - challenge.timestamp > max_age_ms:
        return False

    hash_hex = hash_attempt(challenge.challenge, solution.nonce)
    return hash_hex == solution.hash and meets_difficulty(hash_hex, challenge.difficulty)


def estimate_solve_time(difficulty: int) -> str:
    """Rough browser solve time for display next to a challenge."""
    seconds = 16**difficulty / BROWSER_HASHES_PER_SECOND

    if seconds < 1:
        return "less than a second"
    if seconds < 60:
        return f"~{_round_half_up(seconds)} seconds"
    if seconds < 3600:
        return f"~{_round_half_up(seconds / 60)} minutes"
    return f"~{_round_half_up(seconds / 3600)} hours"


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def issue_challenge(db: Session, pubkey: str, score: int, level: int) -> PowChallenge:
    """Generate a challenge for a reward claim and persist it."""
    difficulty = calculate_difficulty(score, level)
    challenge = generate_challenge(pubkey, score, difficulty)

    expires_at = datetime.now(UTC).replace(tzinfo=None) + timedelta(
        seconds=settings.pow_challenge_ttl_seconds
    )

    row = PowChallenge(
        challenge=challenge.challenge,
        pubkey=pubkey,
        score=score,
        difficulty=challenge.difficulty,
        timestamp_ms=challenge.timestamp,
        expires_at=expires_at,
    )

    db.add(row)
    db.commit()
    db.refresh(row)

    return row


def to_challenge(row: PowChallenge) -> ProofOfWorkChallenge:
    return ProofOfWorkChallenge(
        challenge=row.challenge,
        difficulty=row.difficulty,
        timestamp=row.timestamp_ms,
        target=calculate_target(row.difficulty),
    )


def consume_challenge(
    db: Session,
    challenge: str,
    nonce: int,
    hash_hex: str,
    pubkey: str | None = None,
    score: int | None = None,
) -> PowChallenge:
    """
    Verify a submitted solution against the stored challenge.

    When given, ``pubkey`` and ``score`` must match the ones the challenge was
    issued for; a mismatch is rejected without using up the challenge. Otherwise
    the challenge is marked used before the hash is checked, so each challenge
    gets exactly one verification attempt. The elapsed time is measured with
    the server clock, never a client-reported timestamp.

    Raises:
        ChallengeVerificationError: with the reason the solution was rejected
    """
    row = db.query(PowChallenge).filter(PowChallenge.challenge == challenge).first()

    if not row:
        raise ChallengeVerificationError("Challenge not found")

    if (pubkey is not None and row.pubkey != pubkey) or (score is not None and row.score != score):
        raise ChallengeVerificationError("Challenge does not match claim")

    if row.is_used:
        raise ChallengeVerificationError("Challenge already used")

    if datetime.now(UTC).replace(tzinfo=None) > row.expires_at:
        raise ChallengeVerificationError("Challenge expired")

    # Conditional update so two concurrent submissions cannot both proceed
    result = db.execute(
        update(PowChallenge)
        .where(PowChallenge.id == row.id, PowChallenge.is_used.is_(False))
        .values(is_used=True)
    )
    db.commit()
    if result.rowcount != 1:
        raise ChallengeVerificationError("Challenge already used")
    db.refresh(row)

    solution = ProofOfWorkSolution(
        challenge=challenge,
        nonce=nonce,
        hash=hash_hex.lower(),
        timestamp=now_ms(),
    )
    if not verify_solution(to_challenge(row), solution):
        logger.info(
            "pow_verification_failed",
            challenge_id=row.id,
            pubkey=short_pubkey(row.pubkey),
            difficulty=row.difficulty,
        )
        raise ChallengeVerificationError("Invalid proof of work")

    return row


def cleanup_expired_challenges(db: Session) -> int:
    """Delete expired challenges. Returns count of deleted rows."""
    result = (
        db.query(PowChallenge)
        .filter(PowChallenge.expires_at < datetime.now(UTC).replace(tzinfo=None))
        .delete()
    )
    db.commit()
    return result
