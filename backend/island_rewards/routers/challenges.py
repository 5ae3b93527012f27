import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from island_rewards.config import settings
from island_rewards.database import get_db
from island_rewards.logging_config import short_pubkey
from island_rewards.middleware.rate_limit import limiter
from island_rewards.schemas.challenge import ChallengeCreate, ChallengeResponse
from island_rewards.services.pow_service import (
    calculate_target,
    estimate_solve_time,
    issue_challenge,
)

router = APIRouter()
logger = structlog.get_logger()


@router.post("/challenges", response_model=ChallengeResponse, status_code=201)
@limiter.limit(settings.rate_limit_challenges)
async def create_challenge(
    request: Request,
    challenge_data: ChallengeCreate,
    db: Session = Depends(get_db),
):
    """
    Request a proof-of-work challenge for a reward claim.

    The client searches for a nonce whose SHA-256 of ``"{challenge}:{nonce}"``
    starts with ``difficulty`` zero hex digits, then submits it with the claim.
    """
    challenge = issue_challenge(
        db=db,
        pubkey=challenge_data.pubkey,
        score=challenge_data.score,
        level=challenge_data.level,
    )

    logger.info(
        "challenge_created",
        challenge_id=challenge.id,
        pubkey=short_pubkey(challenge.pubkey),
        score=challenge.score,
        difficulty=challenge.difficulty,
    )

    return ChallengeResponse(
        challenge_id=challenge.id,
        challenge=challenge.challenge,
        difficulty=challenge.difficulty,
        timestamp=challenge.timestamp_ms,
        target=calculate_target(challenge.difficulty),
        estimated_time=estimate_solve_time(challenge.difficulty),
        algorithm="sha256",
    )
