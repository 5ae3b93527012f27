import httpx
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from island_rewards.config import settings
from island_rewards.dependencies import (
    get_btcpay_transport,
    get_claim_ledger,
    get_pull_payment_config,
)
from island_rewards.middleware.rate_limit import limiter
from island_rewards.schemas.reward import (
    ClaimHistoryResponse,
    RewardClaimRequest,
    RewardClaimResponse,
    RewardTierResponse,
)
from island_rewards.services.reward_service import REWARD_TIERS, ClaimLedger, claim_reward
from island_rewards.services.withdrawal_service import PullPaymentConfig

router = APIRouter()
logger = structlog.get_logger()

# Rejection reason -> HTTP status
CLAIM_ERROR_STATUS = {
    "rate_limited": 429,
    "already_claimed": 409,
    "score_too_low": 400,
    "invalid_proof": 400,
    "invalid_lightning_address": 400,
    "payout_failed": 502,
}


@router.get("/rewards/tiers", response_model=list[RewardTierResponse])
async def list_reward_tiers():
    return [
        RewardTierResponse(
            min_score=tier.min_score,
            max_score=tier.max_score,
            satoshis=tier.satoshis,
            description=tier.description,
        )
        for tier in REWARD_TIERS
    ]


@router.post("/rewards/claim", response_model=RewardClaimResponse)
@limiter.limit(settings.rate_limit_claims)
async def claim(
    request: Request,
    claim_data: RewardClaimRequest,
    ledger: ClaimLedger = Depends(get_claim_ledger),
    config: PullPaymentConfig | None = Depends(get_pull_payment_config),
    transport: httpx.AsyncBaseTransport | None = Depends(get_btcpay_transport),
):
    """
    Claim the sats reward for a score.

    Requires a solved challenge from ``POST /challenges`` for the same pubkey
    and score. On success the reward is returned as an LNURL-withdraw QR code.
    """
    result = await claim_reward(ledger, claim_data, config, transport=transport)

    if not result.success:
        logger.info(
            "reward_claim_rejected",
            reason=result.error_code,
            score=claim_data.score,
        )
        raise HTTPException(
            status_code=CLAIM_ERROR_STATUS.get(result.error_code, 400),
            detail=result.error,
        )

    return RewardClaimResponse(
        success=True,
        satoshis=result.satoshis,
        lnurl=result.withdrawal.lnurl,
        qr_code_url=result.withdrawal.qr_code_url,
        pull_payment_id=result.withdrawal.pull_payment_id,
    )


@router.get("/rewards/{pubkey}/history", response_model=ClaimHistoryResponse)
async def claim_history(pubkey: str, ledger: ClaimLedger = Depends(get_claim_ledger)):
    return ClaimHistoryResponse(
        pubkey=pubkey,
        scores=ledger.get_claim_history(pubkey),
        total_satoshis=ledger.get_total_rewards_earned(pubkey),
    )
