from island_rewards.schemas.btcpay import CreatePullPaymentRequest, PullPaymentResponse
from island_rewards.schemas.challenge import ChallengeCreate, ChallengeResponse
from island_rewards.schemas.reward import (
    ClaimHistoryResponse,
    RewardClaimRequest,
    RewardClaimResponse,
    RewardTierResponse,
)
from island_rewards.schemas.withdrawal import (
    WithdrawalCreate,
    WithdrawalResponse,
    WithdrawalStatusResponse,
)

__all__ = [
    "ChallengeCreate",
    "ChallengeResponse",
    "ClaimHistoryResponse",
    "CreatePullPaymentRequest",
    "PullPaymentResponse",
    "RewardClaimRequest",
    "RewardClaimResponse",
    "RewardTierResponse",
    "WithdrawalCreate",
    "WithdrawalResponse",
    "WithdrawalStatusResponse",
]
