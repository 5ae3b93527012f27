from pydantic import BaseModel, Field

PUBKEY_PATTERN = r"^[a-f0-9]{64}$"


class RewardClaimRequest(BaseModel):
    pubkey: str = Field(..., pattern=PUBKEY_PATTERN)
    score: int = Field(..., ge=0)
    challenge: str = Field(..., min_length=1, max_length=255)
    nonce: int = Field(..., ge=0)
    hash: str = Field(..., pattern=r"^[a-fA-F0-9]{64}$")
    lightning_address: str | None = Field(None, max_length=320)


class RewardClaimResponse(BaseModel):
    success: bool
    satoshis: int
    lnurl: str
    qr_code_url: str
    pull_payment_id: str


class RewardTierResponse(BaseModel):
    min_score: int
    max_score: int | None
    satoshis: int
    description: str


class ClaimHistoryResponse(BaseModel):
    pubkey: str
    scores: list[int]
    total_satoshis: int
