from pydantic import BaseModel, Field

from island_rewards.schemas.reward import PUBKEY_PATTERN


class WithdrawalCreate(BaseModel):
    amount: int = Field(..., gt=0, description="Amount in sats")
    description: str = Field("Island Bitcoin withdrawal", max_length=200)
    pubkey: str | None = Field(None, pattern=PUBKEY_PATTERN)


class WithdrawalResponse(BaseModel):
    qr_code_url: str
    lnurl: str
    pull_payment_id: str


class WithdrawalStatusResponse(BaseModel):
    configured: bool
    mode: str | None = None
    shared_pull_payment: bool = False
