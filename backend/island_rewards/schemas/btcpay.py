from pydantic import BaseModel, ConfigDict, Field


class CreatePullPaymentRequest(BaseModel):
    """Body of ``POST /api/v1/stores/{storeId}/pull-payments``. Amounts are sats as strings."""

    name: str
    description: str | None = None
    amount: str
    currency: str = "SATS"
    period: int | None = None  # seconds
    bolt11_expiration: int | None = Field(default=None, serialization_alias="BOLT11Expiration")
    auto_approve_claims: bool | None = Field(default=None, serialization_alias="autoApproveClaims")
    starts_at: int | None = Field(default=None, serialization_alias="startsAt")  # unix seconds
    expires_at: int | None = Field(default=None, serialization_alias="expiresAt")  # unix seconds
    min_amount: str | None = Field(default=None, serialization_alias="minAmount")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class PullPaymentResponse(BaseModel):
    """Pull payment as returned by BTCPay. Only ``id`` is relied upon."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: str | None = None
    description: str | None = None
    currency: str | None = None
    amount: str | None = None
    period: int | None = None
    bolt11_expiration: int | str | None = Field(default=None, alias="BOLT11Expiration")
    archived: bool = False
    view_link: str | None = Field(default=None, alias="viewLink")
    auto_approve_claims: bool | None = Field(default=None, alias="autoApproveClaims")
