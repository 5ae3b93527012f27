"""FastAPI dependencies shared by the routers."""

import httpx
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from island_rewards.config import settings
from island_rewards.database import get_db
from island_rewards.services.reward_service import ClaimLedger
from island_rewards.services.withdrawal_service import PullPaymentConfig, WithdrawalConfigError


def get_claim_ledger(db: Session = Depends(get_db)) -> ClaimLedger:
    """Claim ledger bound to the request's session."""
    return ClaimLedger(db)


def get_pull_payment_config() -> PullPaymentConfig | None:
    """BTCPay configuration, or None when no server URL is set."""
    try:
        return PullPaymentConfig.from_settings(settings)
    except WithdrawalConfigError:
        return None


def get_btcpay_transport() -> httpx.AsyncBaseTransport | None:
    """Transport for BTCPay calls. None uses httpx's default network transport."""
    return None


def verify_internal_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> None:
    """Verify the admin API key for withdrawal management."""
    if not settings.internal_api_key:
        raise HTTPException(status_code=503, detail="Admin API not configured")
    if x_api_key != settings.internal_api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")
