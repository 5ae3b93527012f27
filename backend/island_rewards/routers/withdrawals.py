import httpx
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response

from island_rewards.config import settings
from island_rewards.dependencies import (
    get_btcpay_transport,
    get_pull_payment_config,
    verify_internal_api_key,
)
from island_rewards.logging_config import short_pubkey
from island_rewards.middleware.rate_limit import limiter
from island_rewards.schemas.withdrawal import (
    WithdrawalCreate,
    WithdrawalResponse,
    WithdrawalStatusResponse,
)
from island_rewards.services.btcpay_client import BTCPayApiError, BTCPayClient
from island_rewards.services.withdrawal_service import (
    PullPaymentConfig,
    generate_withdrawal_qr,
    is_pull_payment_configured,
)

router = APIRouter()
logger = structlog.get_logger()


@router.get("/withdrawals/status", response_model=WithdrawalStatusResponse)
async def withdrawal_status(
    config: PullPaymentConfig | None = Depends(get_pull_payment_config),
):
    """Tell the client whether withdrawal UI should be offered."""
    return WithdrawalStatusResponse(
        configured=config is not None and config.mode is not None,
        mode=config.mode if config else None,
        shared_pull_payment=is_pull_payment_configured(
            settings.btcpay_pull_payment_id, settings.btcpay_server_url
        ),
    )


@router.post("/withdrawals", response_model=WithdrawalResponse, status_code=201)
@limiter.limit(settings.rate_limit_withdrawals)
async def create_withdrawal(
    request: Request,
    withdrawal_data: WithdrawalCreate,
    config: PullPaymentConfig | None = Depends(get_pull_payment_config),
    transport: httpx.AsyncBaseTransport | None = Depends(get_btcpay_transport),
    _: None = Depends(verify_internal_api_key),
):
    """
    Create an LNURL-withdraw QR code for an arbitrary amount (admin endpoint).

    Requires X-API-Key header with the internal API key.
    """
    if config is None:
        raise HTTPException(status_code=503, detail="Withdrawals not configured")

    result = await generate_withdrawal_qr(
        config,
        withdrawal_data.amount,
        withdrawal_data.description,
        withdrawal_data.pubkey,
        transport=transport,
    )
    if result is None:
        raise HTTPException(status_code=502, detail="Failed to generate withdrawal")

    logger.info(
        "withdrawal_created",
        amount=withdrawal_data.amount,
        pubkey=short_pubkey(withdrawal_data.pubkey),
        pull_payment_id=result.pull_payment_id,
    )

    return WithdrawalResponse(
        qr_code_url=result.qr_code_url,
        lnurl=result.lnurl,
        pull_payment_id=result.pull_payment_id,
    )


@router.delete("/withdrawals/{pull_payment_id}", status_code=204)
async def archive_withdrawal(
    pull_payment_id: str,
    config: PullPaymentConfig | None = Depends(get_pull_payment_config),
    transport: httpx.AsyncBaseTransport | None = Depends(get_btcpay_transport),
    _: None = Depends(verify_internal_api_key),
):
    """Archive a pull payment on BTCPay. Already-gone payments count as archived."""
    if config is None or not (config.store_id and config.api_key):
        raise HTTPException(status_code=503, detail="BTCPay API credentials not configured")

    try:
        async with BTCPayClient(
            config.server_url,
            config.store_id,
            config.api_key,
            timeout=config.timeout,
            transport=transport,
        ) as client:
            await client.archive_pull_payment(pull_payment_id)
    except BTCPayApiError as e:
        logger.error(
            "pull_payment_archive_failed",
            pull_payment_id=pull_payment_id,
            status_code=e.status_code,
        )
        raise HTTPException(status_code=502, detail=str(e))
    except httpx.HTTPError as e:
        logger.error(
            "pull_payment_archive_failed",
            pull_payment_id=pull_payment_id,
            error=str(e),
        )
        raise HTTPException(status_code=502, detail="BTCPay Server unreachable")

    return Response(status_code=204)
