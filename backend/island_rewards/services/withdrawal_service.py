"""
Withdrawal QR generation on top of BTCPay pull payments.

With store credentials configured, every withdrawal gets its own pull payment
locked to the exact amount. Without them, a shared pull payment configured by
the operator is reused (no per-user amount guarantee). The resulting
LNURL-withdraw endpoint is bech32 encoded and rendered as a QR code.
"""

import base64
import io
import time
from dataclasses import dataclass

import httpx
import qrcode
import qrcode.constants

from island_rewards.config import Settings
from island_rewards.logging_config import get_logger, short_pubkey
from island_rewards.schemas.btcpay import CreatePullPaymentRequest
from island_rewards.services.btcpay_client import BTCPayApiError, BTCPayClient
from island_rewards.services.lnurl import encode_lnurl

logger = get_logger(__name__)

QR_BOX_SIZE = 10
QR_BORDER = 2
PUBKEY_TAG_LENGTH = 8


class WithdrawalConfigError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class PullPaymentConfig:
    server_url: str
    store_id: str | None = None
    api_key: str | None = None
    pull_payment_id: str | None = None
    force_static: bool = False
    timeout: float = 10.0
    bolt11_expiration_seconds: int = 3600
    expiration_seconds: int = 86400

    @staticmethod
    def from_settings(settings: Settings) -> "PullPaymentConfig":
        if not settings.btcpay_server_url:
            raise WithdrawalConfigError("BTCPAY_SERVER_URL is required for withdrawals")

        return PullPaymentConfig(
            server_url=settings.btcpay_server_url,
            store_id=settings.btcpay_store_id,
            api_key=settings.btcpay_api_key,
            pull_payment_id=settings.btcpay_pull_payment_id,
            force_static=settings.btcpay_force_static_pull_payment,
            timeout=settings.btcpay_timeout_seconds,
            bolt11_expiration_seconds=settings.withdrawal_bolt11_expiration_seconds,
            expiration_seconds=settings.withdrawal_expiration_seconds,
        )

    @property
    def can_create(self) -> bool:
        return bool(self.store_id and self.api_key) and not self.force_static

    @property
    def mode(self) -> str | None:
        """Withdrawal mode: "dynamic", "static", or None when unavailable."""
        if self.can_create:
            return "dynamic"
        if self.pull_payment_id:
            return "static"
        return None


@dataclass(frozen=True, slots=True)
class WithdrawalQR:
    qr_code_url: str
    lnurl: str
    pull_payment_id: str


def build_withdraw_endpoint(server_url: str, pull_payment_id: str) -> str:
    return f"{server_url.rstrip('/')}/BTC/UILNURL/withdraw/pp/{pull_payment_id}"


def render_qr_data_url(text: str) -> str:
    """Render ``text`` as a black-on-white PNG QR code data URL."""
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=QR_BOX_SIZE,
        border=QR_BORDER,
    )
    qr.add_data(text)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode()


def build_pull_payment_request(
    config: PullPaymentConfig,
    amount: int,
    description: str,
    user_pubkey: str | None = None,
    now: float | None = None,
) -> CreatePullPaymentRequest:
    """Pull payment for exactly ``amount`` sats: min and max are the same."""
    if now is None:
        now = time.time()
    if user_pubkey:
        description = f"{description} ({user_pubkey[:PUBKEY_TAG_LENGTH]})"

    return CreatePullPaymentRequest(
        name=f"Withdrawal - {amount} sats",
        description=description,
        amount=str(amount),
        min_amount=str(amount),
        currency="SATS",
        auto_approve_claims=True,
        bolt11_expiration=config.bolt11_expiration_seconds,
        expires_at=int(now) + config.expiration_seconds,
    )


async def _resolve_pull_payment_id(
    config: PullPaymentConfig,
    amount: int,
    description: str,
    user_pubkey: str | None,
    transport: httpx.AsyncBaseTransport | None,
) -> str:
    if config.can_create:
        request = build_pull_payment_request(config, amount, description, user_pubkey)
        async with BTCPayClient(
            config.server_url,
            config.store_id,
            config.api_key,
            timeout=config.timeout,
            transport=transport,
        ) as client:
            pull_payment = await client.create_pull_payment(request)
        return pull_payment.id

    if config.pull_payment_id:
        return config.pull_payment_id

    raise WithdrawalConfigError("No pull payment configuration available")


async def generate_withdrawal_qr(
    config: PullPaymentConfig,
    amount: int,
    description: str,
    user_pubkey: str | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> WithdrawalQR | None:
    """
    Produce an LNURL-withdraw QR code for ``amount`` sats.

    Returns None on any failure (bad amount, missing configuration, BTCPay
    error, encoding error). The reason is logged, not raised.
    """
    try:
        if amount <= 0:
            raise WithdrawalConfigError("Withdrawal amount must be greater than 0")

        pull_payment_id = await _resolve_pull_payment_id(
            config, amount, description, user_pubkey, transport
        )

        endpoint = build_withdraw_endpoint(config.server_url, pull_payment_id)
        lnurl = encode_lnurl(endpoint)
        qr_code_url = render_qr_data_url(lnurl)
    except (BTCPayApiError, httpx.HTTPError, ValueError, OSError) as e:
        logger.error(
            "withdrawal_qr_failed",
            amount=amount,
            pubkey=short_pubkey(user_pubkey),
            error=str(e),
            error_type=type(e).__name__,
        )
        return None

    logger.info(
        "withdrawal_qr_generated",
        amount=amount,
        mode=config.mode,
        pull_payment_id=pull_payment_id,
        pubkey=short_pubkey(user_pubkey),
    )
    return WithdrawalQR(qr_code_url=qr_code_url, lnurl=lnurl, pull_payment_id=pull_payment_id)


def is_pull_payment_configured(
    pull_payment_id: str | None, btcpay_server_url: str | None
) -> bool:
    """Whether a shared pull payment and server URL are both set."""
    return bool(pull_payment_id and btcpay_server_url)
