"""Tests for withdrawal QR generation."""

import base64

import pytest

from island_rewards.config import Settings
from island_rewards.services.lnurl import decode_lnurl
from island_rewards.services.withdrawal_service import (
    PullPaymentConfig,
    WithdrawalConfigError,
    build_pull_payment_request,
    build_withdraw_endpoint,
    generate_withdrawal_qr,
    is_pull_payment_configured,
    render_qr_data_url,
)
from tests.test_utils import (
    API_KEY,
    PUBKEY,
    SERVER_URL,
    STORE_ID,
    FakeBTCPay,
    dynamic_config,
    static_config,
)

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class TestPullPaymentConfig:
    def test_from_settings(self):
        config = PullPaymentConfig.from_settings(
            Settings(
                btcpay_server_url=SERVER_URL + "/",
                btcpay_store_id=STORE_ID,
                btcpay_api_key=API_KEY,
                btcpay_timeout_seconds=3.5,
            )
        )
        assert config.server_url == SERVER_URL
        assert config.store_id == STORE_ID
        assert config.timeout == 3.5
        assert config.mode == "dynamic"

    def test_from_settings_requires_server_url(self):
        with pytest.raises(WithdrawalConfigError, match="BTCPAY_SERVER_URL"):
            PullPaymentConfig.from_settings(Settings(btcpay_server_url=None))

    def test_modes(self):
        assert dynamic_config().mode == "dynamic"
        assert static_config().mode == "static"
        assert PullPaymentConfig(server_url=SERVER_URL).mode is None

    def test_dynamic_preferred_over_static(self):
        config = PullPaymentConfig(
            server_url=SERVER_URL, store_id=STORE_ID, api_key=API_KEY, pull_payment_id="shared"
        )
        assert config.mode == "dynamic"

    def test_force_static(self):
        config = PullPaymentConfig(
            server_url=SERVER_URL,
            store_id=STORE_ID,
            api_key=API_KEY,
            pull_payment_id="shared",
            force_static=True,
        )
        assert config.mode == "static"


class TestBuildRequest:
    def test_exact_amount_request(self):
        request = build_pull_payment_request(
            dynamic_config(), 500, "Island Bitcoin withdrawal", PUBKEY, now=1_700_000_000
        )
        payload = request.to_payload()

        assert payload["amount"] == payload["minAmount"] == "500"
        assert payload["name"] == "Withdrawal - 500 sats"
        assert payload["description"] == f"Island Bitcoin withdrawal ({PUBKEY[:8]})"
        assert payload["currency"] == "SATS"
        assert payload["autoApproveClaims"] is True
        assert payload["BOLT11Expiration"] == 3600
        assert payload["expiresAt"] == 1_700_000_000 + 86400

    def test_description_untouched_without_pubkey(self):
        request = build_pull_payment_request(dynamic_config(), 10, "Reward")
        assert request.description == "Reward"

    def test_endpoint(self):
        assert (
            build_withdraw_endpoint(SERVER_URL + "/", "pp1")
            == f"{SERVER_URL}/BTC/UILNURL/withdraw/pp/pp1"
        )


class TestRenderQr:
    def test_png_data_url(self):
        data_url = render_qr_data_url("lnurl1dp68gurn8ghj7")
        prefix = "data:image/png;base64,"
        assert data_url.startswith(prefix)
        assert base64.b64decode(data_url[len(prefix) :]).startswith(PNG_MAGIC)


class TestGenerateWithdrawalQr:
    @pytest.mark.asyncio
    async def test_dynamic_path(self):
        fake = FakeBTCPay(pull_payment_id="pp_dyn")
        result = await generate_withdrawal_qr(
            dynamic_config(), 500, "Island Bitcoin withdrawal", PUBKEY, transport=fake.transport
        )

        assert result is not None
        assert result.pull_payment_id == "pp_dyn"
        assert result.lnurl.startswith("lnurl1")
        assert decode_lnurl(result.lnurl) == f"{SERVER_URL}/BTC/UILNURL/withdraw/pp/pp_dyn"
        assert result.qr_code_url.startswith("data:image/png;base64,")

        body = fake.posted_json()
        assert body["amount"] == body["minAmount"] == "500"

    @pytest.mark.asyncio
    async def test_static_path_makes_no_api_call(self):
        fake = FakeBTCPay()
        result = await generate_withdrawal_qr(
            static_config("shared-pp"), 100, "Reward", transport=fake.transport
        )

        assert result.pull_payment_id == "shared-pp"
        assert "pp/shared-pp" in decode_lnurl(result.lnurl)
        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_force_static_skips_creation(self):
        fake = FakeBTCPay()
        config = PullPaymentConfig(
            server_url=SERVER_URL,
            store_id=STORE_ID,
            api_key=API_KEY,
            pull_payment_id="shared-pp",
            force_static=True,
        )
        result = await generate_withdrawal_qr(config, 100, "Reward", transport=fake.transport)

        assert result.pull_payment_id == "shared-pp"
        assert fake.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -5])
    async def test_invalid_amount_returns_none(self, amount):
        fake = FakeBTCPay()
        result = await generate_withdrawal_qr(
            dynamic_config(), amount, "Reward", transport=fake.transport
        )
        assert result is None
        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_missing_configuration_returns_none(self):
        result = await generate_withdrawal_qr(PullPaymentConfig(server_url=SERVER_URL), 100, "x")
        assert result is None

    @pytest.mark.asyncio
    async def test_btcpay_error_returns_none(self):
        fake = FakeBTCPay(create_status=401)
        result = await generate_withdrawal_qr(
            dynamic_config(), 100, "Reward", transport=fake.transport
        )
        assert result is None
        assert len(fake.requests) == 1


class TestIsPullPaymentConfigured:
    @pytest.mark.parametrize(
        ("pull_payment_id", "server_url", "expected"),
        [
            ("pp", SERVER_URL, True),
            ("pp", None, False),
            (None, SERVER_URL, False),
            ("", "", False),
        ],
    )
    def test_values(self, pull_payment_id, server_url, expected):
        assert is_pull_payment_configured(pull_payment_id, server_url) is expected
