"""BTCPay Server Greenfield API client for store pull payments."""

from types import TracebackType

import httpx

from island_rewards.logging_config import get_logger
from island_rewards.schemas.btcpay import CreatePullPaymentRequest, PullPaymentResponse

logger = get_logger(__name__)


class BTCPayApiError(RuntimeError):
    def __init__(self, action: str, status_code: int, body: str):
        super().__init__(f"Failed to {action}: {status_code} - {body}")
        self.action = action
        self.status_code = status_code
        self.body = body


class BTCPayClient:
    """
    Authenticated client bound to one BTCPay store.

    Every call goes out once; there is no retry. Non-2xx responses raise
    BTCPayApiError with the raw body, except 404 on delete which is treated
    as already gone.
    """

    def __init__(
        self,
        base_url: str,
        store_id: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._store_id = store_id
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"token {api_key}"},
        )

    @property
    def pull_payments_url(self) -> str:
        return f"{self._base_url}/api/v1/stores/{self._store_id}/pull-payments"

    async def create_pull_payment(self, request: CreatePullPaymentRequest) -> PullPaymentResponse:
        response = await self._client.post(self.pull_payments_url, json=request.to_payload())

        if not response.is_success:
            logger.error(
                "btcpay_create_pull_payment_failed",
                status_code=response.status_code,
                store_id=self._store_id,
            )
            raise BTCPayApiError("create pull payment", response.status_code, response.text)

        pull_payment = PullPaymentResponse.model_validate(response.json())
        logger.info(
            "pull_payment_created",
            pull_payment_id=pull_payment.id,
            amount=request.amount,
            currency=request.currency,
        )
        return pull_payment

    async def delete_pull_payment(self, pull_payment_id: str) -> None:
        await self._delete(pull_payment_id, action="delete pull payment")

    async def archive_pull_payment(self, pull_payment_id: str) -> None:
        # BTCPay archives a pull payment when it is deleted
        await self._delete(pull_payment_id, action="archive pull payment")

    async def _delete(self, pull_payment_id: str, *, action: str) -> None:
        response = await self._client.delete(f"{self.pull_payments_url}/{pull_payment_id}")

        if response.status_code == 404:
            logger.info("pull_payment_already_gone", pull_payment_id=pull_payment_id)
            return
        if not response.is_success:
            raise BTCPayApiError(action, response.status_code, response.text)

        logger.info("pull_payment_archived", pull_payment_id=pull_payment_id)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BTCPayClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()
