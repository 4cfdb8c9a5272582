"""Naboopay payment provider adapter."""

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from schemas import TransactionRequest, TransactionResponse, WebhookEvent
from security import verify_signature
from ..base import PaymentAdapter
from ..exceptions import (
    AuthenticationError,
    ConfigurationError,
    PaymentProcessingError,
    RateLimitError,
    SignatureError,
    WebhookError,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.naboopay.com/api/v1"
CREATE_TRANSACTION_PATH = "transaction/create-transaction"


class NaboopayAdapter(PaymentAdapter):
    """Naboopay hosted-checkout integration.

    Transactions are created with a bearer-authenticated ``PUT`` and the
    buyer is redirected to the returned ``checkout_url``. Webhooks are
    signed with HMAC-SHA256 over the raw body using the shared secret.
    A ``client`` can be passed in to reuse a connection pool or to mock
    the transport; otherwise a client is opened per call.
    """

    def __init__(
        self,
        api_token: Optional[str],
        webhook_secret: Optional[str],
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_token = api_token
        self.webhook_secret = webhook_secret
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def create_transaction_url(self) -> str:
        return f"{self.api_url}/{CREATE_TRANSACTION_PATH}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _put(self, url: str, body: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.put(url, json=body, headers=self._headers())
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.put(url, json=body, headers=self._headers())

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if isinstance(data, dict):
            for key in ("message", "detail", "error"):
                if data.get(key):
                    return str(data[key])
        return f"HTTP {response.status_code}"

    async def create_transaction(
        self, request: TransactionRequest
    ) -> TransactionResponse:
        if not self.api_token:
            raise ConfigurationError("Naboopay API token is not configured")

        body = request.model_dump(mode="json")
        try:
            response = await self._put(self.create_transaction_url, body)
        except httpx.HTTPError as exc:
            logger.error("Naboopay request failed: %r", exc)
            raise PaymentProcessingError(
                "Unable to reach the payment provider"
            ) from exc

        if response.status_code in (401, 403):
            logger.error("Naboopay rejected the API token (%s)", response.status_code)
            raise AuthenticationError("Payment provider rejected the API token")
        if response.status_code == 429:
            raise RateLimitError("Payment provider rate limit exceeded")
        if response.status_code >= 400:
            message = self._error_message(response)
            logger.error(
                "Naboopay create-transaction failed (%s): %s",
                response.status_code,
                message,
            )
            raise PaymentProcessingError(message)

        try:
            data = response.json()
        except ValueError as exc:
            raise PaymentProcessingError("Invalid response from payment provider") from exc

        if not isinstance(data, dict) or not data.get("checkout_url"):
            message = data.get("message") if isinstance(data, dict) else None
            logger.error("Naboopay response has no checkout_url: %s", data)
            raise PaymentProcessingError(message or "No checkout URL returned")

        try:
            result = TransactionResponse.model_validate(data)
        except PydanticValidationError as exc:
            raise PaymentProcessingError("Invalid response from payment provider") from exc

        logger.info("Naboopay transaction created: %s", result.order_id)
        return result

    async def webhook_verify(
        self, payload: bytes, sig_header: Optional[str]
    ) -> WebhookEvent:
        if not self.webhook_secret:
            raise ConfigurationError("Webhook secret key is not configured")

        if not verify_signature(payload, sig_header, self.webhook_secret):
            raise SignatureError("Invalid signature")

        try:
            data = json.loads(payload)
            return WebhookEvent.model_validate(data)
        except (ValueError, PydanticValidationError) as exc:
            raise WebhookError("Invalid webhook payload") from exc


__all__ = ["NaboopayAdapter"]
