"""Offline stand-in for the Naboopay API."""

import uuid
from typing import Optional

from schemas import TransactionRequest, TransactionResponse
from ..naboopay import NaboopayAdapter


class SandboxAdapter(NaboopayAdapter):
    """Naboopay adapter that never leaves the process.

    Transactions get a random id and a checkout URL on ``checkout_base_url``
    so the checkout flow can be exercised locally. Webhook verification is
    inherited unchanged, so signed test notifications behave exactly as in
    production.
    """

    def __init__(
        self,
        webhook_secret: Optional[str],
        checkout_base_url: str = "http://localhost:8000/sandbox/checkout",
    ) -> None:
        super().__init__(api_token="sandbox", webhook_secret=webhook_secret)
        self.checkout_base_url = checkout_base_url.rstrip("/")

    async def create_transaction(
        self, request: TransactionRequest
    ) -> TransactionResponse:
        transaction_id = f"sandbox_{uuid.uuid4().hex[:12]}"
        return TransactionResponse(
            order_id=transaction_id,
            checkout_url=f"{self.checkout_base_url}/{transaction_id}",
            method_of_payment=[m.value for m in request.method_of_payment],
            amount=sum(p.amount * p.quantity for p in request.products),
        )


__all__ = ["SandboxAdapter"]
