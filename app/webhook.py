"""Reconciliation of Naboopay payment notifications with orders."""

import logging
from dataclasses import dataclass
from typing import Optional

from adapters.base import PaymentAdapter
from adapters.exceptions import ConfigurationError, SignatureError, WebhookError
from order_store import OrderStore
from schemas import OrderRecord, OrderStatus

logger = logging.getLogger(__name__)

PAID = "paid"

# transaction_status -> (order status, note); "paid" goes through mark_paid
STATUS_TRANSITIONS: dict[str, tuple[OrderStatus, str]] = {
    PAID: (OrderStatus.PROCESSING, "Payment completed via Naboopay."),
    "cancel": (OrderStatus.CANCELLED, "Payment cancelled via Naboopay."),
    "pending": (OrderStatus.PENDING, "Payment pending via Naboopay."),
    "part_paid": (OrderStatus.ON_HOLD, "Payment partially paid via Naboopay."),
}


@dataclass(frozen=True)
class WebhookResponse:
    status_code: int
    body: str


class WebhookHandler:
    """Authenticates a notification and applies it to the matching order."""

    def __init__(self, order_store: OrderStore, payment_adapter: PaymentAdapter):
        self._order_store = order_store
        self._payment_adapter = payment_adapter

    async def apply_status(
        self, order: OrderRecord, transaction_status: str
    ) -> Optional[OrderRecord]:
        """Apply a provider status to ``order``; unknown statuses are ignored."""
        transition = STATUS_TRANSITIONS.get(transaction_status)
        if transition is None:
            logger.warning(
                "Ignoring unknown transaction_status %r for order %s",
                transaction_status,
                order.order_id,
            )
            return None

        status, note = transition
        if transaction_status == PAID:
            return await self._order_store.mark_paid(order.order_id, note)
        return await self._order_store.update_status(order.order_id, status, note)

    async def handle(self, payload: bytes, signature: Optional[str]) -> WebhookResponse:
        try:
            event = await self._payment_adapter.webhook_verify(payload, signature)
        except ConfigurationError as exc:
            logger.error("Webhook rejected: %s", exc)
            return WebhookResponse(500, "Webhook secret key is not configured")
        except SignatureError:
            logger.warning("Webhook rejected: invalid signature")
            return WebhookResponse(403, "Invalid signature")
        except WebhookError as exc:
            logger.warning("Webhook rejected: %s", exc)
            return WebhookResponse(400, "Invalid payload")

        order = await self._order_store.find_by_transaction_id(event.order_id)
        if order is None:
            logger.warning("Webhook for unknown Naboopay order %s", event.order_id)
            return WebhookResponse(404, "Order not found")

        logger.info(
            "Webhook %s for order %s (Naboopay %s)",
            event.transaction_status,
            order.order_id,
            event.order_id,
        )
        await self.apply_status(order, event.transaction_status)
        return WebhookResponse(200, "Webhook received")
