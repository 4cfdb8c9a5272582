import logging
from typing import Optional, Sequence

from adapters.base import PaymentAdapter, to_whole_amount
from adapters.exceptions import (
    AuthenticationError,
    ConfigurationError,
    OrderNotFoundError,
    PaymentError,
    ValidationError,
)
from config import Settings
from order_store import OrderStore
from schemas import (
    PAID_STATUSES,
    CheckoutResult,
    OrderRecord,
    OrderStatus,
    PaymentMethod,
    Product,
    TransactionRequest,
)

logger = logging.getLogger(__name__)


def success_url(settings: Settings, order: OrderRecord) -> str:
    base = settings.STORE_URL.rstrip("/")
    return f"{base}/checkout/order-received/{order.order_id}/?key={order.order_key}"


def error_url(settings: Settings) -> str:
    return f"{settings.checkout_url}?payment_error=true"


def resolve_payment_methods(
    settings: Settings, requested: Optional[Sequence[PaymentMethod]] = None
) -> list[PaymentMethod]:
    if requested:
        return list(dict.fromkeys(requested))
    try:
        return [PaymentMethod(m) for m in settings.NABOOPAY_PAYMENT_METHODS]
    except ValueError as exc:
        raise ConfigurationError(f"Unsupported payment method configured: {exc}") from exc


def build_transaction_request(
    order: OrderRecord,
    settings: Settings,
    payment_methods: Optional[Sequence[PaymentMethod]] = None,
) -> TransactionRequest:
    """Translate an order's line items into a create-transaction body."""
    if not order.items:
        raise ValidationError(f"Order {order.order_id} has no items")

    products = [
        Product(
            name=item.name,
            category=item.category or "General",
            amount=to_whole_amount(item.unit_price),
            quantity=item.quantity,
            description=item.description,
        )
        for item in order.items
    ]
    return TransactionRequest(
        method_of_payment=resolve_payment_methods(settings, payment_methods),
        products=products,
        is_escrow=False,
        success_url=success_url(settings, order),
        error_url=error_url(settings),
    )


class CheckoutService:
    """Starts a hosted checkout for an order."""

    def __init__(
        self,
        order_store: OrderStore,
        payment_adapter: PaymentAdapter,
        settings: Settings,
    ):
        self._order_store = order_store
        self._payment_adapter = payment_adapter
        self._settings = settings

    async def process_payment(
        self,
        order_id: int,
        payment_methods: Optional[Sequence[PaymentMethod]] = None,
    ) -> CheckoutResult:
        """Create the provider transaction and return where to send the buyer.

        Raises ``OrderNotFoundError`` for unknown orders,
        ``ConfigurationError`` when the gateway is disabled and
        ``ValidationError`` for orders that no longer need payment. Provider
        and configuration failures are reported as a ``fail`` result
        carrying a notice for the buyer; nothing is retried.
        """
        order = await self._order_store.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order not found: {order_id}")

        if not self._settings.NABOOPAY_ENABLED:
            raise ConfigurationError("Naboopay gateway is disabled")

        # The correlation attribute of a settled order must keep pointing
        # at the transaction that settled it
        if order.status in PAID_STATUSES or order.status == OrderStatus.CANCELLED:
            logger.warning(
                "Checkout refused for order %s in status %s", order_id, order.status.value
            )
            raise ValidationError(
                f"Order {order_id} does not need payment (status {order.status.value})"
            )

        try:
            request = build_transaction_request(order, self._settings, payment_methods)
            response = await self._payment_adapter.create_transaction(request)
        except (AuthenticationError, ConfigurationError) as exc:
            logger.error("Checkout for order %s misconfigured: %s", order_id, exc)
            return CheckoutResult(
                result="fail",
                notices=["Payment error: the payment method is not available."],
            )
        except PaymentError as exc:
            logger.error("Checkout for order %s failed: %s", order_id, exc)
            return CheckoutResult(result="fail", notices=[f"Payment error: {exc}"])

        await self._order_store.set_transaction_id(order_id, response.order_id)
        logger.info(
            "Order %s linked to Naboopay transaction %s", order_id, response.order_id
        )
        return CheckoutResult(result="success", redirect=response.checkout_url)
