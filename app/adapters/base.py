"""Base class for payment provider adapters."""

from abc import ABC, abstractmethod
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from schemas import TransactionRequest, TransactionResponse, WebhookEvent


# ==================== Helpers ====================

def to_whole_amount(amount: Decimal) -> int:
    """Round a unit price to a whole amount (XOF has no minor unit)."""
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ==================== Base Adapter ====================

class PaymentAdapter(ABC):
    """Abstract base class for payment provider adapters."""

    @abstractmethod
    async def create_transaction(
        self,
        request: TransactionRequest
    ) -> TransactionResponse:
        """Create a hosted-checkout transaction.

        Args:
            request: Products, payment methods and redirect URLs

        Returns:
            Provider transaction id and checkout URL

        Raises:
            PaymentError: If the provider cannot create the transaction
        """
        pass

    @abstractmethod
    async def webhook_verify(
        self,
        payload: bytes,
        sig_header: Optional[str]
    ) -> WebhookEvent:
        """Verify and parse webhook payload.

        Args:
            payload: Raw webhook payload
            sig_header: Signature header for verification

        Returns:
            Parsed and verified webhook data

        Raises:
            ConfigurationError: If no webhook secret is configured
            SignatureError: If the signature does not match
            WebhookError: If the payload cannot be parsed
        """
        pass
