"""Exceptions raised by payment adapters and the order store."""


class PaymentError(Exception):
    """Base exception for payment-related errors."""
    pass


class ValidationError(PaymentError):
    """Raised when input validation fails."""
    pass


class ConfigurationError(PaymentError):
    """Raised when a required gateway setting is missing."""
    pass


class AuthenticationError(PaymentError):
    """Raised when the provider rejects the API token."""
    pass


class RateLimitError(PaymentError):
    """Raised when API rate limits are exceeded."""
    pass


class PaymentProcessingError(PaymentError):
    """Raised when the provider fails to create a transaction."""
    pass


class WebhookError(PaymentError):
    """Raised when webhook processing fails."""
    pass


class SignatureError(WebhookError):
    """Raised when a webhook signature does not match the payload."""
    pass


class OrderNotFoundError(PaymentError):
    """Raised when an order cannot be found."""
    pass
