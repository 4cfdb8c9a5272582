"""Adapters for integrating external payment providers."""

from .base import PaymentAdapter
from .exceptions import PaymentError, ValidationError, ConfigurationError, AuthenticationError, RateLimitError, PaymentProcessingError, WebhookError, SignatureError, OrderNotFoundError

__all__ = ["PaymentAdapter", "PaymentError", "ValidationError", "ConfigurationError", "AuthenticationError", "RateLimitError", "PaymentProcessingError", "WebhookError", "SignatureError", "OrderNotFoundError"]
