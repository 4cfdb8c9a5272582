import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ("x_signature", "x-signature")


def compute_signature(payload: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the raw payload."""
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


def verify_signature(payload: bytes, signature: str | None, secret: str) -> bool:
    """
    Verify the signature (HMAC-SHA256)

    A missing signature compares as the empty string so every request goes
    through the same constant-time comparison.
    """
    expected = compute_signature(payload, secret)
    received = signature or ""
    return hmac.compare_digest(expected.encode(), received.encode())


def signature_from_headers(headers) -> str | None:
    """Return the webhook signature from either accepted header spelling."""
    for name in SIGNATURE_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return None
