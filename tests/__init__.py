"""
Naboopay Gateway Test Suite

This package contains all tests for the gateway including:
- Unit tests for signature verification and adapters
- Order store tests against in-memory SQLite
- Checkout and webhook reconciliation tests
- HTTP tests through the ASGI app
"""
