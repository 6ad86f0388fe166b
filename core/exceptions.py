"""Shared exception types for the order lifecycle loop."""

from typing import Optional


class GatewayError(RuntimeError):
    """Raised when an exchange call did not complete (network, auth, rate limit)."""

    def __init__(self, operation: str, original: Optional[Exception] = None):
        message = operation if original is None else f"{operation}: {original}"
        super().__init__(message)
        self.operation = operation
        self.original = original


class MalformedResponse(ValueError):
    """Raised when an exchange call completed but its payload lacks the expected shape."""

    def __init__(self, operation: str, detail: str = ""):
        super().__init__(f"{operation}: {detail}" if detail else operation)
        self.operation = operation
        self.detail = detail


class PricingUndefined(ArithmeticError):
    """Raised when no trades fall inside the trailing-average window."""


class InsufficientFunds(Exception):
    """Balance or order size below threshold. Routed as a decision, not a failure."""

    def __init__(self, message: str, required=None, available=None):
        super().__init__(message)
        self.required = required
        self.available = available
