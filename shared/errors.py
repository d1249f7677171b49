"""
Error taxonomy for the swap aggregator router.

``ValidationError`` and ``QuoteError`` are local to one adapter call and
are recovered by the router.  Only ``NoRouteError`` reaches the caller of
a fan-out request.
"""

from __future__ import annotations

from typing import Any


class SwapError(Exception):
    """Base class for all routing errors."""


class ValidationError(SwapError, ValueError):
    """Raised when swap parameters are malformed, before any network call."""


class ZeroAmountError(ValueError):
    """Raised by the estimate normalizer for a zero input or output amount."""


class QuoteError(SwapError):
    """Raised when a vendor call fails or returns an unusable response."""

    def __init__(
        self,
        vendor: str,
        message: str,
        http_status: int | None = None,
        raw: Any = None,
    ) -> None:
        self.vendor = vendor
        self.message = message
        self.http_status = http_status
        self.raw = raw
        super().__init__(str(self))

    def __str__(self) -> str:
        status = f" (HTTP {self.http_status})" if self.http_status is not None else ""
        return f"[{self.vendor}] {self.message}{status}"


class NoRouteError(SwapError):
    """Raised when every selected aggregator failed to return a route."""

    def __init__(self, attempted: list[str], description: str = "") -> None:
        self.attempted = list(attempted)
        suffix = f" for {description}" if description else ""
        super().__init__(
            f"No viable routes found{suffix} across aggregators: {', '.join(self.attempted)}"
        )


class StatusUnsupportedError(SwapError, NotImplementedError):
    """Raised by adapters that do not track transaction status."""
