"""Exception hierarchy for the swap flow.

Every fatal condition derives from SwapError so the CLI can map it to a
non-zero exit status. Non-fatal outcomes (no route, slippage, fee anomalies)
are result values, see routing.quote.NoRouteFound and swap.verify.Anomaly.
"""

from typing import Optional


class SwapError(Exception):
    """Base class for all fatal swap errors."""


class ConfigError(SwapError):
    """Missing or malformed configuration. Raised before any network call."""


class InvalidQuoteResponse(SwapError):
    """The aggregator returned a quote payload that cannot be used."""

    def __init__(self, message: str, payload: Optional[object] = None):
        self.payload = payload
        super().__init__(message)


class QuoteRequestError(SwapError):
    """The quote endpoint could not be reached or answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SwapBuildError(SwapError):
    """The swap-build endpoint failed to return a transaction."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class InvalidFeeAccount(SwapError):
    """The configured fee account cannot receive fees in the output mint."""

    def __init__(self, fee_account: Optional[str], reason: str):
        self.fee_account = fee_account
        self.reason = reason
        super().__init__(f"Invalid fee account {fee_account}: {reason}")


class InsufficientBalance(SwapError):
    """Wallet balance does not cover the swap amount plus the fee reserve."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient SOL balance. Required: {required} lamports, "
            f"available: {available} lamports"
        )


class TransactionSubmitError(SwapError):
    """The RPC node rejected the transaction before it got a signature."""


class TransactionFailed(SwapError):
    """The cluster confirmed the transaction with an error, or never confirmed it."""

    def __init__(self, signature: str, error: object):
        self.signature = signature
        self.error = error
        super().__init__(f"Transaction {signature} failed: {error}")
