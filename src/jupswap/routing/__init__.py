"""Quote routing through the Jupiter aggregator.

JupiterClient lives in jupswap.routing.jupiter.
"""

from jupswap.routing.quote import (
    NoRouteFound,
    PlatformFee,
    QuoteRequest,
    QuoteResult,
    SwapIntent,
    build_quote_request,
    parse_quote_response,
)

__all__ = [
    "NoRouteFound",
    "PlatformFee",
    "QuoteRequest",
    "QuoteResult",
    "SwapIntent",
    "build_quote_request",
    "parse_quote_response",
]
