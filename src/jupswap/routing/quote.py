"""Quote request construction and quote response parsing.

Jupiter quote API: GET {base}/quote
Docs: https://dev.jup.ag/docs/swap-api/get-quote
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from jupswap.errors import InvalidQuoteResponse

logger = logging.getLogger(__name__)

MAX_BPS = 10000


@dataclass(frozen=True)
class SwapIntent:
    """A requested swap. Built once per invocation, never mutated."""

    input_token: str
    output_token: str
    amount: int  # smallest units of input_token
    slippage_bps: int = 50
    platform_fee_bps: int = 0

    def __post_init__(self):
        if not self.input_token or not self.output_token:
            raise ValueError("input and output token are required")
        if self.input_token == self.output_token:
            raise ValueError("input and output token must differ")
        if isinstance(self.amount, bool) or not isinstance(self.amount, int) or self.amount <= 0:
            raise ValueError(f"amount must be a positive integer, got {self.amount!r}")
        for name in ("slippage_bps", "platform_fee_bps"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_BPS:
                raise ValueError(f"{name} must be an integer in [0, {MAX_BPS}], got {value!r}")


@dataclass(frozen=True)
class QuoteRequest:
    """A fully serialized GET request against the quote endpoint."""

    url: str
    params: tuple[tuple[str, str], ...]

    def as_params(self) -> dict[str, str]:
        return dict(self.params)


@dataclass(frozen=True)
class PlatformFee:
    """Referral fee carved out by the aggregator."""

    amount: int
    fee_bps: int


@dataclass(frozen=True)
class QuoteResult:
    """A usable quote. raw is sent back verbatim when building the swap."""

    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    route_plan: tuple[Mapping[str, Any], ...]
    price_impact_pct: str = "0"
    platform_fee: Optional[PlatformFee] = None
    other_amount_threshold: Optional[int] = None
    slippage_bps: Optional[int] = None
    swap_mode: Optional[str] = None
    context_slot: Optional[int] = None
    time_taken: Optional[float] = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def dex_path(self) -> list[str]:
        """Venue labels of each hop, for display only."""
        labels = []
        for step in self.route_plan:
            swap_info = step.get("swapInfo") if isinstance(step, Mapping) else None
            swap_info = swap_info or {}
            labels.append(swap_info.get("label", "Unknown"))
        return labels


@dataclass(frozen=True)
class NoRouteFound:
    """The aggregator answered but found no viable route.

    A business outcome, not an error: retry with larger slippage or another pair.
    """

    input_mint: Optional[str]
    output_mint: Optional[str]
    amount: Optional[int]
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)


QuoteOutcome = Union[QuoteResult, NoRouteFound]


def build_quote_request(intent: SwapIntent, base_url: str) -> QuoteRequest:
    """Serialize a swap intent into a quote request.

    restrictIntermediateTokens and platformFeeBps are always sent, the fee
    even when zero, so "no fee requested" is distinguishable from "fee omitted".
    """
    params = (
        ("inputMint", intent.input_token),
        ("outputMint", intent.output_token),
        ("amount", str(intent.amount)),
        ("slippageBps", str(intent.slippage_bps)),
        ("restrictIntermediateTokens", "true"),
        ("platformFeeBps", str(intent.platform_fee_bps)),
    )
    return QuoteRequest(url=f"{base_url.rstrip('/')}/quote", params=params)


def _parse_uint(raw: Mapping[str, Any], key: str, payload: object) -> int:
    value = raw[key]
    if isinstance(value, bool):
        raise InvalidQuoteResponse(f"{key} is not an integer: {value!r}", payload)
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isdigit():
        parsed = int(value)
    else:
        raise InvalidQuoteResponse(f"{key} is not a non-negative integer: {value!r}", payload)
    if parsed < 0:
        raise InvalidQuoteResponse(f"{key} is negative: {value!r}", payload)
    return parsed


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_platform_fee(value: Any, payload: object) -> Optional[PlatformFee]:
    if value is None:
        return None
    if not isinstance(value, Mapping) or "amount" not in value:
        raise InvalidQuoteResponse(f"Malformed platformFee: {value!r}", payload)
    fee_bps = _optional_int(value.get("feeBps"))
    return PlatformFee(
        amount=_parse_uint(value, "amount", payload),
        fee_bps=fee_bps if fee_bps is not None else 0,
    )


def parse_quote_response(raw: Any) -> QuoteOutcome:
    """Validate and normalize a quote payload.

    Returns:
        QuoteResult, or NoRouteFound if routePlan is present but empty

    Raises:
        InvalidQuoteResponse: if required fields are missing or malformed
    """
    if not isinstance(raw, Mapping):
        raise InvalidQuoteResponse(f"Quote payload is not an object: {type(raw).__name__}", raw)

    missing = [key for key in ("inAmount", "outAmount", "routePlan") if key not in raw]
    if missing:
        raise InvalidQuoteResponse(f"Quote payload missing {', '.join(missing)}", raw)

    route_plan = raw["routePlan"]
    if not isinstance(route_plan, list):
        raise InvalidQuoteResponse(f"routePlan is not a list: {route_plan!r}", raw)

    in_amount = _parse_uint(raw, "inAmount", raw)
    out_amount = _parse_uint(raw, "outAmount", raw)

    if not route_plan:
        logger.info(
            f"No route found for {raw.get('inputMint')} -> {raw.get('outputMint')}"
        )
        return NoRouteFound(
            input_mint=raw.get("inputMint"),
            output_mint=raw.get("outputMint"),
            amount=in_amount,
            raw=raw,
        )

    time_taken = raw.get("timeTaken")
    return QuoteResult(
        input_mint=raw.get("inputMint", ""),
        output_mint=raw.get("outputMint", ""),
        in_amount=in_amount,
        out_amount=out_amount,
        route_plan=tuple(route_plan),
        price_impact_pct=str(raw.get("priceImpactPct", "0")),
        platform_fee=_parse_platform_fee(raw.get("platformFee"), raw),
        other_amount_threshold=_optional_int(raw.get("otherAmountThreshold")),
        slippage_bps=_optional_int(raw.get("slippageBps")),
        swap_mode=raw.get("swapMode"),
        context_slot=_optional_int(raw.get("contextSlot")),
        time_taken=float(time_taken) if isinstance(time_taken, (int, float)) else None,
        raw=raw,
    )
