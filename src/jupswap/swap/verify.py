"""Balance delta verification and fee arithmetic.

Findings are reported, not raised: the swap has already landed on chain and
concurrent transfers can legitimately break any of these expectations.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from jupswap.routing.quote import MAX_BPS, QuoteResult, SwapIntent
from jupswap.tokens import NATIVE_MINT

logger = logging.getLogger(__name__)

FEE_ROUNDING_TOLERANCE = 1


class AnomalyKind(str, Enum):
    SLIPPAGE_EXCEEDED = "slippage_exceeded"
    FEE_MISMATCH = "fee_mismatch"
    FEE_BPS_MISMATCH = "fee_bps_mismatch"
    MISSING_PLATFORM_FEE = "missing_platform_fee"
    UNEXPECTED_NATIVE_DELTA = "unexpected_native_delta"
    UNEXPECTED_TOKEN_DELTA = "unexpected_token_delta"


@dataclass(frozen=True)
class Anomaly:
    """A non-fatal finding about a quote or a settled swap."""

    kind: AnomalyKind
    message: str
    expected: Optional[int] = None
    actual: Optional[int] = None


@dataclass(frozen=True)
class BalanceDelta:
    native_delta: int
    token_delta: int


@dataclass(frozen=True)
class BalanceSnapshot:
    """Native (lamports) and output-token balances in smallest units."""

    native_balance: int
    token_balance: int

    def __sub__(self, other: "BalanceSnapshot") -> BalanceDelta:
        if not isinstance(other, BalanceSnapshot):
            return NotImplemented
        return BalanceDelta(
            native_delta=self.native_balance - other.native_balance,
            token_delta=self.token_balance - other.token_balance,
        )


@dataclass
class DeltaReport:
    delta: BalanceDelta
    expected_output: int
    minimum_output: int
    anomalies: list[Anomaly] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.anomalies

    @property
    def slippage_exceeded(self) -> bool:
        return self.has(AnomalyKind.SLIPPAGE_EXCEEDED)

    def has(self, kind: AnomalyKind) -> bool:
        return any(anomaly.kind == kind for anomaly in self.anomalies)


def calculate_fee_amount(amount: int, fee_bps: int) -> int:
    """floor(amount * fee_bps / 10000) in integer arithmetic."""
    return (amount * fee_bps) // MAX_BPS


def minimum_output(out_amount: int, slippage_bps: int) -> int:
    """Smallest output acceptable at the given slippage."""
    return (out_amount * (MAX_BPS - slippage_bps)) // MAX_BPS


def expected_output(quote: QuoteResult) -> int:
    """Quoted output less any platform fee."""
    fee = quote.platform_fee.amount if quote.platform_fee else 0
    return max(quote.out_amount - fee, 0)


def reconcile_platform_fee(intent: SwapIntent, quote: QuoteResult) -> list[Anomaly]:
    """Compare the quoted platform fee with what was requested.

    The fee amount is accepted when it matches calculate_fee_amount within
    one unit, computed on the output amount either net or gross of the fee.
    """
    anomalies = []
    fee = quote.platform_fee

    if fee is None:
        if intent.platform_fee_bps > 0:
            anomalies.append(
                Anomaly(
                    AnomalyKind.MISSING_PLATFORM_FEE,
                    f"Requested {intent.platform_fee_bps} bps platform fee but quote has none",
                    expected=intent.platform_fee_bps,
                )
            )
        return anomalies

    if fee.fee_bps != intent.platform_fee_bps:
        anomalies.append(
            Anomaly(
                AnomalyKind.FEE_BPS_MISMATCH,
                f"Quote fee is {fee.fee_bps} bps, requested {intent.platform_fee_bps} bps",
                expected=intent.platform_fee_bps,
                actual=fee.fee_bps,
            )
        )

    net = calculate_fee_amount(quote.out_amount, fee.fee_bps)
    gross = calculate_fee_amount(quote.out_amount + fee.amount, fee.fee_bps)
    if min(abs(fee.amount - net), abs(fee.amount - gross)) > FEE_ROUNDING_TOLERANCE:
        anomalies.append(
            Anomaly(
                AnomalyKind.FEE_MISMATCH,
                f"Quote fee amount {fee.amount} does not match {fee.fee_bps} bps of "
                f"{quote.out_amount} (expected ~{net})",
                expected=net,
                actual=fee.amount,
            )
        )
    return anomalies


def verify_balance_deltas(
    before: BalanceSnapshot,
    after: BalanceSnapshot,
    intent: SwapIntent,
    quote: QuoteResult,
) -> DeltaReport:
    """Check that balances moved with the expected sign and magnitude.

    The token balance is the output token's; when the output is native SOL
    only the sign of the native delta can be checked, network fees blur
    the magnitude.
    """
    delta = after - before
    expected = expected_output(quote)
    floor = minimum_output(expected, intent.slippage_bps)
    report = DeltaReport(delta=delta, expected_output=expected, minimum_output=floor)

    if intent.input_token == NATIVE_MINT and delta.native_delta >= 0:
        report.anomalies.append(
            Anomaly(
                AnomalyKind.UNEXPECTED_NATIVE_DELTA,
                f"SOL balance did not decrease after spending it (delta {delta.native_delta})",
                actual=delta.native_delta,
            )
        )

    if intent.output_token == NATIVE_MINT:
        if delta.native_delta <= 0:
            report.anomalies.append(
                Anomaly(
                    AnomalyKind.UNEXPECTED_NATIVE_DELTA,
                    f"SOL balance did not increase after buying it (delta {delta.native_delta})",
                    actual=delta.native_delta,
                )
            )
    elif delta.token_delta < 0:
        report.anomalies.append(
            Anomaly(
                AnomalyKind.UNEXPECTED_TOKEN_DELTA,
                f"Output token balance decreased (delta {delta.token_delta})",
                expected=floor,
                actual=delta.token_delta,
            )
        )
    elif delta.token_delta < floor:
        report.anomalies.append(
            Anomaly(
                AnomalyKind.SLIPPAGE_EXCEEDED,
                f"Received {delta.token_delta}, below the slippage floor {floor} "
                f"({intent.slippage_bps} bps of {expected})",
                expected=floor,
                actual=delta.token_delta,
            )
        )

    for anomaly in report.anomalies:
        logger.warning(f"Balance check: {anomaly.message}")
    return report
