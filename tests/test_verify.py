"""Tests for fee arithmetic and post-swap balance verification."""

import pytest

from conftest import make_quote_payload
from jupswap.routing.quote import SwapIntent, parse_quote_response
from jupswap.swap.verify import (
    AnomalyKind,
    BalanceSnapshot,
    calculate_fee_amount,
    expected_output,
    minimum_output,
    reconcile_platform_fee,
    verify_balance_deltas,
)
from jupswap.tokens import NATIVE_MINT, USDC_MINT


def make_intent(**overrides) -> SwapIntent:
    values = dict(
        input_token=NATIVE_MINT,
        output_token=USDC_MINT,
        amount=10_000_000,
        slippage_bps=50,
        platform_fee_bps=20,
    )
    values.update(overrides)
    return SwapIntent(**values)


class TestFeeArithmetic:
    """Tests for integer fee and slippage math."""

    def test_fee_amount(self):
        assert calculate_fee_amount(150_000, 20) == 300
        assert calculate_fee_amount(1_000_000, 20) == 2_000

    def test_fee_rounds_down(self):
        assert calculate_fee_amount(999, 20) == 1
        assert calculate_fee_amount(49, 20) == 0

    @pytest.mark.parametrize("amount", [0, 1, 4_999, 150_000, 10**18])
    def test_fee_never_exceeds_amount(self, amount):
        for bps in (0, 1, 20, 5_000, 10_000):
            assert 0 <= calculate_fee_amount(amount, bps) <= amount

    def test_fee_monotonic_in_bps(self):
        fees = [calculate_fee_amount(123_456_789, bps) for bps in range(0, 10_001, 250)]

        assert fees == sorted(fees)

    def test_zero_bps_is_zero(self):
        assert calculate_fee_amount(10**18, 0) == 0

    def test_full_bps_is_amount(self):
        assert calculate_fee_amount(150_000, 10_000) == 150_000

    def test_minimum_output(self):
        assert minimum_output(150_000, 50) == 149_250
        assert minimum_output(150_000, 0) == 150_000
        assert minimum_output(150_000, 10_000) == 0

    def test_expected_output_without_fee(self):
        quote = parse_quote_response(make_quote_payload())

        assert expected_output(quote) == 150_000

    def test_expected_output_with_fee(self):
        quote = parse_quote_response(make_quote_payload(platformFee={"amount": "300", "feeBps": 20}))

        assert expected_output(quote) == 149_700

    def test_expected_output_never_negative(self):
        quote = parse_quote_response(
            make_quote_payload(outAmount="100", platformFee={"amount": "300", "feeBps": 20})
        )

        assert expected_output(quote) == 0


class TestReconcilePlatformFee:
    """Tests for quote fee reconciliation."""

    def test_matching_fee(self):
        quote = parse_quote_response(make_quote_payload(platformFee={"amount": "300", "feeBps": 20}))

        assert reconcile_platform_fee(make_intent(), quote) == []

    def test_fee_on_gross_amount_accepted(self):
        """Fee computed before deduction from the output is within tolerance."""
        quote = parse_quote_response(
            make_quote_payload(outAmount="149700", platformFee={"amount": "300", "feeBps": 20})
        )

        assert reconcile_platform_fee(make_intent(), quote) == []

    def test_rounding_tolerance(self):
        quote = parse_quote_response(make_quote_payload(platformFee={"amount": "301", "feeBps": 20}))

        assert reconcile_platform_fee(make_intent(), quote) == []

    def test_fee_amount_mismatch(self):
        quote = parse_quote_response(make_quote_payload(platformFee={"amount": "900", "feeBps": 20}))

        anomalies = reconcile_platform_fee(make_intent(), quote)

        assert [a.kind for a in anomalies] == [AnomalyKind.FEE_MISMATCH]
        assert anomalies[0].actual == 900
        assert anomalies[0].expected == 300

    def test_fee_bps_mismatch(self):
        quote = parse_quote_response(make_quote_payload(platformFee={"amount": "750", "feeBps": 50}))

        anomalies = reconcile_platform_fee(make_intent(), quote)

        assert [a.kind for a in anomalies] == [AnomalyKind.FEE_BPS_MISMATCH]

    def test_missing_fee(self):
        quote = parse_quote_response(make_quote_payload())

        anomalies = reconcile_platform_fee(make_intent(), quote)

        assert [a.kind for a in anomalies] == [AnomalyKind.MISSING_PLATFORM_FEE]

    def test_no_fee_requested(self):
        quote = parse_quote_response(make_quote_payload())

        assert reconcile_platform_fee(make_intent(platform_fee_bps=0), quote) == []


class TestVerifyBalanceDeltas:
    """Tests for post-settlement balance checks."""

    @pytest.fixture
    def quote(self):
        return parse_quote_response(make_quote_payload())

    def test_expected_swap(self, quote):
        """SOL spent and USDC received within slippage."""
        before = BalanceSnapshot(native_balance=1_000_000_000, token_balance=0)
        after = BalanceSnapshot(native_balance=994_995_000, token_balance=150_000)

        report = verify_balance_deltas(before, after, make_intent(), quote)

        assert report.ok
        assert report.delta.native_delta == -5_005_000
        assert report.delta.token_delta == 150_000
        assert report.expected_output == 150_000
        assert report.minimum_output == 149_250

    def test_output_at_floor_is_ok(self, quote):
        before = BalanceSnapshot(native_balance=1_000_000_000, token_balance=10)
        after = BalanceSnapshot(native_balance=989_995_000, token_balance=10 + 149_250)

        assert verify_balance_deltas(before, after, make_intent(), quote).ok

    def test_slippage_exceeded(self, quote, caplog):
        before = BalanceSnapshot(native_balance=1_000_000_000, token_balance=0)
        after = BalanceSnapshot(native_balance=994_995_000, token_balance=100_000)

        report = verify_balance_deltas(before, after, make_intent(), quote)

        assert report.slippage_exceeded
        assert [a.kind for a in report.anomalies] == [AnomalyKind.SLIPPAGE_EXCEEDED]
        assert report.anomalies[0].expected == 149_250
        assert report.anomalies[0].actual == 100_000
        assert "slippage floor" in caplog.text

    def test_token_balance_decreased(self, quote):
        before = BalanceSnapshot(native_balance=1_000_000_000, token_balance=500)
        after = BalanceSnapshot(native_balance=994_995_000, token_balance=400)

        report = verify_balance_deltas(before, after, make_intent(), quote)

        assert report.has(AnomalyKind.UNEXPECTED_TOKEN_DELTA)
        assert not report.slippage_exceeded

    def test_native_input_not_spent(self, quote):
        before = BalanceSnapshot(native_balance=1_000_000_000, token_balance=0)
        after = BalanceSnapshot(native_balance=1_000_000_000, token_balance=150_000)

        report = verify_balance_deltas(before, after, make_intent(), quote)

        assert [a.kind for a in report.anomalies] == [AnomalyKind.UNEXPECTED_NATIVE_DELTA]

    def test_native_output_increase(self):
        """Buying SOL only checks that the native balance went up."""
        quote = parse_quote_response(
            make_quote_payload(
                inputMint=USDC_MINT, outputMint=NATIVE_MINT, inAmount="1500000", outAmount="10000000"
            )
        )
        intent = make_intent(input_token=USDC_MINT, output_token=NATIVE_MINT, amount=1_500_000)
        before = BalanceSnapshot(native_balance=100_000_000, token_balance=0)
        after = BalanceSnapshot(native_balance=109_990_000, token_balance=0)

        assert verify_balance_deltas(before, after, intent, quote).ok

    def test_native_output_not_received(self):
        quote = parse_quote_response(
            make_quote_payload(
                inputMint=USDC_MINT, outputMint=NATIVE_MINT, inAmount="1500000", outAmount="10000000"
            )
        )
        intent = make_intent(input_token=USDC_MINT, output_token=NATIVE_MINT, amount=1_500_000)
        before = BalanceSnapshot(native_balance=100_000_000, token_balance=0)
        after = BalanceSnapshot(native_balance=99_995_000, token_balance=0)

        report = verify_balance_deltas(before, after, intent, quote)

        assert report.has(AnomalyKind.UNEXPECTED_NATIVE_DELTA)

    def test_fee_lowers_expected_output(self):
        quote = parse_quote_response(make_quote_payload(platformFee={"amount": "300", "feeBps": 20}))
        before = BalanceSnapshot(native_balance=1_000_000_000, token_balance=0)
        after = BalanceSnapshot(native_balance=994_995_000, token_balance=149_000)

        report = verify_balance_deltas(before, after, make_intent(), quote)

        assert report.expected_output == 149_700
        assert report.minimum_output == 148_951
        assert report.ok


def test_snapshot_subtraction():
    before = BalanceSnapshot(native_balance=10, token_balance=5)
    after = BalanceSnapshot(native_balance=7, token_balance=9)

    delta = after - before

    assert delta.native_delta == -3
    assert delta.token_delta == 4
