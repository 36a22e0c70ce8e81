"""Swap transaction building, execution and verification.

Provides:
- build_execution_request: swap-build payload with fee account checks
- verify_balance_deltas: post-swap balance verification
- SwapExecutor (jupswap.swap.executor): the end-to-end flow
"""

from jupswap.swap.builder import (
    SwapExecutionRequest,
    SwapTransaction,
    build_execution_request,
    derive_referral_token_account,
    validate_fee_account,
)
from jupswap.swap.verify import (
    Anomaly,
    AnomalyKind,
    BalanceSnapshot,
    DeltaReport,
    calculate_fee_amount,
    reconcile_platform_fee,
    verify_balance_deltas,
)

__all__ = [
    # Builder
    "SwapExecutionRequest",
    "SwapTransaction",
    "build_execution_request",
    "derive_referral_token_account",
    "validate_fee_account",
    # Verifier
    "Anomaly",
    "AnomalyKind",
    "BalanceSnapshot",
    "DeltaReport",
    "calculate_fee_amount",
    "reconcile_platform_fee",
    "verify_balance_deltas",
]
