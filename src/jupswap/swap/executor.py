"""End-to-end swap execution.

quote -> build -> sign -> submit -> confirm -> settle -> verify, strictly in
sequence. No retries beyond the RPC submission retry count.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from solders.keypair import Keypair

from jupswap.config import SwapConfig
from jupswap.errors import InsufficientBalance, TransactionFailed
from jupswap.ledger.solana import LedgerClient
from jupswap.routing.jupiter import JupiterClient
from jupswap.routing.quote import NoRouteFound, QuoteResult, SwapIntent
from jupswap.swap.builder import build_execution_request, validate_fee_account
from jupswap.swap.verify import (
    Anomaly,
    BalanceSnapshot,
    DeltaReport,
    reconcile_platform_fee,
    verify_balance_deltas,
)
from jupswap.tokens import NATIVE_MINT, TokenRegistry, default_registry, explorer_urls, format_sol

logger = logging.getLogger(__name__)

# Reserve on top of the swap amount for network and account rent (0.005 SOL)
FEE_RESERVE_LAMPORTS = 5_000_000


class SwapStatus(str, Enum):
    COMPLETED = "completed"
    NO_ROUTE = "no_route"
    QUOTED = "quoted"


@dataclass
class SwapOutcome:
    """Result of a swap or quote-only attempt."""

    status: SwapStatus
    intent: SwapIntent
    quote: Union[QuoteResult, NoRouteFound]
    quote_anomalies: list[Anomaly] = field(default_factory=list)
    signature: Optional[str] = None
    before: Optional[BalanceSnapshot] = None
    after: Optional[BalanceSnapshot] = None
    report: Optional[DeltaReport] = None

    @property
    def anomalies(self) -> list[Anomaly]:
        found = list(self.quote_anomalies)
        if self.report:
            found.extend(self.report.anomalies)
        return found


class SwapExecutor:
    """Runs one swap for a wallet against Jupiter and a ledger client."""

    def __init__(
        self,
        config: SwapConfig,
        ledger: LedgerClient,
        jupiter: JupiterClient,
        keypair: Keypair,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        registry: TokenRegistry = default_registry,
    ):
        self.config = config
        self.ledger = ledger
        self.jupiter = jupiter
        self.keypair = keypair
        self.sleep = sleep
        self.registry = registry

    @property
    def wallet(self) -> str:
        return str(self.keypair.pubkey())

    def _fee_account(self, intent: SwapIntent, use_fee: bool) -> Optional[str]:
        """Validated fee account, or None when fees are disabled."""
        if not use_fee or intent.platform_fee_bps == 0:
            return None
        validate_fee_account(
            self.config.fee_account, intent.output_token, self.config.referral_account
        )
        return self.config.fee_account

    def _resolve_intent(self, intent: Optional[SwapIntent], use_fee: bool) -> SwapIntent:
        intent = intent or self.config.intent()
        if not use_fee and intent.platform_fee_bps:
            logger.warning("Platform fee disabled for this swap")
            intent = SwapIntent(
                input_token=intent.input_token,
                output_token=intent.output_token,
                amount=intent.amount,
                slippage_bps=intent.slippage_bps,
                platform_fee_bps=0,
            )
        return intent

    async def snapshot(self, output_mint: str) -> BalanceSnapshot:
        """Current SOL and output-token balances of the wallet."""
        native = await self.ledger.get_balance(self.wallet)
        token = await self.ledger.get_token_balance(self.wallet, output_mint)
        return BalanceSnapshot(native_balance=native, token_balance=token)

    def _log_snapshot(self, label: str, intent: SwapIntent, snapshot: BalanceSnapshot) -> None:
        logger.info(
            f"{label} balances: SOL {format_sol(snapshot.native_balance)}, "
            f"{self.registry.format(intent.output_token, snapshot.token_balance)}"
        )

    async def quote_only(
        self, intent: Optional[SwapIntent] = None, *, use_fee: bool = True
    ) -> SwapOutcome:
        """Fetch and check a quote without executing it."""
        intent = self._resolve_intent(intent, use_fee)
        self._fee_account(intent, use_fee)

        quote = await self.jupiter.get_quote(intent)
        if isinstance(quote, NoRouteFound):
            return SwapOutcome(status=SwapStatus.NO_ROUTE, intent=intent, quote=quote)

        anomalies = reconcile_platform_fee(intent, quote)
        for anomaly in anomalies:
            logger.warning(f"Quote check: {anomaly.message}")
        return SwapOutcome(
            status=SwapStatus.QUOTED, intent=intent, quote=quote, quote_anomalies=anomalies
        )

    async def execute(
        self, intent: Optional[SwapIntent] = None, *, use_fee: bool = True
    ) -> SwapOutcome:
        """Quote, sign, submit and verify one swap.

        Raises:
            InvalidFeeAccount: before any network call
            InsufficientBalance: before the quote is fetched
            TransactionFailed: if the cluster reports an error
        """
        intent = self._resolve_intent(intent, use_fee)
        fee_account = self._fee_account(intent, use_fee)

        logger.info(f"Starting swap from wallet {self.wallet}")
        before = await self.snapshot(intent.output_token)
        self._log_snapshot("Initial", intent, before)

        if intent.input_token == NATIVE_MINT:
            required = intent.amount + FEE_RESERVE_LAMPORTS
            if before.native_balance < required:
                raise InsufficientBalance(required=required, available=before.native_balance)

        quote = await self.jupiter.get_quote(intent)
        if isinstance(quote, NoRouteFound):
            logger.warning("No route found, nothing submitted")
            return SwapOutcome(
                status=SwapStatus.NO_ROUTE, intent=intent, quote=quote, before=before
            )

        quote_anomalies = reconcile_platform_fee(intent, quote)
        for anomaly in quote_anomalies:
            logger.warning(f"Quote check: {anomaly.message}")

        request = build_execution_request(
            quote,
            self.wallet,
            fee_account,
            self.config.priority_fee_lamports,
            referral_account=self.config.referral_account,
        )
        swap = await self.jupiter.get_swap_transaction(request)

        transaction = self.ledger.deserialize_transaction(swap.swap_transaction)
        signed = self.ledger.sign(transaction, self.keypair)
        signature = await self.ledger.submit(signed)

        confirmation = await self.ledger.confirm(signature)
        if not confirmation.ok:
            raise TransactionFailed(signature, confirmation.error)

        urls = explorer_urls(signature)
        logger.info(f"Transaction confirmed: {signature}")
        logger.info(f"Explorer: {urls['explorer']}")
        logger.info(f"SolanaFM: {urls['solanafm']}")

        # Best-effort wait for RPC nodes to reflect the new balances
        await self.sleep(self.config.settle_delay_seconds)

        after = await self.snapshot(intent.output_token)
        self._log_snapshot("Final", intent, after)

        report = verify_balance_deltas(before, after, intent, quote)
        logger.info(
            f"Changes: SOL {format_sol(report.delta.native_delta)}, "
            f"{self.registry.format(intent.output_token, report.delta.token_delta)}"
        )

        return SwapOutcome(
            status=SwapStatus.COMPLETED,
            intent=intent,
            quote=quote,
            quote_anomalies=quote_anomalies,
            signature=signature,
            before=before,
            after=after,
            report=report,
        )
