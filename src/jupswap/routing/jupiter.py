"""Jupiter DEX aggregator client.

Uses the Jupiter Swap API for quotes and swap transactions.
API docs: https://dev.jup.ag/docs/swap-api
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from jupswap.errors import QuoteRequestError, SwapBuildError
from jupswap.routing.quote import (
    QuoteOutcome,
    QuoteResult,
    SwapIntent,
    build_quote_request,
    parse_quote_response,
)
from jupswap.swap.builder import SwapExecutionRequest, SwapTransaction
from jupswap.tokens import TokenRegistry, default_registry

logger = logging.getLogger(__name__)

JUPITER_LITE_API = "https://lite-api.jup.ag/swap/v1"


class JupiterClient:
    """Thin async client for the quote and swap-build endpoints.

    Either owns its httpx.AsyncClient or borrows one passed in (tests use
    an httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str = JUPITER_LITE_API,
        client: Optional[httpx.AsyncClient] = None,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        registry: TokenRegistry = default_registry,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.registry = registry
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "JupiterClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_headers(self) -> dict:
        """Get API headers."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def get_quote(self, intent: SwapIntent) -> QuoteOutcome:
        """Fetch a fresh quote for the intent.

        Returns:
            QuoteResult, or NoRouteFound when the aggregator has no route

        Raises:
            QuoteRequestError: on transport failure or non-200 status
            InvalidQuoteResponse: if the payload is malformed
        """
        request = build_quote_request(intent, self.base_url)
        registry = self.registry

        logger.info(
            f"Getting quote: {registry.format(intent.input_token, intent.amount)} -> "
            f"{registry.token_name(intent.output_token)} "
            f"(slippage {intent.slippage_bps} bps, fee {intent.platform_fee_bps} bps)"
        )

        try:
            response = await self.client.get(
                request.url,
                headers=self._get_headers(),
                params=request.as_params(),
            )
        except httpx.HTTPError as e:
            raise QuoteRequestError(f"Jupiter quote request failed: {e}") from e

        if response.status_code != 200:
            raise QuoteRequestError(
                f"Failed to get quote: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise QuoteRequestError(f"Jupiter quote body is not JSON: {e}") from e

        outcome = parse_quote_response(payload)
        if isinstance(outcome, QuoteResult):
            self._log_quote(outcome)
        return outcome

    def _log_quote(self, quote: QuoteResult) -> None:
        registry = self.registry
        logger.info(
            f"Quote received: {registry.format(quote.input_mint, quote.in_amount)} -> "
            f"{registry.format(quote.output_mint, quote.out_amount)} "
            f"(price impact {quote.price_impact_pct}%, route {' > '.join(quote.dex_path)})"
        )
        if quote.platform_fee:
            logger.info(
                f"Platform fee: {registry.format(quote.output_mint, quote.platform_fee.amount)} "
                f"({quote.platform_fee.fee_bps} bps)"
            )

    async def get_swap_transaction(self, request: SwapExecutionRequest) -> SwapTransaction:
        """Ask Jupiter to build the swap transaction for a quote.

        Raises:
            SwapBuildError: on transport failure, non-200 status or empty body
        """
        logger.info("Getting swap transaction...")
        try:
            response = await self.client.post(
                f"{self.base_url}/swap",
                headers={**self._get_headers(), "Content-Type": "application/json"},
                json=request.to_payload(),
            )
        except httpx.HTTPError as e:
            raise SwapBuildError(f"Jupiter swap request failed: {e}") from e

        if response.status_code != 200:
            raise SwapBuildError(
                f"Failed to get swap transaction: {response.status_code}\n{response.text}",
                status_code=response.status_code,
            )

        try:
            swap = SwapTransaction.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise SwapBuildError(f"No swap transaction returned: {e}") from e

        logger.info(f"Swap transaction received (valid until block {swap.last_valid_block_height})")
        return swap
