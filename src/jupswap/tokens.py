"""Solana token table and amount formatting.

Decimals are looked up from the registry, never assumed at the call site:
a wrong decimal count corrupts every displayed and compared amount while
the on-chain transaction stays correct.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

logger = logging.getLogger(__name__)

NATIVE_MINT = "So11111111111111111111111111111111111111112"  # Wrapped SOL
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

DEFAULT_DECIMALS = 6
SOL_DECIMALS = 9


@dataclass(frozen=True)
class TokenInfo:
    """Display metadata for a mint."""

    symbol: str
    decimals: int


# Token mint addresses on Solana mainnet
SOLANA_TOKENS = {
    NATIVE_MINT: TokenInfo("SOL", 9),
    USDC_MINT: TokenInfo("USDC", 6),
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": TokenInfo("USDT", 6),
    "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN": TokenInfo("JUP", 6),
    "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So": TokenInfo("mSOL", 9),
    "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R": TokenInfo("RAY", 6),
    "orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE": TokenInfo("ORCA", 6),
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": TokenInfo("BONK", 5),
    "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm": TokenInfo("WIF", 6),
    "HZ1JovNiVvGrGNiiYvEozEVgZ58xaU3RKwX8eACQBCt3": TokenInfo("PYTH", 6),
}


class TokenRegistry:
    """Mint -> symbol/decimals lookup, extensible at runtime."""

    def __init__(self, tokens: Optional[dict[str, TokenInfo]] = None):
        self._tokens: dict[str, TokenInfo] = dict(SOLANA_TOKENS if tokens is None else tokens)
        self._warned: set[str] = set()

    def register(self, mint: str, symbol: str, decimals: int) -> None:
        """Add or replace a mint."""
        if decimals < 0:
            raise ValueError(f"decimals must be non-negative, got {decimals}")
        self._tokens[mint] = TokenInfo(symbol, decimals)

    def get(self, mint: str) -> Optional[TokenInfo]:
        return self._tokens.get(mint)

    def __contains__(self, mint: str) -> bool:
        return mint in self._tokens

    def __iter__(self):
        return iter(self._tokens.items())

    def resolve(self, symbol_or_mint: str) -> str:
        """Mint for a registered symbol (case-insensitive); anything else is returned as is."""
        wanted = symbol_or_mint.strip()
        for mint, info in self._tokens.items():
            if info.symbol.upper() == wanted.upper():
                return mint
        return wanted

    def token_name(self, mint: str) -> str:
        """Symbol for a mint, or a shortened mint for unknown tokens."""
        info = self._tokens.get(mint)
        if info:
            return info.symbol
        return mint[:8] + "..."

    def decimals(self, mint: str) -> int:
        """Decimal count for a mint.

        Unknown mints fall back to DEFAULT_DECIMALS with a one-time warning.
        """
        info = self._tokens.get(mint)
        if info:
            return info.decimals
        if mint not in self._warned:
            self._warned.add(mint)
            logger.warning(
                f"No decimals registered for {mint}, assuming {DEFAULT_DECIMALS}"
            )
        return DEFAULT_DECIMALS

    def format(self, mint: str, value: int) -> str:
        """Human-readable amount with symbol."""
        return f"{format_amount(value, self.decimals(mint))} {self.token_name(mint)}"


def format_amount(value: int, decimals: int = SOL_DECIMALS) -> str:
    """Render a smallest-unit integer as value / 10**decimals."""
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    scaled = Decimal(int(value)).scaleb(-decimals)
    return f"{scaled:.{decimals}f}"


def parse_amount(text: str, decimals: int = SOL_DECIMALS) -> int:
    """Inverse of format_amount.

    Raises:
        ValueError: if text is not a decimal number or has more fractional
            digits than decimals allows
    """
    try:
        value = Decimal(text.strip())
    except (InvalidOperation, AttributeError):
        raise ValueError(f"Not a decimal amount: {text!r}")
    if not value.is_finite():
        raise ValueError(f"Not a decimal amount: {text!r}")

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{text} has more than {decimals} decimal places")
    return int(scaled)


def format_sol(lamports: int) -> str:
    """Lamports as SOL with 9 decimals."""
    return format_amount(lamports, SOL_DECIMALS)


def explorer_urls(signature: str, network: str = "mainnet-beta") -> dict[str, str]:
    """Block explorer links for a transaction signature."""
    return {
        "explorer": f"https://explorer.solana.com/tx/{signature}?cluster={network}",
        "solanafm": f"https://solana.fm/tx/{signature}?cluster={network}-solanafm",
    }


default_registry = TokenRegistry()
