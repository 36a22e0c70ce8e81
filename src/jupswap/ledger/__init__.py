"""Chain access for the swap flow."""

from jupswap.ledger.solana import (
    Confirmation,
    LedgerClient,
    SolanaLedgerClient,
    load_keypair,
    validate_private_key,
    validate_public_key,
)

__all__ = [
    "Confirmation",
    "LedgerClient",
    "SolanaLedgerClient",
    "load_keypair",
    "validate_private_key",
    "validate_public_key",
]
