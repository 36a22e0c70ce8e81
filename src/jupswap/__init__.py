"""Jupiter swaps on Solana with referral fees."""

__version__ = "0.1.0"
