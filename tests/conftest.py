"""Pytest configuration and fixtures."""

import base58
import pytest
from solders.keypair import Keypair

from jupswap.config import resolve_config
from jupswap.swap.builder import derive_referral_token_account, parse_address
from jupswap.tokens import NATIVE_MINT, USDC_MINT

USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def private_key(keypair: Keypair) -> str:
    """Base58 secret key of the test wallet."""
    return base58.b58encode(bytes(keypair)).decode()


@pytest.fixture
def referral_account() -> str:
    return str(Keypair().pubkey())


@pytest.fixture
def usdc_fee_account(referral_account: str) -> str:
    """Referral token account for USDC, a valid fee destination."""
    return str(derive_referral_token_account(parse_address(referral_account), parse_address(USDC_MINT)))


@pytest.fixture
def environ(private_key: str, referral_account: str, usdc_fee_account: str) -> dict:
    """Environment mapping for a SOL -> USDC swap with a valid fee account."""
    return {
        "PRIVATE_KEY": private_key,
        "REFFERAL_ACCOUNT": referral_account,
        "FEE_ACCOUNT": usdc_fee_account,
        "SETTLE_DELAY_SECONDS": "3",
    }


@pytest.fixture
def config(environ: dict):
    return resolve_config(environ)


def make_quote_payload(**overrides) -> dict:
    """A SOL -> USDC quote payload shaped like the Jupiter response."""
    payload = {
        "inputMint": NATIVE_MINT,
        "inAmount": "10000000",
        "outputMint": USDC_MINT,
        "outAmount": "150000",
        "otherAmountThreshold": "149250",
        "swapMode": "ExactIn",
        "slippageBps": 50,
        "platformFee": None,
        "priceImpactPct": "0.0001",
        "routePlan": [
            {
                "swapInfo": {
                    "ammKey": "HcoJqG325TTifs6jyWvRJ9ET4pDu12Xrt2EQKZGFmuKX",
                    "label": "Whirlpool",
                    "inputMint": NATIVE_MINT,
                    "outputMint": USDC_MINT,
                    "inAmount": "10000000",
                    "outAmount": "150000",
                },
                "percent": 100,
                "bps": 10000,
            }
        ],
        "contextSlot": 301234567,
        "timeTaken": 0.0123,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def quote_payload() -> dict:
    return make_quote_payload()
