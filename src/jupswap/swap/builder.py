"""Swap-build request payloads and fee account pre-flight checks.

Nothing here signs or submits; the payload is handed to the Jupiter client
and the resulting transaction to the ledger client.

A platform fee must land in a token account for the output mint. A plain
wallet address is not a valid fee destination, and the remote service only
rejects it after a quote was consumed, so it is checked up front.
"""

import logging
from typing import Any, Literal, Mapping, Optional, Union

import base58
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from solders.pubkey import Pubkey

from jupswap.errors import InvalidFeeAccount
from jupswap.routing.quote import QuoteResult

logger = logging.getLogger(__name__)

PriorityFee = Union[int, Literal["auto"]]

TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
TOKEN_2022_PROGRAM_ID = Pubkey.from_string("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")
REFERRAL_PROGRAM_ID = Pubkey.from_string("REFER4ZgmyYx9c6He5XfaTMiGfdLwRnkV4RPp9t9iF3")


class SwapExecutionRequest(BaseModel):
    """JSON body for POST /swap."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    quote_response: dict[str, Any]
    user_public_key: str
    fee_account: Optional[str] = None
    wrap_and_unwrap_sol: bool = True
    use_shared_accounts: bool = True
    prioritization_fee_lamports: PriorityFee = "auto"
    as_legacy_transaction: bool = False
    use_token_ledger: bool = False
    destination_token_account: Optional[str] = None
    dynamic_compute_unit_limit: bool = True
    skip_user_accounts_rpc_calls: bool = False

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class SwapTransaction(BaseModel):
    """Response of POST /swap."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    swap_transaction: str = Field(..., min_length=1, description="Base64 versioned transaction")
    last_valid_block_height: int


def parse_address(address: str) -> Pubkey:
    """Parse a base58 Solana address.

    Raises:
        ValueError: if the text is not a 32-byte base58 value
    """
    if not isinstance(address, str) or not address.strip():
        raise ValueError("address is empty")
    raw = base58.b58decode(address.strip())
    if len(raw) != 32:
        raise ValueError(f"address decodes to {len(raw)} bytes, expected 32")
    return Pubkey(raw)


def derive_associated_token_account(
    owner: Pubkey, mint: Pubkey, token_program: Pubkey = TOKEN_PROGRAM_ID
) -> Pubkey:
    """Associated token account of owner for mint."""
    address, _ = Pubkey.find_program_address(
        [bytes(owner), bytes(token_program), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return address


def derive_referral_token_account(referral_account: Pubkey, mint: Pubkey) -> Pubkey:
    """Jupiter referral token account for a referral account and mint."""
    address, _ = Pubkey.find_program_address(
        [b"referral_ata", bytes(referral_account), bytes(mint)],
        REFERRAL_PROGRAM_ID,
    )
    return address


def fee_account_candidates(referral_account: Pubkey, mint: Pubkey) -> list[Pubkey]:
    """Token accounts of the referral account that may receive fees in mint."""
    return [
        derive_referral_token_account(referral_account, mint),
        derive_associated_token_account(referral_account, mint, TOKEN_PROGRAM_ID),
        derive_associated_token_account(referral_account, mint, TOKEN_2022_PROGRAM_ID),
    ]


def validate_fee_account(
    fee_account: str,
    output_mint: str,
    referral_account: Optional[str],
) -> Pubkey:
    """Check that fee_account was derived for output_mint.

    Raises:
        InvalidFeeAccount: if the address is malformed or not a token
            account of the referral account for the output mint
    """
    try:
        fee_key = parse_address(fee_account)
    except ValueError as e:
        raise InvalidFeeAccount(fee_account, f"not a valid Solana address ({e})") from e

    try:
        mint_key = parse_address(output_mint)
    except ValueError as e:
        raise InvalidFeeAccount(fee_account, f"output mint {output_mint} is not a valid address") from e

    if not referral_account:
        raise InvalidFeeAccount(
            fee_account, "no referral account configured to verify the fee account against"
        )
    try:
        referral_key = parse_address(referral_account)
    except ValueError as e:
        raise InvalidFeeAccount(
            fee_account, f"referral account {referral_account} is not a valid address"
        ) from e

    if fee_key not in fee_account_candidates(referral_key, mint_key):
        raise InvalidFeeAccount(
            fee_account,
            f"not a token account for mint {output_mint}; expected the referral token "
            f"account {derive_referral_token_account(referral_key, mint_key)}",
        )

    logger.debug(f"Fee account {fee_account} verified for mint {output_mint}")
    return fee_key


def build_execution_request(
    quote: QuoteResult,
    payer: Union[str, Pubkey],
    fee_account: Optional[str],
    priority_fee: PriorityFee = "auto",
    *,
    referral_account: Optional[str] = None,
) -> SwapExecutionRequest:
    """Shape the swap-build payload for an accepted quote.

    A None fee_account means no platform fee; that is only valid when the
    quote carries no platform fee either.

    Raises:
        InvalidFeeAccount: if the fee account fails validation
    """
    if fee_account is None:
        if quote.platform_fee is not None and quote.platform_fee.fee_bps > 0:
            raise InvalidFeeAccount(None, "quote includes a platform fee but no fee account was given")
    else:
        validate_fee_account(fee_account, quote.output_mint, referral_account)

    if not isinstance(priority_fee, int) and priority_fee != "auto":
        raise ValueError(f"priority fee must be lamports or 'auto', got {priority_fee!r}")

    return SwapExecutionRequest(
        quote_response=dict(quote.raw),
        user_public_key=str(payer),
        fee_account=fee_account,
        prioritization_fee_lamports=priority_fee,
    )
