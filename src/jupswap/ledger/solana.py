"""Solana ledger client.

Wraps solana-py's AsyncClient and solders types behind the small surface the
swap flow needs: balances, transaction deserialization, signing, submission
and confirmation.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

import base58
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException, UnconfirmedTxError
from solana.rpc.types import TokenAccountOpts, TxOpts
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from jupswap.errors import TransactionFailed, TransactionSubmitError

logger = logging.getLogger(__name__)

SUBMIT_MAX_RETRIES = 3

Address = Union[str, Pubkey]


@dataclass(frozen=True)
class Confirmation:
    """Outcome of waiting for a signature."""

    signature: str
    error: Optional[object] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class LedgerClient(Protocol):
    """What the swap flow needs from the chain."""

    async def get_balance(self, account: Address) -> int: ...

    async def get_token_balance(self, owner: Address, mint: Address) -> int: ...

    async def account_exists(self, address: Address) -> bool: ...

    def deserialize_transaction(self, encoded: str) -> VersionedTransaction: ...

    def sign(self, transaction: VersionedTransaction, keypair: Keypair) -> VersionedTransaction: ...

    async def submit(self, transaction: VersionedTransaction) -> str: ...

    async def confirm(self, signature: str) -> Confirmation: ...


def _pubkey(address: Address) -> Pubkey:
    if isinstance(address, Pubkey):
        return address
    return Pubkey.from_string(address)


def _rpc_error_text(error: Exception) -> str:
    # SolanaRpcException keeps its text in error_msg, not in args
    return getattr(error, "error_msg", None) or str(error) or type(error).__name__


def load_keypair(private_key: str) -> Keypair:
    """Keypair from a base58-encoded 64-byte secret key.

    Raises:
        ValueError: if the key does not decode to 64 bytes
    """
    if not validate_private_key(private_key):
        raise ValueError("Invalid private key: expected base58-encoded 64-byte secret key")
    return Keypair.from_bytes(base58.b58decode(private_key.strip()))


def validate_private_key(private_key: str) -> bool:
    """True if the text decodes to a 64-byte secret key."""
    try:
        return len(base58.b58decode(private_key.strip())) == 64
    except (ValueError, AttributeError):
        return False


def validate_public_key(public_key: str) -> bool:
    """True if the text decodes to a 32-byte public key."""
    try:
        return len(base58.b58decode(public_key.strip())) == 32
    except (ValueError, AttributeError):
        return False


class SolanaLedgerClient:
    """LedgerClient backed by a Solana JSON-RPC endpoint."""

    def __init__(self, rpc_url: str, client: Optional[AsyncClient] = None):
        self.rpc_url = rpc_url
        self._client = client

    async def __aenter__(self) -> "SolanaLedgerClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def client(self) -> AsyncClient:
        """Lazy load RPC client."""
        if self._client is None:
            self._client = AsyncClient(self.rpc_url, commitment=Confirmed)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def get_balance(self, account: Address) -> int:
        """Lamport balance of an account."""
        response = await self.client.get_balance(_pubkey(account), commitment=Confirmed)
        return int(response.value)

    async def get_token_balance(self, owner: Address, mint: Address) -> int:
        """Raw token balance of owner for mint, summed over its token accounts.

        An owner without a token account for the mint has a balance of 0.
        """
        response = await self.client.get_token_accounts_by_owner_json_parsed(
            _pubkey(owner),
            TokenAccountOpts(mint=_pubkey(mint)),
            commitment=Confirmed,
        )
        total = 0
        for keyed in response.value:
            info = keyed.account.data.parsed.get("info", {})
            total += int(info.get("tokenAmount", {}).get("amount", "0"))
        if not response.value:
            logger.debug(f"No token account for {mint} owned by {owner}")
        return total

    async def account_exists(self, address: Address) -> bool:
        response = await self.client.get_account_info(_pubkey(address), commitment=Confirmed)
        return response.value is not None

    def deserialize_transaction(self, encoded: str) -> VersionedTransaction:
        """Decode a base64 versioned transaction returned by the aggregator."""
        return VersionedTransaction.from_bytes(base64.b64decode(encoded))

    def sign(self, transaction: VersionedTransaction, keypair: Keypair) -> VersionedTransaction:
        """Re-create the transaction with the wallet's signature."""
        logger.info("Signing transaction...")
        return VersionedTransaction(transaction.message, [keypair])

    async def submit(self, transaction: VersionedTransaction) -> str:
        """Send a signed transaction. Returns the signature.

        Raises:
            TransactionSubmitError: if preflight simulation or the RPC call fails
        """
        logger.info("Sending transaction...")
        try:
            response = await self.client.send_raw_transaction(
                bytes(transaction),
                opts=TxOpts(
                    skip_preflight=False,
                    preflight_commitment=Confirmed,
                    max_retries=SUBMIT_MAX_RETRIES,
                ),
            )
        except (RPCException, SolanaRpcException) as e:
            raise TransactionSubmitError(
                f"Failed to send transaction: {_rpc_error_text(e)}"
            ) from e
        return str(response.value)

    async def confirm(self, signature: str) -> Confirmation:
        """Wait for the signature at confirmed commitment.

        Raises:
            TransactionFailed: if the signature is not confirmed in time or
                the RPC call fails
        """
        logger.info("Waiting for confirmation...")
        try:
            response = await self.client.confirm_transaction(
                Signature.from_string(signature), commitment=Confirmed
            )
        except (UnconfirmedTxError, RPCException, SolanaRpcException) as e:
            raise TransactionFailed(signature, _rpc_error_text(e)) from e
        status = response.value[0] if response.value else None
        error = status.err if status is not None else None
        return Confirmation(signature=signature, error=error)
