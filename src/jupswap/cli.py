"""Command-line entry point.

Usage:
    jupswap config
    jupswap quote [--input SOL] [--output JUP] [--amount 100000000]
    jupswap swap [--output USDT] [--slippage-bps 100] [--no-fee]
    jupswap wallet
    jupswap fee-account [--mint USDC]

Exit status: 0 on success, 1 on any fatal error, 2 when no route was found.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from jupswap.config import SwapConfig, load_config
from jupswap.errors import SwapError
from jupswap.ledger.solana import SolanaLedgerClient, load_keypair, validate_private_key
from jupswap.routing.jupiter import JupiterClient
from jupswap.swap.builder import (
    derive_associated_token_account,
    derive_referral_token_account,
    parse_address,
)
from jupswap.swap.executor import SwapExecutor, SwapOutcome, SwapStatus
from jupswap.tokens import default_registry, format_sol

logger = logging.getLogger("jupswap")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NO_ROUTE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jupswap", description="Jupiter swaps on Solana with referral fees"
    )
    parser.add_argument("--env-file", default=".env", help="Path to .env file (default: .env)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("config", help="Show the resolved configuration")

    for name, help_text in (
        ("quote", "Get a quote without executing it"),
        ("swap", "Quote, sign, submit and verify a swap"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("--input", help="Input token symbol or mint")
        command.add_argument("--output", help="Output token symbol or mint")
        command.add_argument("--amount", help="Amount in smallest units of the input token")
        command.add_argument("--slippage-bps", help="Slippage tolerance in basis points")
        command.add_argument("--fee-bps", help="Platform fee in basis points")
        command.add_argument(
            "--no-fee", action="store_true", help="Swap without a platform fee"
        )

    commands.add_parser("wallet", help="Show wallet balances and token accounts")

    fee = commands.add_parser("fee-account", help="Derive the fee token account for a mint")
    fee.add_argument("--mint", help="Token symbol or mint (default: OUTPUT_TOKEN)")

    return parser


def _overrides(args: argparse.Namespace) -> dict[str, str]:
    overrides = {}
    if getattr(args, "input", None):
        overrides["INPUT_TOKEN"] = default_registry.resolve(args.input)
    if getattr(args, "output", None):
        overrides["OUTPUT_TOKEN"] = default_registry.resolve(args.output)
    if getattr(args, "amount", None):
        overrides["SWAP_AMOUNT"] = args.amount
    if getattr(args, "slippage_bps", None):
        overrides["SLIPPAGE_BPS"] = args.slippage_bps
    if getattr(args, "fee_bps", None):
        overrides["PLATFORM_FEE_BPS"] = args.fee_bps
    if args.debug:
        overrides["DEBUG"] = "true"
    return overrides


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)


def show_config(config: SwapConfig) -> int:
    print("Configuration")
    print("=" * 50)
    for key, value in config.safe_dict().items():
        print(f"  {key}: {value}")
    key_state = "valid" if validate_private_key(config.private_key) else "INVALID"
    print(f"  Private key format: {key_state}")
    return EXIT_OK


def report_outcome(outcome: SwapOutcome) -> int:
    if outcome.status == SwapStatus.NO_ROUTE:
        logger.warning(
            "No route found. Try a larger slippage or a different pair."
        )
        return EXIT_NO_ROUTE

    quote = outcome.quote
    registry = default_registry
    logger.info(
        f"Route found: {len(quote.route_plan)} hop(s), price impact {quote.price_impact_pct}%"
    )
    if quote.time_taken is not None:
        logger.info(f"Quote time: {quote.time_taken}s")
    if quote.platform_fee:
        logger.info(
            f"Platform fee: {registry.format(quote.output_mint, quote.platform_fee.amount)}"
        )

    if outcome.status == SwapStatus.COMPLETED:
        if outcome.anomalies:
            logger.warning(f"Swap completed with {len(outcome.anomalies)} warning(s)")
        else:
            logger.info("Swap completed successfully!")
    return EXIT_OK


async def run_trade(config: SwapConfig, args: argparse.Namespace) -> int:
    keypair = load_keypair(config.private_key)
    use_fee = not args.no_fee

    async with SolanaLedgerClient(config.rpc_url) as ledger, JupiterClient(
        config.jupiter_api_url
    ) as jupiter:
        executor = SwapExecutor(config, ledger, jupiter, keypair)
        logger.info(f"Wallet: {executor.wallet}")
        logger.info(
            f"Platform fee: {0 if args.no_fee else config.platform_fee_bps} bps "
            f"to {None if args.no_fee else config.fee_account}"
        )
        if args.command == "quote":
            outcome = await executor.quote_only(use_fee=use_fee)
        else:
            outcome = await executor.execute(use_fee=use_fee)

    return report_outcome(outcome)


async def show_wallet(config: SwapConfig) -> int:
    keypair = load_keypair(config.private_key)
    owner = keypair.pubkey()

    async with SolanaLedgerClient(config.rpc_url) as ledger:
        print("Wallet Information")
        print("=" * 50)
        print(f"Address: {owner}")
        print(f"SOL Balance: {format_sol(await ledger.get_balance(owner))}")
        print()
        print("Token Balances:")
        found = False
        for mint, info in default_registry:
            balance = await ledger.get_token_balance(owner, mint)
            if balance > 0:
                found = True
                print(f"  {info.symbol}: {default_registry.format(mint, balance)}")
        if not found:
            print("  No tokens found")
        print()
        print("Token Account Status:")
        for mint, info in default_registry:
            ata = derive_associated_token_account(owner, parse_address(mint))
            exists = await ledger.account_exists(ata)
            print(f"  {info.symbol}: {'created' if exists else 'not created'}")
        print()
        print(f"Fee Account: {config.fee_account}")
        print(f"Platform Fee: {config.platform_fee_bps} bps")
    return EXIT_OK


async def show_fee_account(config: SwapConfig, mint_arg: Optional[str]) -> int:
    mint = default_registry.resolve(mint_arg) if mint_arg else config.output_token
    referral = parse_address(config.referral_account)
    expected = derive_referral_token_account(referral, parse_address(mint))

    async with SolanaLedgerClient(config.rpc_url) as ledger:
        exists = await ledger.account_exists(expected)

    print(f"Referral account: {referral}")
    print(f"Mint: {default_registry.token_name(mint)} ({mint})")
    print(f"Referral token account: {expected}")
    print(f"On chain: {'yes' if exists else 'no, initialize it with the Jupiter referral dashboard'}")
    if str(expected) != config.fee_account:
        print(f"Configured FEE_ACCOUNT {config.fee_account} differs; set FEE_ACCOUNT={expected}")
    return EXIT_OK


async def run(args: argparse.Namespace) -> int:
    config = load_config(env_file=args.env_file, **_overrides(args))
    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command == "config":
        return show_config(config)
    if args.command in ("quote", "swap"):
        return await run_trade(config, args)
    if args.command == "wallet":
        return await show_wallet(config)
    return await show_fee_account(config, args.mint)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)

    try:
        return asyncio.run(run(args))
    except SwapError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return EXIT_FAILURE
    except ValueError as e:
        logger.error(f"Invalid input: {e}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
