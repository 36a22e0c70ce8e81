"""Tests for the command-line entry point."""

from unittest.mock import AsyncMock

import pytest

from jupswap.cli import EXIT_FAILURE, EXIT_NO_ROUTE, EXIT_OK, build_parser, main, report_outcome
from jupswap.config import ENV_KEYS
from jupswap.errors import TransactionSubmitError
from jupswap.routing.quote import NoRouteFound, SwapIntent
from jupswap.swap.executor import SwapOutcome, SwapStatus
from jupswap.tokens import NATIVE_MINT, USDC_MINT


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def env_file(tmp_path, private_key):
    path = tmp_path / ".env"
    path.write_text(f"PRIVATE_KEY={private_key}\nPLATFORM_FEE_BPS=30\n")
    return str(path)


def test_config_command(env_file, private_key, capsys):
    assert main(["--env-file", env_file, "config"]) == EXIT_OK

    output = capsys.readouterr().out
    assert "PLATFORM_FEE_BPS: 30" in output
    assert "Private key format: valid" in output
    assert private_key not in output


def test_missing_private_key(tmp_path):
    """Configuration errors exit non-zero before any network call."""
    empty = tmp_path / ".env"
    empty.write_text("")

    assert main(["--env-file", str(empty), "config"]) == EXIT_FAILURE


def test_invalid_override(env_file):
    assert main(["--env-file", env_file, "quote", "--slippage-bps", "abc"]) == EXIT_FAILURE


def test_rejected_transaction_exit_code(env_file, monkeypatch, caplog):
    """A node rejecting the swap exits 1 with a log line, not a traceback."""
    monkeypatch.setattr(
        "jupswap.cli.run_trade",
        AsyncMock(side_effect=TransactionSubmitError("Transaction simulation failed")),
    )

    assert main(["--env-file", env_file, "swap"]) == EXIT_FAILURE
    assert "TransactionSubmitError: Transaction simulation failed" in caplog.text


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_parser_trade_flags():
    args = build_parser().parse_args(["swap", "--output", "USDT", "--amount", "5000", "--no-fee"])

    assert args.command == "swap"
    assert args.output == "USDT"
    assert args.amount == "5000"
    assert args.no_fee is True


def test_no_route_exit_code():
    intent = SwapIntent(NATIVE_MINT, USDC_MINT, 10_000_000, 50, 20)
    outcome = SwapOutcome(
        status=SwapStatus.NO_ROUTE,
        intent=intent,
        quote=NoRouteFound(NATIVE_MINT, USDC_MINT, 10_000_000, {}),
    )

    assert report_outcome(outcome) == EXIT_NO_ROUTE
