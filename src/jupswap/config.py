"""Swap configuration.

resolve_config() is the pure resolver: it overlays an environment-style
mapping on the documented defaults and never touches os.environ. load_config()
is the single process-start entry point that reads .env and the process
environment through pydantic-settings and hands the result to resolve_config().
"""

import re
from typing import Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from jupswap.errors import ConfigError
from jupswap.routing.quote import SwapIntent
from jupswap.swap.builder import PriorityFee
from jupswap.tokens import NATIVE_MINT, USDC_MINT

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
DEFAULT_JUPITER_API_URL = "https://lite-api.jup.ag/swap/v1"

# Optional sign followed by ASCII digits; rejects "10.0", "1_000" and "1e3"
INTEGER_PATTERN = re.compile(r"^[+-]?[0-9]+$")

ENV_KEYS = (
    "RPC_URL",
    "PRIVATE_KEY",
    "REFFERAL_ACCOUNT",
    "FEE_ACCOUNT",
    "PLATFORM_FEE_BPS",
    "INPUT_TOKEN",
    "OUTPUT_TOKEN",
    "SWAP_AMOUNT",
    "SLIPPAGE_BPS",
    "PRIORITY_FEE_LAMPORTS",
    "JUPITER_API_URL",
    "SETTLE_DELAY_SECONDS",
    "DEBUG",
)


class SwapConfig(BaseModel):
    """Validated, immutable swap configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    # ======================
    # RPC / API
    # ======================
    rpc_url: str = Field(default=DEFAULT_RPC_URL, alias="RPC_URL", description="Solana RPC URL")
    jupiter_api_url: str = Field(
        default=DEFAULT_JUPITER_API_URL,
        alias="JUPITER_API_URL",
        description="Jupiter swap API base URL",
    )

    # ======================
    # Wallet
    # ======================
    private_key: str = Field(..., alias="PRIVATE_KEY", description="Base58 wallet secret key")

    # ======================
    # Fees
    # ======================
    referral_account: str = Field(
        default="jWYWeXGCNDM8EbuGM6oVhUUfkc875CP4KmkS4VGLu25",
        alias="REFFERAL_ACCOUNT",
        description="Jupiter referral account",
    )
    fee_account: str = Field(
        default="4JF9VBJKVKdNimntgm4BsYDuxF7nGv8jkieiXUZ7UczV",
        alias="FEE_ACCOUNT",
        description="Referral token account receiving platform fees",
    )
    platform_fee_bps: int = Field(
        default=20, ge=0, le=10000, alias="PLATFORM_FEE_BPS", description="Platform fee (0.2%)"
    )

    # ======================
    # Swap
    # ======================
    input_token: str = Field(default=NATIVE_MINT, min_length=1, alias="INPUT_TOKEN")
    output_token: str = Field(default=USDC_MINT, min_length=1, alias="OUTPUT_TOKEN")
    swap_amount: int = Field(
        default=10_000_000, gt=0, alias="SWAP_AMOUNT", description="Amount in smallest units"
    )
    slippage_bps: int = Field(
        default=50, ge=0, le=10000, alias="SLIPPAGE_BPS", description="Slippage (0.5%)"
    )
    priority_fee_lamports: PriorityFee = Field(default="auto", alias="PRIORITY_FEE_LAMPORTS")

    # ======================
    # Runtime
    # ======================
    settle_delay_seconds: float = Field(default=5.0, ge=0, alias="SETTLE_DELAY_SECONDS")
    debug: bool = Field(default=False, alias="DEBUG")

    @field_validator("platform_fee_bps", "swap_amount", "slippage_bps", mode="before")
    @classmethod
    def _parse_integer(cls, value: object) -> object:
        if isinstance(value, str):
            text = value.strip()
            if not INTEGER_PATTERN.match(text):
                raise ValueError(f"must be an integer, got {value!r}")
            return int(text)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"must be an integer, got {value!r}")
        return value

    @field_validator("priority_fee_lamports", mode="before")
    @classmethod
    def _parse_priority_fee(cls, value: object) -> object:
        if isinstance(value, str):
            text = value.strip()
            if text == "auto":
                return "auto"
            if not INTEGER_PATTERN.match(text):
                raise ValueError(f"must be an integer or 'auto', got {value!r}")
            value = int(text)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"must be an integer or 'auto', got {value!r}")
        if value < 0:
            raise ValueError("must be non-negative")
        return value

    @model_validator(mode="after")
    def _distinct_tokens(self) -> "SwapConfig":
        if self.input_token == self.output_token:
            raise ValueError("INPUT_TOKEN and OUTPUT_TOKEN must differ")
        return self

    def intent(self) -> SwapIntent:
        """Swap intent described by this configuration."""
        return SwapIntent(
            input_token=self.input_token,
            output_token=self.output_token,
            amount=self.swap_amount,
            slippage_bps=self.slippage_bps,
            platform_fee_bps=self.platform_fee_bps,
        )

    def safe_dict(self) -> dict:
        """Configuration with the private key redacted."""
        data = self.model_dump(by_alias=True)
        data["PRIVATE_KEY"] = "***" if self.private_key else "(not set)"
        return data


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item["loc"]) or "config"
        if item["type"] == "missing":
            parts.append(f"{field} is required")
        else:
            parts.append(f"{field}: {item['msg']}")
    return "; ".join(parts)


def resolve_config(environ: Mapping[str, str]) -> SwapConfig:
    """Build a SwapConfig from an environment-style mapping.

    Only the keys in ENV_KEYS are read; empty values count as unset.

    Raises:
        ConfigError: if PRIVATE_KEY is missing or any value is malformed
    """
    overrides = {}
    for key in ENV_KEYS:
        value = environ.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        overrides[key] = value

    try:
        return SwapConfig.model_validate(overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {_describe(e)}") from e


class EnvironmentSettings(BaseSettings):
    """Raw environment values loaded from .env and the process environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    RPC_URL: Optional[str] = None
    PRIVATE_KEY: Optional[str] = None
    REFFERAL_ACCOUNT: Optional[str] = None
    FEE_ACCOUNT: Optional[str] = None
    PLATFORM_FEE_BPS: Optional[str] = None
    INPUT_TOKEN: Optional[str] = None
    OUTPUT_TOKEN: Optional[str] = None
    SWAP_AMOUNT: Optional[str] = None
    SLIPPAGE_BPS: Optional[str] = None
    PRIORITY_FEE_LAMPORTS: Optional[str] = None
    JUPITER_API_URL: Optional[str] = None
    SETTLE_DELAY_SECONDS: Optional[str] = None
    DEBUG: Optional[str] = None

    def as_environ(self) -> dict[str, str]:
        return {key: value for key, value in self.model_dump().items() if value is not None}


def load_config(env_file: Optional[str] = ".env", **overrides: str) -> SwapConfig:
    """Read .env plus the process environment and resolve the configuration.

    Keyword overrides (e.g. from CLI flags) win over the environment.
    """
    environ = EnvironmentSettings(_env_file=env_file).as_environ()
    environ.update({key: value for key, value in overrides.items() if value is not None})
    return resolve_config(environ)
