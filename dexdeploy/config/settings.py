"""Deployment settings and configuration management."""

from decimal import Decimal
from pathlib import Path

import structlog
import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from ..core.types import TokenSpec

logger = structlog.get_logger(__name__)


def _default_tokens() -> list[TokenSpec]:
    return [
        TokenSpec(name="Dapp Token", symbol="DAPP", supply=Decimal(10000)),
        TokenSpec(name="USD Token", symbol="USD", supply=Decimal(10000)),
    ]


class AppSettings(BaseSettings):
    """Deployment settings with environment variable support."""

    # Network
    network: str = Field(default="localhost", description="Target network name")
    rpc_url: str = Field(description="JSON-RPC endpoint of the target node")
    account_index: int = Field(
        default=0, ge=0, description="Index of the node-managed funding account"
    )
    receipt_timeout_seconds: float = Field(
        default=120.0, gt=0, description="Seconds to wait for a transaction receipt"
    )

    # Contract artifacts and output files
    artifacts_dir: str = Field(
        default="src/abis", description="Directory holding Token.json and AMM.json"
    )
    dexes_path: str = Field(
        default="tmp/dexes.json", description="Per-run dexes snapshot file"
    )
    config_path: str = Field(
        default="tmp/config.json", description="Cumulative chain config file"
    )

    # Deployment shape
    tokens: list[TokenSpec] = Field(
        default_factory=_default_tokens, description="Exactly two token specs"
    )
    instance_count: int = Field(
        default=3, ge=0, description="Number of AMM instances to deploy"
    )
    base_amount: Decimal = Field(
        default=Decimal(100), gt=0, description="Base liquidity per token in tokens"
    )
    gas_ceiling: int = Field(
        default=3_000_000, gt=0, description="Gas limit for initial addLiquidity"
    )
    random_seed: int | None = Field(
        default=None, description="Seed for parameter generation (random if unset)"
    )

    # Downstream
    server_command: list[str] = Field(
        default_factory=list,
        description="Command started after persistence (skipped when empty)",
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("tokens")
    @classmethod
    def _exactly_two_tokens(cls, value: list[TokenSpec]) -> list[TokenSpec]:
        if len(value) != 2:
            raise ValueError(f"Exactly two tokens are required, got {len(value)}")
        if value[0].symbol.lower() == value[1].symbol.lower():
            raise ValueError("Token symbols must differ")
        return value


def load_settings(network: str, yaml_path: str) -> AppSettings:
    """Load settings from a YAML file and environment variables.

    Args:
        network: Target network name
        yaml_path: Path to YAML configuration file

    Returns:
        AppSettings instance with loaded configuration

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValidationError: If configuration is invalid
        ValueError: If network is blank or the YAML cannot be parsed
    """
    if not network or not network.strip():
        raise ValueError("Network name must not be empty")

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    try:
        with open(yaml_file, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError("Top-level YAML configuration must be a mapping")

        yaml_config["network"] = network.strip()

        logger.info("Loading configuration", network=network, yaml_path=yaml_path)

        settings = AppSettings(**yaml_config)

        logger.info(
            "Configuration loaded successfully",
            network=settings.network,
            rpc_url=settings.rpc_url,
            instance_count=settings.instance_count,
            base_amount=str(settings.base_amount),
            tokens=[t.symbol for t in settings.tokens],
        )

        return settings

    except yaml.YAMLError as e:
        logger.error("Failed to parse YAML configuration", error=str(e))
        raise ValueError(f"Invalid YAML configuration: {e}") from e
    except ValidationError as e:
        logger.error("Configuration validation failed", error=str(e))
        raise
