"""Core data types for the deployment run."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import SeedingError

TOKEN_DECIMALS = 18


class TokenSpec(BaseModel):
    """Static description of a fungible token to deploy."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Token name")
    symbol: str = Field(description="Token ticker symbol")
    supply: Decimal = Field(description="Initial supply in whole tokens")

    @field_validator("symbol")
    @classmethod
    def _symbol_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Token symbol must not be blank")
        return value

    @field_validator("supply")
    @classmethod
    def _supply_positive(cls, value: Decimal) -> Decimal:
        if value <= 0:
            raise ValueError("Token supply must be positive")
        return value


class DeployedToken(BaseModel):
    """On-chain address captured for a deployed token."""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(description="Token ticker symbol")
    address: str = Field(description="Token contract address")


class ContractSource(BaseModel):
    """Deploy-ready contract artifact."""

    kind: str = Field(description="Contract kind, e.g. Token or AMM")
    abi: list[dict[str, Any]] = Field(description="Contract interface descriptor")
    bytecode: str = Field(description="Creation bytecode (hex)")


class LiquidityParams(BaseModel):
    """Randomized seeding parameters for one AMM instance."""

    model_config = ConfigDict(frozen=True)

    amount1: Decimal = Field(description="Token1 amount in whole tokens")
    amount2: Decimal = Field(description="Token2 amount in whole tokens")
    maker_fee: float = Field(description="Maker fee rate")
    taker_fee: float = Field(description="Taker fee rate")

    @property
    def amount1_units(self) -> int:
        """Token1 amount in 18-decimal base units."""
        return to_base_units(self.amount1)

    @property
    def amount2_units(self) -> int:
        """Token2 amount in 18-decimal base units."""
        return to_base_units(self.amount2)


class LiquidityAmounts(BaseModel):
    """Liquidity amounts as rendered for the dexes snapshot."""

    token1: str
    token2: str


class FeePair(BaseModel):
    """Maker/taker fee rates."""

    maker: float
    taker: float


class AmmRecord(BaseModel):
    """Registry entry for one successfully seeded AMM instance."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(description="Instance name, e.g. AMM_1")
    amm_address: str = Field(alias="ammAddress")
    token_in: str = Field(alias="tokenIn")
    token_in_symbol: str = Field(alias="tokenInSymbol")
    token_out: str = Field(alias="tokenOut")
    token_out_symbol: str = Field(alias="tokenOutSymbol")
    price: float = Field(description="Cosmetic display price")
    liquidity: LiquidityAmounts
    fee: FeePair
    swaps: list[dict[str, Any]] = Field(default_factory=list)

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys consumed downstream."""
        return self.model_dump(mode="json", by_alias=True)


class SharesResult(BaseModel):
    """Successful seeding outcome."""

    shares: int = Field(description="Funding account share balance (base units)")

    @property
    def shares_display(self) -> str:
        return format_units(self.shares)


class SeedFailure(BaseModel):
    """Failed seeding outcome wrapping the SeedingError."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    step: str = Field(description="Seeding step that failed")
    error: SeedingError = Field(description="Recoverable seeding error")

    @property
    def detail(self) -> str:
        cause = self.error.cause
        return f"{type(cause).__name__}: {cause}"


class InstanceFailure(BaseModel):
    """AMM instance that was deployed but dropped from the registry."""

    index: int
    name: str
    amm_address: str
    step: str
    error: str


class DeploymentResult(BaseModel):
    """Everything a deployment run produced."""

    chain_id: int
    tokens: list[DeployedToken]
    records: list[AmmRecord] = Field(default_factory=list)
    deployed_amm_addresses: list[str] = Field(default_factory=list)
    failures: list[InstanceFailure] = Field(default_factory=list)

    @property
    def token_addresses(self) -> dict[str, str]:
        """Token addresses keyed by symbol, in declared order."""
        return {token.symbol: token.address for token in self.tokens}


def to_base_units(amount: Decimal | float | int | str) -> int:
    """Scale a whole-token amount to 18-decimal base units."""
    return int(Decimal(str(amount)).scaleb(TOKEN_DECIMALS).to_integral_value())


def format_units(value: int, decimals: int = TOKEN_DECIMALS) -> str:
    """Render base units as a decimal string, keeping at least one fraction digit."""
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{frac_str}"
