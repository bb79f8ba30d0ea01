"""Initial liquidity provisioning for freshly deployed AMM instances."""

import structlog

from ..core.errors import LedgerError, SeedingError
from ..core.interfaces import ContractHandle, LedgerClient
from ..core.types import SeedFailure, SharesResult, format_units

logger = structlog.get_logger(__name__)

# Gas estimation on the first addLiquidity of an empty pool is unreliable.
DEFAULT_GAS_CEILING = 3_000_000


class LiquiditySeeder:
    """Runs the approve -> approve -> addLiquidity -> confirm sequence."""

    def __init__(
        self, ledger: LedgerClient, gas_ceiling: int = DEFAULT_GAS_CEILING
    ) -> None:
        """Initialize liquidity seeder.

        Args:
            ledger: Ledger client owning the funding account
            gas_ceiling: Explicit gas limit for the add-liquidity transaction
        """
        if gas_ceiling <= 0:
            raise ValueError(f"gas_ceiling must be positive, got {gas_ceiling}")
        self.ledger = ledger
        self.gas_ceiling = gas_ceiling

    async def seed(
        self,
        amm: ContractHandle,
        token1: ContractHandle,
        token2: ContractHandle,
        amount1: int,
        amount2: int,
    ) -> SharesResult | SeedFailure:
        """Provide initial liquidity to an AMM.

        Ledger failures are wrapped in SeedingError and returned as SeedFailure,
        never raised, and never retried.

        Args:
            amm: Deployed AMM contract
            token1: First token of the pair
            token2: Second token of the pair
            amount1: Token1 amount in base units
            amount2: Token2 amount in base units

        Returns:
            SharesResult with the funding account's share balance, or SeedFailure
        """
        step = "approve_token1"
        try:
            logger.info(
                "Approving tokens for initial liquidity",
                amm=amm.address,
                amount1=format_units(amount1),
                amount2=format_units(amount2),
            )
            tx_hash = await token1.approve(amm.address, amount1)
            await self.ledger.wait_for_receipt(tx_hash)

            step = "approve_token2"
            tx_hash = await token2.approve(amm.address, amount2)
            await self.ledger.wait_for_receipt(tx_hash)
            logger.info("Token approvals completed", amm=amm.address)

            step = "add_liquidity"
            tx_hash = await amm.add_liquidity(amount1, amount2, self.gas_ceiling)

            step = "confirm_liquidity"
            await self.ledger.wait_for_receipt(tx_hash)
            logger.info("Liquidity added", amm=amm.address, tx_hash=tx_hash)

            step = "query_shares"
            shares = await amm.query("shares", self.ledger.account)

        except LedgerError as e:
            logger.error(
                "Liquidity seeding failed",
                amm=amm.address,
                step=step,
                error=str(e),
                error_type=type(e).__name__,
            )
            return SeedFailure(
                step=step, error=SeedingError(step, e, amm_address=amm.address)
            )

        result = SharesResult(shares=int(shares))
        logger.info(
            "Shares for funding account",
            amm=amm.address,
            account=self.ledger.account,
            shares=result.shares_display,
        )
        return result
