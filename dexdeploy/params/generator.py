"""Randomized liquidity and fee parameters for AMM instances."""

import random
from decimal import Decimal

import structlog

from ..core.types import LiquidityParams

logger = structlog.get_logger(__name__)

LIQUIDITY_SPREAD = Decimal("0.1")  # +/-10% around the base amount
MAKER_FEE_RANGE = (0.005, 0.015)
TAKER_FEE_RANGE = (0.01, 0.03)
DISPLAY_PRICE_RANGE = (0.9, 1.5)


class ParameterGenerator:
    """Bounded-random parameter source with an injectable RNG."""

    def __init__(self, rng: random.Random | None = None) -> None:
        """Initialize parameter generator.

        Args:
            rng: Random source to draw from (a fresh unseeded one by default)
        """
        self._rng = rng or random.Random()

    def reseed(self, seed: int | None) -> None:
        """Reset the underlying random source."""
        self._rng.seed(seed)

    def generate_liquidity(self, base: float | Decimal) -> tuple[Decimal, Decimal]:
        """Draw two independent amounts uniformly from [0.9*base, 1.1*base].

        Amounts are rounded to 2 decimal digits before any unit scaling.
        """
        base_dec = Decimal(str(base))
        low = float(base_dec * (1 - LIQUIDITY_SPREAD))
        high = float(base_dec * (1 + LIQUIDITY_SPREAD))
        amount1 = self._draw(low, high, 2)
        amount2 = self._draw(low, high, 2)
        return Decimal(f"{amount1:.2f}"), Decimal(f"{amount2:.2f}")

    def generate_fees(self) -> tuple[float, float]:
        """Draw independent maker and taker fee rates, rounded to 4 decimals."""
        maker = self._draw(*MAKER_FEE_RANGE, 4)
        taker = self._draw(*TAKER_FEE_RANGE, 4)
        return maker, taker

    def generate_display_price(self) -> float:
        """Cosmetic price shown downstream; unrelated to the reserve ratio."""
        return self._draw(*DISPLAY_PRICE_RANGE, 2)

    def generate(self, base: float | Decimal) -> LiquidityParams:
        """Generate a full parameter set for one instance."""
        amount1, amount2 = self.generate_liquidity(base)
        maker, taker = self.generate_fees()
        params = LiquidityParams(
            amount1=amount1, amount2=amount2, maker_fee=maker, taker_fee=taker
        )

        logger.debug(
            "Generated liquidity parameters",
            amount1=str(amount1),
            amount2=str(amount2),
            maker_fee=maker,
            taker_fee=taker,
        )
        return params

    def _draw(self, low: float, high: float, digits: int) -> float:
        value = round(self._rng.uniform(low, high), digits)
        # rounding must never leave the closed interval
        return min(max(value, round(low, digits)), round(high, digits))
