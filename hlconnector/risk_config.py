"""Named risk-limit profiles."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

SYMBOL = "HYPE"


@dataclass
class RiskLimits:
    """Global limits on position, loss and order sizes."""

    max_position_size: Decimal
    max_daily_loss: Decimal
    max_order_size: Decimal
    max_orders_per_side: int


@dataclass
class PositionLimitTemplate:
    max_long: Decimal
    max_short: Decimal
    max_net: Decimal


@dataclass
class ExposureLimitTemplate:
    max_notional: Decimal
    max_leverage: Decimal


@dataclass
class VolatilityLimitTemplate:
    max_spread_bps: int
    max_price_change_bps: int


@dataclass
class RiskConfigTemplate:
    """A named risk profile with per-symbol limits."""

    name: str
    description: str
    risk_limits: RiskLimits
    position_limits: dict[str, PositionLimitTemplate] = field(default_factory=dict)
    exposure_limits: dict[str, ExposureLimitTemplate] = field(default_factory=dict)
    volatility_limits: dict[str, VolatilityLimitTemplate] = field(default_factory=dict)

    @classmethod
    def _build(
        cls,
        name: str,
        description: str,
        limits: tuple[int, int, int, int],
        position: tuple[int, int, int],
        exposure: tuple[int, int],
        volatility: tuple[int, int],
    ) -> RiskConfigTemplate:
        max_position, max_loss, max_order, orders_per_side = limits
        return cls(
            name=name,
            description=description,
            risk_limits=RiskLimits(
                max_position_size=Decimal(max_position),
                max_daily_loss=Decimal(max_loss),
                max_order_size=Decimal(max_order),
                max_orders_per_side=orders_per_side,
            ),
            position_limits={
                SYMBOL: PositionLimitTemplate(*(Decimal(value) for value in position))
            },
            exposure_limits={
                SYMBOL: ExposureLimitTemplate(*(Decimal(value) for value in exposure))
            },
            volatility_limits={SYMBOL: VolatilityLimitTemplate(*volatility)},
        )

    @classmethod
    def conservative(cls) -> RiskConfigTemplate:
        return cls._build(
            "Conservative",
            "Conservative risk limits for low-risk trading",
            limits=(10, 100, 1, 3),
            position=(10, 10, 5),
            exposure=(1000, 2),
            volatility=(50, 100),
        )

    @classmethod
    def moderate(cls) -> RiskConfigTemplate:
        return cls._build(
            "Moderate",
            "Moderate risk limits for balanced trading",
            limits=(50, 500, 5, 5),
            position=(50, 50, 25),
            exposure=(5000, 5),
            volatility=(100, 200),
        )

    @classmethod
    def aggressive(cls) -> RiskConfigTemplate:
        return cls._build(
            "Aggressive",
            "Aggressive risk limits for high-risk, high-reward trading",
            limits=(100, 1000, 10, 10),
            position=(100, 100, 50),
            exposure=(10000, 10),
            volatility=(200, 500),
        )

    @classmethod
    def all_templates(cls) -> dict[str, RiskConfigTemplate]:
        return {
            "conservative": cls.conservative(),
            "moderate": cls.moderate(),
            "aggressive": cls.aggressive(),
        }