# File: src/ecocharge/domain/strategies.py
"""
Strategy Pattern Implementation for Charging Session Pricing

Rate selection is encapsulated in strategies so that the session cost
formula stays the same whatever rule decides the per-kWh rate:

1. StandardRateStrategy - connector price as listed
2. PeakHourRateStrategy - connector price times the station's peak
   multiplier when the session starts inside the peak window

Session cost model:
    total = effective_rate * duration_hours * (battery_size_kwh / 100)

The battery term is a proxy for energy drawn (battery size as a fraction
of a 100 kWh pack), not a physical charging estimate.

Loyalty reward:
    points = floor(total * points_per_currency_unit)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any, Union
from decimal import Decimal, ROUND_FLOOR
import logging

from .models import PeakHours, to_decimal


Number = Union[int, float, Decimal]

DEFAULT_POINTS_PER_CURRENCY_UNIT = 2


# ============================================================================
# PRICING RESULT
# ============================================================================

@dataclass(frozen=True)
class PricingBreakdown:
    """Itemised inputs behind a quote"""
    base_price: Decimal
    peak_multiplier: Decimal
    duration_hours: Decimal
    battery_size_kwh: Decimal
    loyalty_points_earned: int

    @property
    def is_peak(self) -> bool:
        return self.peak_multiplier > Decimal('1')

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_price": float(self.base_price),
            "peak_multiplier": float(self.peak_multiplier),
            "duration_hours": float(self.duration_hours),
            "battery_size_kwh": float(self.battery_size_kwh),
            "loyalty_points_earned": self.loyalty_points_earned
        }


@dataclass(frozen=True)
class PricingResult:
    """
    Outcome of pricing a session
    ``breakdown`` is None for the empty quote returned while a connector or
    duration has not been chosen yet.
    """
    total: Decimal
    breakdown: Optional[PricingBreakdown] = None

    @classmethod
    def empty(cls) -> 'PricingResult':
        return cls(total=Decimal('0'))

    @property
    def is_empty(self) -> bool:
        return self.breakdown is None

    @property
    def loyalty_points_earned(self) -> int:
        return self.breakdown.loyalty_points_earned if self.breakdown else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": float(self.total),
            "breakdown": self.breakdown.to_dict() if self.breakdown else {}
        }


# ============================================================================
# RATE STRATEGIES
# ============================================================================

class PricingStrategy(ABC):
    """
    Abstract base class for rate strategies
    Decides the multiplier applied to a connector's listed price.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def multiplier_for(self, selected_time: Optional[str]) -> Decimal:
        """Multiplier for a session starting at ``selected_time``"""
        pass

    def get_strategy_name(self) -> str:
        return self.__class__.__name__.replace("Strategy", "")

    def __str__(self) -> str:
        return f"{self.get_strategy_name()} Strategy"


class StandardRateStrategy(PricingStrategy):
    """Listed connector price at any time of day"""

    def multiplier_for(self, selected_time: Optional[str]) -> Decimal:
        return Decimal('1')


class PeakHourRateStrategy(PricingStrategy):
    """Listed price times the peak multiplier inside the peak window"""

    def __init__(self, peak_hours: PeakHours):
        super().__init__()
        self.peak_hours = peak_hours

    def multiplier_for(self, selected_time: Optional[str]) -> Decimal:
        if self.peak_hours.contains(selected_time):
            self.logger.debug(
                f"{selected_time} is within peak window "
                f"{self.peak_hours.start}-{self.peak_hours.end}"
            )
            return self.peak_hours.multiplier
        return Decimal('1')


class PricingStrategyFactory:
    """Selects the rate strategy for a station's peak configuration"""

    @staticmethod
    def for_peak_hours(peak_hours: Optional[PeakHours]) -> PricingStrategy:
        if peak_hours is None:
            return StandardRateStrategy()
        return PeakHourRateStrategy(peak_hours)


# ============================================================================
# CALCULATOR
# ============================================================================

class PricingCalculator:
    """
    Prices a prospective charging session

    Pure: identical inputs always give identical results and nothing is
    raised. Numeric input validation belongs to the booking form.
    """

    def __init__(self, points_per_currency_unit: int = DEFAULT_POINTS_PER_CURRENCY_UNIT):
        self.points_per_currency_unit = Decimal(points_per_currency_unit)
        self.logger = logging.getLogger(self.__class__.__name__)

    def price(
        self,
        connector_price: Optional[Number],
        peak_hours: Optional[PeakHours],
        selected_time: Optional[str],
        duration_hours: Optional[Number],
        battery_size_kwh: Optional[Number]
    ) -> PricingResult:
        if not connector_price or not duration_hours:
            return PricingResult.empty()

        base_price = to_decimal(connector_price)
        duration = to_decimal(duration_hours)
        battery = to_decimal(battery_size_kwh) if battery_size_kwh else Decimal('0')

        strategy = PricingStrategyFactory.for_peak_hours(peak_hours)
        multiplier = strategy.multiplier_for(selected_time)

        effective_rate = base_price * multiplier
        total = effective_rate * duration * (battery / Decimal('100'))
        points = self.loyalty_points_for(total)

        return PricingResult(
            total=total,
            breakdown=PricingBreakdown(
                base_price=base_price,
                peak_multiplier=multiplier,
                duration_hours=duration,
                battery_size_kwh=battery,
                loyalty_points_earned=points
            )
        )

    def loyalty_points_for(self, total: Decimal) -> int:
        """Whole points for a total; fractions are dropped"""
        if total <= 0:
            return 0
        return int((total * self.points_per_currency_unit).to_integral_value(rounding=ROUND_FLOOR))


_default_calculator = PricingCalculator()


def price(
    connector_price: Optional[Number],
    peak_hours: Optional[PeakHours],
    selected_time: Optional[str],
    duration_hours: Optional[Number],
    battery_size_kwh: Optional[Number]
) -> PricingResult:
    """Price a session with the default loyalty rate"""
    return _default_calculator.price(
        connector_price, peak_hours, selected_time, duration_hours, battery_size_kwh
    )
