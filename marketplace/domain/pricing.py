"""Order pricing: timeline adjustment and flat tax on the product base price."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Union

from marketplace.domain.statuses import Timeline, value_of

logger = logging.getLogger(__name__)

TAX_RATE = Decimal("0.10")
DEFAULT_CURRENCY = "USD"
_CENT = Decimal("0.01")

TIMELINE_ADJUSTMENTS: Dict[str, Decimal] = {
    Timeline.RUSH.value: Decimal("0.50"),
    Timeline.FAST.value: Decimal("0.25"),
    Timeline.STANDARD.value: Decimal("0"),
    Timeline.FLEXIBLE.value: Decimal("-0.10"),
}


def to_money(value: Union[Decimal, float, int, str]) -> Decimal:
    """Round to cents. Floats go through str() to avoid binary artefacts."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceQuote:
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    timeline_adjustment: Decimal
    currency: str = DEFAULT_CURRENCY


def timeline_adjustment(timeline: Union[str, Timeline, None]) -> Decimal:
    """Signed fraction applied to the base price. Unknown timelines price as standard."""
    key = value_of(timeline) if timeline is not None else Timeline.STANDARD.value
    adjustment = TIMELINE_ADJUSTMENTS.get(key)
    if adjustment is None:
        logger.warning(
            "Unknown timeline %r, pricing as %s",
            timeline, Timeline.STANDARD.value,
            extra={"timeline": key},
        )
        return TIMELINE_ADJUSTMENTS[Timeline.STANDARD.value]
    return adjustment


def calculate_pricing(
    base_price: Union[Decimal, float, int, str],
    timeline: Union[str, Timeline, None],
    currency: str = DEFAULT_CURRENCY,
) -> PriceQuote:
    """subtotal = base * (1 + adjustment), tax = 10% of subtotal, total = subtotal + tax.

    Each amount is rounded to cents, and the total is the sum of the
    rounded parts so that total == subtotal + tax holds exactly.
    """
    base = Decimal(str(base_price)) if not isinstance(base_price, Decimal) else base_price
    adjustment = timeline_adjustment(timeline)
    subtotal = to_money(base * (Decimal("1") + adjustment))
    tax = to_money(subtotal * TAX_RATE)
    return PriceQuote(
        subtotal=subtotal,
        tax=tax,
        total=subtotal + tax,
        timeline_adjustment=adjustment,
        currency=currency,
    )
