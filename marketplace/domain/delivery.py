"""Expected delivery dates by timeline.

Every path uses the offset table below (rush 3, fast 7, standard 21,
flexible 30 days). The table is separate from the pricing adjustments.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Union

from marketplace.domain.statuses import Timeline, value_of

DEFAULT_OFFSET_DAYS = 21

DELIVERY_OFFSET_DAYS: Dict[str, int] = {
    Timeline.RUSH.value: 3,
    Timeline.FAST.value: 7,
    Timeline.STANDARD.value: 21,
    Timeline.FLEXIBLE.value: 30,
}


def delivery_offset_days(timeline: Union[str, Timeline, None]) -> int:
    if timeline is None:
        return DEFAULT_OFFSET_DAYS
    return DELIVERY_OFFSET_DAYS.get(value_of(timeline), DEFAULT_OFFSET_DAYS)


def expected_delivery(start: datetime, timeline: Union[str, Timeline, None]) -> datetime:
    return start + timedelta(days=delivery_offset_days(timeline))
