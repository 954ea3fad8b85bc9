"""Order number generation: ``ORD-`` + last 8 digits of the epoch millis + 4 [A-Z0-9]."""
from __future__ import annotations

import random
import re
import string
import threading
import time
from typing import Callable, Optional, Set

ORDER_NUMBER_PATTERN = re.compile(r"^ORD-\d{8}[A-Z0-9]{4}$")

_ALPHABET = string.ascii_uppercase + string.digits
_SUFFIX_LEN = 4


class OrderNumberGenerator:
    """Issues order numbers that never repeat within this process.

    Suffixes handed out for the current millisecond are remembered, so two
    calls in the same millisecond cannot collide. Cross-process uniqueness
    is enforced by the unique index on ``orders.order_number``.
    """

    def __init__(
        self,
        clock: Callable[[], int] = lambda: time.time_ns() // 1_000_000,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._clock = clock
        self._rng = rng or random.SystemRandom()
        self._lock = threading.Lock()
        self._current_ms: Optional[int] = None
        self._issued: Set[str] = set()

    def __call__(self) -> str:
        with self._lock:
            millis = self._clock()
            if millis != self._current_ms:
                self._current_ms = millis
                self._issued = set()
            if len(self._issued) >= len(_ALPHABET) ** _SUFFIX_LEN:
                raise RuntimeError(f"Order number space exhausted for millisecond {millis}")
            while True:
                suffix = "".join(self._rng.choice(_ALPHABET) for _ in range(_SUFFIX_LEN))
                if suffix not in self._issued:
                    self._issued.add(suffix)
                    break
        return f"ORD-{str(millis)[-8:].zfill(8)}{suffix}"


generate_order_number = OrderNumberGenerator()


def is_order_number(value: str) -> bool:
    return bool(ORDER_NUMBER_PATTERN.match(value or ""))
