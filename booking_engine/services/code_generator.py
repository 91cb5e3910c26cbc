"""
Booking code generation: `<PREFIX>-<5 digits>`, globally unique.

The store lookup only filters obvious duplicates. Two admissions can still
draw the same candidate concurrently; the UNIQUE constraint on bookings.code
decides, and the admission engine retries on that IntegrityError with the
same attempt budget.
"""

import random
from typing import Awaitable, Callable, Optional

from booking_engine.core.config import get_settings
from booking_engine.core.exceptions import ResourceExhausted
from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import code_collisions

logger = get_logger(__name__)

CODE_MIN = 10000
CODE_MAX = 99999

_rng = random.SystemRandom()


def make_candidate(prefix: Optional[str] = None) -> str:
    """Draw a uniform 5-digit candidate, independent of resource and requester."""
    prefix = prefix or get_settings().BOOKING_CODE_PREFIX
    return f"{prefix}-{_rng.randint(CODE_MIN, CODE_MAX)}"


class CodeGenerator:
    """Bounded-retry unique code source. One instance serves one admission."""

    def __init__(
        self,
        exists: Callable[[str], Awaitable[bool]],
        max_attempts: Optional[int] = None,
        candidates: Optional[Callable[[], str]] = None,
    ):
        self._exists = exists
        self._max_attempts = max_attempts or get_settings().BOOKING_CODE_MAX_ATTEMPTS
        self._candidates = candidates or make_candidate
        self.attempts = 0

    async def next_code(self) -> str:
        """
        Return a candidate that the store does not know yet.

        Raises:
            ResourceExhausted: the attempt budget is spent
        """
        while self.attempts < self._max_attempts:
            self.attempts += 1
            candidate = self._candidates()
            if not await self._exists(candidate):
                return candidate
            code_collisions.labels(stage="lookup").inc()
            logger.info("booking_code_collision", stage="lookup", attempt=self.attempts)

        logger.error("booking_code_space_exhausted", attempts=self.attempts)
        raise ResourceExhausted(
            f"Could not generate a unique booking code after {self.attempts} attempts"
        )
