"""
Ledger strategy factory.
Configures which ledger backend the admission engine uses.
"""

from typing import Optional

from booking_engine.core.config import get_settings
from booking_engine.services.interfaces.ledger import Ledger
from booking_engine.services.interfaces.memory_ledger import InMemoryLedger
from booking_engine.services.ledger_service import RedisLedger


def get_ledger_strategy() -> Ledger:
    """
    Build the configured ledger.

    - memory: InMemoryLedger (single worker process)
    - redis: RedisLedger (any number of workers)
    """
    backend = get_settings().LEDGER_BACKEND.lower()

    if backend == 'redis':
        return RedisLedger()
    if backend == 'memory':
        return InMemoryLedger()
    raise ValueError(f"Unknown LEDGER_BACKEND: {backend}")


_ledger: Optional[Ledger] = None


def get_ledger() -> Ledger:
    """Get ledger singleton. Also usable as a FastAPI dependency."""
    global _ledger
    if _ledger is None:
        _ledger = get_ledger_strategy()
    return _ledger


def set_ledger(ledger: Optional[Ledger]) -> None:
    """Replace the singleton (tests, or reset with None)."""
    global _ledger
    _ledger = ledger
