"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .ledger import Ledger
from .memory_ledger import InMemoryLedger

__all__ = ['Ledger', 'InMemoryLedger']
