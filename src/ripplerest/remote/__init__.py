"""Ledger remote interfaces and implementations.

Pipelines depend only on the Remote interface; the concrete remote is chosen
by the factory from settings.
"""

from ripplerest.remote.base import (
    EventType,
    LineEntry,
    Remote,
    TransactionEvent,
    TrustSetFlag,
    TrustSetTransaction,
)
from ripplerest.remote.factory import get_remote
from ripplerest.remote.status import ensure_connected

__all__ = [
    "EventType",
    "LineEntry",
    "Remote",
    "TransactionEvent",
    "TrustSetFlag",
    "TrustSetTransaction",
    "ensure_connected",
    "get_remote",
]
