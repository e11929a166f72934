"""Base interfaces for the ledger remote.

Trust line flow:
1. Query: account_lines(account, peer) returns the raw line entries
2. Mutation: trust_set(account, limit) builds a TrustSet transaction handle
3. The handle is given a secret, optional qualities and flags
4. submit() broadcasts it; lifecycle events arrive through listeners:
   - error: the transaction was rejected
   - proposed: the network accepted it provisionally
   - validated: it is in a validated ledger
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum, IntFlag
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class TrustSetFlag(IntFlag):
    """TrustSet transaction flag bits."""

    SET_AUTH = 0x00010000
    NO_RIPPLE = 0x00020000
    CLEAR_NO_RIPPLE = 0x00040000


class EventType(str, Enum):
    """Lifecycle events emitted by a submitted transaction."""

    ERROR = "error"
    PROPOSED = "proposed"
    VALIDATED = "validated"


@dataclass(frozen=True)
class TransactionEvent:
    """A single lifecycle notification for a submitted transaction."""

    type: EventType
    tx_json: dict = field(default_factory=dict)
    message: Optional[str] = None
    engine_result: Optional[str] = None


@dataclass(frozen=True)
class LineEntry:
    """A trust line as returned by the network for one account."""

    account: str  # The peer address
    currency: str
    limit: str
    limit_peer: str
    no_ripple: Optional[bool] = None
    no_ripple_peer: Optional[bool] = None


Listener = Callable[[TransactionEvent], Any]


def parse_limit_spec(limit_spec: str) -> dict:
    """Parse "value/currency/issuer" into a LimitAmount object.

    Raises:
        ValueError: If the spec does not have three parts or the value is not
            a finite decimal
    """
    parts = limit_spec.split("/")
    if len(parts) != 3 or not all(parts):
        raise ValueError(f"Invalid trust limit: {limit_spec}")

    value, currency, issuer = parts
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"Invalid trust limit value: {value}") from None
    if not amount.is_finite():
        raise ValueError(f"Invalid trust limit value: {value}")

    return {"value": value, "currency": currency, "issuer": issuer}


class TrustSetTransaction(ABC):
    """Handle for a TrustSet transaction being built and submitted.

    Listener registration mirrors an event emitter: listeners are called in
    registration order and can be removed individually or all at once.
    """

    def __init__(self, account: str, limit_spec: str):
        """Initialize the transaction.

        Args:
            account: Address setting the trust line
            limit_spec: Trust limit as "value/currency/issuer"

        Raises:
            ValueError: If the limit spec is malformed
        """
        self.tx_json: dict = {
            "TransactionType": "TrustSet",
            "Account": account,
            "LimitAmount": parse_limit_spec(limit_spec),
            "Flags": 0,
        }
        self.submit_index: Optional[int] = None
        self._secret: Optional[str] = None
        self._listeners: dict[EventType, list[Listener]] = defaultdict(list)

    @property
    def account(self) -> str:
        return self.tx_json["Account"]

    @property
    def limit_amount(self) -> dict:
        return dict(self.tx_json["LimitAmount"])

    def set_secret(self, secret: str) -> None:
        if not secret:
            raise ValueError("Secret must not be empty")
        self._secret = secret

    def set_quality_in(self, quality: int) -> None:
        self.tx_json["QualityIn"] = self._check_quality(quality)

    def set_quality_out(self, quality: int) -> None:
        self.tx_json["QualityOut"] = self._check_quality(quality)

    def set_flag(self, flag: TrustSetFlag) -> None:
        """Set a TrustSet flag bit.

        NO_RIPPLE and CLEAR_NO_RIPPLE are mutually exclusive.
        """
        flags = TrustSetFlag(self.tx_json["Flags"]) | flag
        exclusive = TrustSetFlag.NO_RIPPLE | TrustSetFlag.CLEAR_NO_RIPPLE
        if flags & exclusive == exclusive:
            raise ValueError("NO_RIPPLE and CLEAR_NO_RIPPLE cannot both be set")
        self.tx_json["Flags"] = int(flags)

    @staticmethod
    def _check_quality(quality: Any) -> int:
        # Qualities are UInt32 on the ledger
        if isinstance(quality, bool) or not isinstance(quality, (int, float)):
            raise TypeError(f"Quality must be a number, got {type(quality).__name__}")
        if quality != int(quality) or not 0 <= quality <= 0xFFFFFFFF:
            raise ValueError(f"Quality must be an unsigned 32-bit integer: {quality}")
        return int(quality)

    # ======================
    # Listeners
    # ======================

    def on(self, event_type: EventType, listener: Listener) -> None:
        self._listeners[EventType(event_type)].append(listener)

    def remove_listener(self, event_type: EventType, listener: Listener) -> None:
        listeners = self._listeners.get(EventType(event_type), [])
        if listener in listeners:
            listeners.remove(listener)

    def remove_all_listeners(self, event_type: Optional[EventType] = None) -> None:
        if event_type is None:
            self._listeners.clear()
        else:
            self._listeners.pop(EventType(event_type), None)

    def listener_count(self, event_type: Optional[EventType] = None) -> int:
        if event_type is None:
            return sum(len(listeners) for listeners in self._listeners.values())
        return len(self._listeners.get(EventType(event_type), []))

    def emit(self, event: TransactionEvent) -> None:
        """Deliver an event to the listeners registered for its type."""
        listeners = list(self._listeners.get(event.type, []))
        logger.debug(
            f"TrustSet {self.account}: {event.type.value} event, {len(listeners)} listener(s)"
        )
        for listener in listeners:
            listener(event)

    @abstractmethod
    def submit(self) -> None:
        """Sign and broadcast the transaction.

        Returns immediately; the outcome is reported through events. Must set
        submit_index to the ledger sequence the transaction was submitted at.
        """
        pass


class Remote(ABC):
    """Abstract connection to the ledger network.

    Pipelines only read through this object; implementations own any
    session state.
    """

    @abstractmethod
    async def is_connected(self) -> bool:
        """Check whether the remote is connected and synced.

        Returns:
            True if requests can be served
        """
        pass

    @abstractmethod
    async def account_lines(
        self,
        account: str,
        peer: Optional[str] = None,
        limit: Optional[Any] = None,
    ) -> list[LineEntry]:
        """Fetch trust lines for an account.

        Args:
            account: Account to query
            peer: Only return lines shared with this address
            limit: Pagination hint forwarded to the server

        Returns:
            Line entries in server order

        Raises:
            RemoteError: If the request fails
        """
        pass

    @abstractmethod
    def trust_set(self, account: str, limit_spec: str) -> TrustSetTransaction:
        """Build a TrustSet transaction.

        Args:
            account: Address setting the trust line
            limit_spec: Trust limit as "value/currency/issuer"

        Returns:
            An unsubmitted transaction handle

        Raises:
            ValueError: If the inputs are rejected at build time
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the remote."""
        pass
