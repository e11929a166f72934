"""Simulated remote for dry-run mode and testing.

Keeps trust lines in memory. Submitted TrustSet transactions are applied
immediately and report proposed followed by validated, like a healthy network.
"""

import asyncio
import logging
import secrets
from dataclasses import replace
from typing import Any, Optional

from ripplerest.errors import RemoteError
from ripplerest.remote.base import (
    EventType,
    LineEntry,
    Remote,
    TransactionEvent,
    TrustSetFlag,
    TrustSetTransaction,
)

logger = logging.getLogger(__name__)


class SimulatedRemote(Remote):
    """In-memory remote that never touches the network."""

    def __init__(self, connected: bool = True, ledger_index: int = 1000):
        self.connected = connected
        self.ledger_index = ledger_index
        # account -> lines in insertion order
        self._lines: dict[str, list[LineEntry]] = {}

    async def is_connected(self) -> bool:
        return self.connected

    def add_line(
        self,
        account: str,
        peer: str,
        currency: str,
        limit: str = "0",
        limit_peer: str = "0",
        no_ripple: Optional[bool] = None,
        no_ripple_peer: Optional[bool] = None,
    ) -> None:
        """Seed a trust line as seen from `account`."""
        self._upsert(
            account,
            LineEntry(
                account=peer,
                currency=currency,
                limit=limit,
                limit_peer=limit_peer,
                no_ripple=no_ripple,
                no_ripple_peer=no_ripple_peer,
            ),
        )

    def _upsert(self, account: str, entry: LineEntry) -> None:
        lines = self._lines.setdefault(account, [])
        for i, existing in enumerate(lines):
            if existing.account == entry.account and existing.currency == entry.currency:
                lines[i] = entry
                return
        lines.append(entry)

    def _find(self, account: str, peer: str, currency: str) -> Optional[LineEntry]:
        for line in self._lines.get(account, []):
            if line.account == peer and line.currency == currency:
                return line
        return None

    async def account_lines(
        self,
        account: str,
        peer: Optional[str] = None,
        limit: Optional[Any] = None,
    ) -> list[LineEntry]:
        lines = list(self._lines.get(account, []))

        if peer:
            lines = [line for line in lines if line.account == peer]

        if limit is not None:
            try:
                lines = lines[: int(limit)]
            except (TypeError, ValueError):
                raise RemoteError("Invalid field 'limit'.", code="invalidParams") from None

        return lines

    def trust_set(self, account: str, limit_spec: str) -> "SimulatedTrustSetTransaction":
        return SimulatedTrustSetTransaction(self, account, limit_spec)

    def apply_trust_set(self, tx_json: dict) -> None:
        """Apply a TrustSet to both sides of the line."""
        account = tx_json["Account"]
        amount = tx_json["LimitAmount"]
        issuer, currency, value = amount["issuer"], amount["currency"], amount["value"]
        flags = TrustSetFlag(tx_json.get("Flags", 0))

        no_ripple: Optional[bool] = None
        if flags & TrustSetFlag.NO_RIPPLE:
            no_ripple = True
        elif flags & TrustSetFlag.CLEAR_NO_RIPPLE:
            no_ripple = False

        ours = self._find(account, issuer, currency) or LineEntry(
            account=issuer, currency=currency, limit="0", limit_peer="0"
        )
        ours = replace(
            ours,
            limit=value,
            no_ripple=ours.no_ripple if no_ripple is None else no_ripple,
        )
        self._upsert(account, ours)

        theirs = self._find(issuer, account, currency) or LineEntry(
            account=account, currency=currency, limit="0", limit_peer="0"
        )
        theirs = replace(theirs, limit_peer=value, no_ripple_peer=ours.no_ripple)
        self._upsert(issuer, theirs)

        self.ledger_index += 1


class SimulatedTrustSetTransaction(TrustSetTransaction):
    """TrustSet that is applied to the in-memory ledger on the next loop tick."""

    def __init__(self, remote: SimulatedRemote, account: str, limit_spec: str):
        super().__init__(account, limit_spec)
        self._remote = remote
        self._submitted = False

    def submit(self) -> None:
        if self._submitted:
            raise RuntimeError("Transaction already submitted")
        if self._secret is None:
            raise ValueError("Secret is required to sign the transaction")

        self._submitted = True
        self.submit_index = self._remote.ledger_index

        tx_json = dict(self.tx_json)
        tx_json["hash"] = secrets.token_hex(32).upper()

        logger.info(f"[SIMULATED] TrustSet {tx_json['hash']} from {self.account}")

        loop = asyncio.get_running_loop()
        loop.call_soon(self._propose, tx_json)

    def _propose(self, tx_json: dict) -> None:
        self._remote.apply_trust_set(tx_json)
        self.emit(
            TransactionEvent(EventType.PROPOSED, tx_json=tx_json, engine_result="tesSUCCESS")
        )
        asyncio.get_running_loop().call_soon(self._validate, tx_json)

    def _validate(self, tx_json: dict) -> None:
        validated = dict(tx_json, ledger_index=self._remote.ledger_index)
        self.emit(
            TransactionEvent(EventType.VALIDATED, tx_json=validated, engine_result="tesSUCCESS")
        )
