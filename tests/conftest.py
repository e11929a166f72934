"""Pytest configuration and fixtures."""

import os
from typing import Any, Optional

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DRY_RUN"] = "true"
os.environ["DEBUG"] = "true"
os.environ["SUBMISSION_TIMEOUT"] = "5"

from ripplerest.remote.base import (
    EventType,
    LineEntry,
    Remote,
    TransactionEvent,
    TrustSetTransaction,
)
from ripplerest.remote.factory import reset_remote_cache
from ripplerest.remote.simulated import SimulatedRemote

# Valid classic addresses
ACCOUNT = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"
ISSUER = "rrrrrrrrrrrrrrrrrrrrBZbvji"
PEER = "rrrrrrrrrrrrrrrrrrrrrhoLvTp"

# Checksum of ACCOUNT altered in the last character
BAD_CHECKSUM = "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTi"

SECRET = "snoPBrXtMeMyMHUVTgbuqAfg1SUTb"


class ScriptedTransaction(TrustSetTransaction):
    """Transaction whose lifecycle events are emitted by the test."""

    def __init__(self, remote: "ScriptedRemote", account: str, limit_spec: str):
        super().__init__(account, limit_spec)
        self._remote = remote
        self.submitted = False

    @property
    def secret(self) -> Optional[str]:
        return self._secret

    def submit(self) -> None:
        if self._remote.submit_error is not None:
            raise self._remote.submit_error
        self.submitted = True
        self.submit_index = self._remote.ledger_index

    def fire(self, event_type: EventType, flags: int = 0, tx_hash: str = "ABC123", message=None):
        tx_json = dict(self.tx_json, Flags=flags, hash=tx_hash)
        self.emit(TransactionEvent(event_type, tx_json=tx_json, message=message))


class ScriptedRemote(Remote):
    """Remote with canned responses that records how it was used."""

    def __init__(self):
        self.connected = True
        self.status_error: Optional[Exception] = None
        self.lines: list[LineEntry] = []
        self.lines_error: Optional[Exception] = None
        self.submit_error: Optional[Exception] = None
        self.ledger_index = 8819951
        self.status_checks = 0
        self.line_requests: list[dict[str, Any]] = []
        self.transactions: list[ScriptedTransaction] = []

    async def is_connected(self) -> bool:
        self.status_checks += 1
        if self.status_error is not None:
            raise self.status_error
        return self.connected

    async def account_lines(self, account, peer=None, limit=None):
        self.line_requests.append({"account": account, "peer": peer, "limit": limit})
        if self.lines_error is not None:
            raise self.lines_error
        return list(self.lines)

    def trust_set(self, account: str, limit_spec: str) -> ScriptedTransaction:
        transaction = ScriptedTransaction(self, account, limit_spec)
        self.transactions.append(transaction)
        return transaction


@pytest.fixture(autouse=True)
def clear_remote_cache():
    """Each test starts without a cached remote."""
    reset_remote_cache()
    yield
    reset_remote_cache()


@pytest.fixture
def scripted_remote() -> ScriptedRemote:
    return ScriptedRemote()


@pytest.fixture
def simulated_remote() -> SimulatedRemote:
    return SimulatedRemote()
