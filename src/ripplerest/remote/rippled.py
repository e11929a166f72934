"""rippled JSON-RPC remote.

Uses the rippled HTTP JSON-RPC API:
- server_info: connectivity / sync state
- account_lines: trust lines for an account
- ledger_current: ledger sequence at submission time
- account_info: next account sequence for signing
- submit (blob mode): broadcasts a transaction signed locally with xrpl-py
- tx: polled until the transaction appears in a validated ledger

The secret never leaves the process; rippled only sees the signed blob.

API Docs: https://xrpl.org/docs/references/http-websocket-apis/
"""

import asyncio
import logging
from typing import Any, Optional

import httpx
from xrpl.constants import XRPLException
from xrpl.models.transactions import TrustSet
from xrpl.transaction import sign
from xrpl.wallet import Wallet

from ripplerest.errors import RemoteError
from ripplerest.remote.base import (
    EventType,
    LineEntry,
    Remote,
    TransactionEvent,
    TrustSetTransaction,
)

logger = logging.getLogger(__name__)

# server_state values that mean the server is synced with the network
CONNECTED_STATES = frozenset({"full", "proposing", "validating"})

# Engine results after which the transaction is provisionally applied
ACCEPTED_RESULTS = frozenset({"tesSUCCESS", "terQUEUED"})


class RippledRemote(Remote):
    """Remote backed by a rippled JSON-RPC endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        poll_interval: float = 1.0,
        poll_limit: int = 30,
        fee: str = "12",
        ledger_offset: int = 20,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize rippled remote.

        Args:
            url: JSON-RPC endpoint (e.g. https://s1.ripple.com:51234/)
            timeout: HTTP timeout in seconds
            poll_interval: Seconds between tx status polls
            poll_limit: Maximum number of tx status polls
            fee: Transaction fee in drops
            ledger_offset: LastLedgerSequence distance from the submit ledger
            client: Shared HTTP client (created lazily if None)
        """
        self.url = url
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.poll_limit = poll_limit
        self.fee = fee
        self.ledger_offset = ledger_offset
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(self, method: str, params: Optional[dict] = None) -> dict:
        """Send a JSON-RPC request and return its result object.

        Raises:
            RemoteError: On transport failure or an error status from rippled
        """
        payload = {"method": method, "params": [params or {}]}

        try:
            response = await self._get_client().post(self.url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"rippled {method} request failed: {e}")
            raise RemoteError(f"rippled request failed: {e}") from e
        except ValueError as e:
            logger.error(f"rippled {method} returned invalid JSON: {e}")
            raise RemoteError(f"Invalid response from rippled: {e}") from e

        result = data.get("result", {})
        if result.get("status") == "error":
            code = result.get("error")
            message = result.get("error_message") or code or "Unknown error"
            raise RemoteError(message, code=code)

        return result

    async def is_connected(self) -> bool:
        result = await self.request("server_info")
        state = result.get("info", {}).get("server_state")
        logger.debug(f"rippled server_state: {state}")
        return state in CONNECTED_STATES

    async def account_lines(
        self,
        account: str,
        peer: Optional[str] = None,
        limit: Optional[Any] = None,
    ) -> list[LineEntry]:
        params: dict[str, Any] = {"account": account, "ledger_index": "validated"}
        if peer:
            params["peer"] = peer
        if limit is not None:
            # Query strings arrive as text; rippled wants an unsigned integer
            try:
                limit = int(limit)
            except (TypeError, ValueError):
                limit = -1
            if limit < 0:
                raise RemoteError(
                    "Invalid field 'limit', not unsigned integer.", code="invalidParams"
                )
            params["limit"] = limit

        result = await self.request("account_lines", params)

        return [
            LineEntry(
                account=line["account"],
                currency=line["currency"],
                limit=line["limit"],
                limit_peer=line["limit_peer"],
                no_ripple=line.get("no_ripple"),
                no_ripple_peer=line.get("no_ripple_peer"),
            )
            for line in result.get("lines", [])
        ]

    async def current_ledger_index(self) -> int:
        result = await self.request("ledger_current")
        return int(result["ledger_current_index"])

    async def account_sequence(self, account: str) -> int:
        result = await self.request(
            "account_info", {"account": account, "ledger_index": "current"}
        )
        return int(result["account_data"]["Sequence"])

    def trust_set(self, account: str, limit_spec: str) -> "RippledTrustSetTransaction":
        return RippledTrustSetTransaction(self, account, limit_spec)


class RippledTrustSetTransaction(TrustSetTransaction):
    """TrustSet signed in-process and broadcast to rippled as a blob."""

    def __init__(self, remote: RippledRemote, account: str, limit_spec: str):
        super().__init__(account, limit_spec)
        self._remote = remote
        self._task: Optional[asyncio.Task] = None

    def submit(self) -> None:
        if self._task is not None:
            raise RuntimeError("Transaction already submitted")
        if self._secret is None:
            raise ValueError("Secret is required to sign the transaction")

        try:
            wallet = Wallet.from_seed(self._secret)
        except (XRPLException, ValueError):
            raise ValueError("Secret is not a valid ledger seed") from None

        self._task = asyncio.create_task(self._run(wallet))

    async def _run(self, wallet: Wallet) -> None:
        try:
            await self._submit_and_track(wallet)
        except Exception as e:
            logger.exception(f"TrustSet submission for {self.account} failed")
            self.emit(
                TransactionEvent(EventType.ERROR, tx_json=dict(self.tx_json), message=str(e))
            )

    def _sign(self, wallet: Wallet, sequence: int) -> TrustSet:
        """Fill in sequence, fee and expiry, then sign with the wallet."""
        tx_json = dict(
            self.tx_json,
            Sequence=sequence,
            Fee=self._remote.fee,
            LastLedgerSequence=self.submit_index + self._remote.ledger_offset,
        )
        return sign(TrustSet.from_xrpl(tx_json), wallet)

    async def _submit_and_track(self, wallet: Wallet) -> None:
        try:
            self.submit_index = await self._remote.current_ledger_index()
            sequence = await self._remote.account_sequence(self.account)
            signed = self._sign(wallet, sequence)
            result = await self._remote.request("submit", {"tx_blob": signed.blob()})
        except RemoteError as e:
            self.emit(
                TransactionEvent(EventType.ERROR, tx_json=dict(self.tx_json), message=str(e))
            )
            return

        engine_result = result.get("engine_result", "")
        tx_json = dict(result.get("tx_json") or signed.to_xrpl())
        tx_json.setdefault("hash", signed.get_hash())

        if engine_result not in ACCEPTED_RESULTS:
            logger.warning(f"TrustSet for {self.account} rejected: {engine_result}")
            self.emit(
                TransactionEvent(
                    EventType.ERROR,
                    tx_json=tx_json,
                    message=result.get("engine_result_message") or engine_result,
                    engine_result=engine_result,
                )
            )
            return

        logger.info(f"TrustSet {tx_json.get('hash')} proposed ({engine_result})")
        self.emit(
            TransactionEvent(EventType.PROPOSED, tx_json=tx_json, engine_result=engine_result)
        )

        await self._poll_validation(tx_json.get("hash"))

    async def _poll_validation(self, tx_hash: Optional[str]) -> None:
        if not tx_hash:
            return

        for _ in range(self._remote.poll_limit):
            if self.listener_count() == 0:
                logger.debug(f"No listeners left for {tx_hash}, stop polling")
                return

            await asyncio.sleep(self._remote.poll_interval)

            try:
                result = await self._remote.request("tx", {"transaction": tx_hash})
            except RemoteError as e:
                if e.code == "txnNotFound":
                    continue
                self.emit(TransactionEvent(EventType.ERROR, message=str(e)))
                return

            if not result.get("validated"):
                continue

            meta = result.get("meta", {})
            tx_result = meta.get("TransactionResult", "")
            tx_json = {k: v for k, v in result.items() if k not in ("meta", "status")}

            if tx_result == "tesSUCCESS":
                logger.info(f"TrustSet {tx_hash} validated in ledger {result.get('ledger_index')}")
                self.emit(
                    TransactionEvent(EventType.VALIDATED, tx_json=tx_json, engine_result=tx_result)
                )
            else:
                self.emit(
                    TransactionEvent(
                        EventType.ERROR,
                        tx_json=tx_json,
                        message=f"Transaction failed: {tx_result}",
                        engine_result=tx_result,
                    )
                )
            return

        logger.warning(f"TrustSet {tx_hash} not validated after {self._remote.poll_limit} polls")
