"""Tests for the trust line query and mutation pipelines."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import ACCOUNT, ISSUER, PEER, SECRET
from ripplerest.errors import (
    NotConnectedError,
    RemoteError,
    SubmissionError,
    TransactionTimeoutError,
)
from ripplerest.models import TrustLimit, TrustLineMutationOptions, TrustLineQueryOptions
from ripplerest.remote.base import EventType, LineEntry, TrustSetFlag
from ripplerest.services.trustlines import (
    SubmissionState,
    TrustLineMutationExecutor,
    TrustLineQueryExecutor,
    TrustSetSubmission,
    add_trust_line,
    get_trust_lines,
)


def mutation_options(**overrides) -> TrustLineMutationOptions:
    values = {
        "account": ACCOUNT,
        "secret": SECRET,
        "limit": TrustLimit(value="100", currency="USD", counterparty=ISSUER),
    }
    values.update(overrides)
    return TrustLineMutationOptions(**values)


async def submitted(remote):
    """Wait until the executor has submitted its transaction."""
    for _ in range(100):
        if remote.transactions and remote.transactions[-1].submitted:
            return remote.transactions[-1]
        await asyncio.sleep(0)
    raise AssertionError("transaction was never submitted")


class TestQueryExecutor:
    """Tests for TrustLineQueryExecutor."""

    @pytest.mark.asyncio
    async def test_projection(self, scripted_remote):
        scripted_remote.lines = [
            LineEntry(account=ACCOUNT, currency="USD", limit="10", limit_peer="5"),
        ]
        options = TrustLineQueryOptions(account=ACCOUNT, currency="USD")

        lines = await TrustLineQueryExecutor(scripted_remote).execute(options)

        assert [line.model_dump() for line in lines] == [
            {
                "account": ACCOUNT,
                "counterparty": ACCOUNT,
                "currency": "USD",
                "limit": "10",
                "reciprocated_limit": "5",
                "account_allows_rippling": True,
                "counterparty_allows_rippling": True,
            }
        ]

    @pytest.mark.asyncio
    async def test_currency_filter_case_insensitive_and_exact(self, scripted_remote):
        scripted_remote.lines = [
            LineEntry(account=ISSUER, currency="usd", limit="1", limit_peer="0"),
            LineEntry(account=ISSUER, currency="USDT", limit="2", limit_peer="0"),
            LineEntry(account=PEER, currency="EUR", limit="3", limit_peer="0"),
            LineEntry(account=PEER, currency="USD", limit="4", limit_peer="0"),
        ]
        options = TrustLineQueryOptions(account=ACCOUNT, currency="USD")

        lines = await TrustLineQueryExecutor(scripted_remote).execute(options)

        assert [line.limit for line in lines] == ["1", "4"]

    @pytest.mark.asyncio
    async def test_no_filter_keeps_server_order(self, scripted_remote):
        scripted_remote.lines = [
            LineEntry(account=PEER, currency="EUR", limit="3", limit_peer="0"),
            LineEntry(account=ISSUER, currency="BTC", limit="1", limit_peer="0"),
        ]

        lines = await TrustLineQueryExecutor(scripted_remote).execute(
            TrustLineQueryOptions(account=ACCOUNT)
        )

        assert [(line.counterparty, line.currency) for line in lines] == [
            (PEER, "EUR"),
            (ISSUER, "BTC"),
        ]

    @pytest.mark.asyncio
    async def test_rippling_flags(self, scripted_remote):
        scripted_remote.lines = [
            LineEntry(
                account=ISSUER,
                currency="USD",
                limit="1",
                limit_peer="0",
                no_ripple=True,
                no_ripple_peer=False,
            ),
        ]

        [line] = await TrustLineQueryExecutor(scripted_remote).execute(
            TrustLineQueryOptions(account=ACCOUNT)
        )

        assert line.account_allows_rippling is False
        assert line.counterparty_allows_rippling is True

    @pytest.mark.asyncio
    async def test_counterparty_and_limit_sent_to_remote(self, scripted_remote):
        options = TrustLineQueryOptions(account=ACCOUNT, counterparty=ISSUER, limit=5)

        await TrustLineQueryExecutor(scripted_remote).execute(options)

        assert scripted_remote.line_requests == [
            {"account": ACCOUNT, "peer": ISSUER, "limit": 5}
        ]

    @pytest.mark.asyncio
    async def test_remote_failure_raises_remote_error(self, scripted_remote):
        scripted_remote.lines_error = OSError("socket closed")

        with pytest.raises(RemoteError, match="socket closed"):
            await TrustLineQueryExecutor(scripted_remote).execute(
                TrustLineQueryOptions(account=ACCOUNT)
            )


class TestMutationBuild:
    """Tests for building the TrustSet transaction."""

    def test_limit_and_secret(self, scripted_remote):
        transaction = TrustLineMutationExecutor(scripted_remote).build_transaction(
            mutation_options()
        )

        assert transaction.tx_json["TransactionType"] == "TrustSet"
        assert transaction.tx_json["Account"] == ACCOUNT
        assert transaction.limit_amount == {"value": "100", "currency": "USD", "issuer": ISSUER}
        assert transaction.secret == SECRET
        assert transaction.tx_json["Flags"] == 0
        assert "QualityIn" not in transaction.tx_json
        assert "QualityOut" not in transaction.tx_json

    def test_qualities(self, scripted_remote):
        transaction = TrustLineMutationExecutor(scripted_remote).build_transaction(
            mutation_options(quality_in=1000000000, quality_out=0)
        )

        assert transaction.tx_json["QualityIn"] == 1000000000
        assert transaction.tx_json["QualityOut"] == 0

    @pytest.mark.parametrize(
        "allow_rippling,expected",
        [
            (True, TrustSetFlag.CLEAR_NO_RIPPLE),
            (False, TrustSetFlag.NO_RIPPLE),
            (None, 0),
        ],
    )
    def test_rippling_flag(self, scripted_remote, allow_rippling, expected):
        transaction = TrustLineMutationExecutor(scripted_remote).build_transaction(
            mutation_options(allow_rippling=allow_rippling)
        )

        assert transaction.tx_json["Flags"] == expected

    def test_build_rejection_becomes_submission_error(self, scripted_remote):
        with pytest.raises(SubmissionError):
            TrustLineMutationExecutor(scripted_remote).build_transaction(
                mutation_options(quality_in=1.5)
            )


class TestMutationResolution:
    """Tests for exactly-once resolution of the transaction lifecycle."""

    @pytest.mark.asyncio
    async def test_proposed_resolves(self, scripted_remote):
        executor = TrustLineMutationExecutor(scripted_remote)
        task = asyncio.create_task(executor.execute(mutation_options()))

        transaction = await submitted(scripted_remote)
        transaction.fire(EventType.PROPOSED, tx_hash="HASH1")
        result = await task

        assert result.success is True
        assert result.transaction_hash == "HASH1"
        assert result.ledger_index == str(scripted_remote.ledger_index)
        assert result.line.model_dump() == {
            "account": ACCOUNT,
            "counterparty": ISSUER,
            "currency": "USD",
            "value": "100",
            "allows_rippling": True,
            "authorized": False,
        }

    @pytest.mark.asyncio
    async def test_validated_after_proposed_is_ignored(self, scripted_remote):
        executor = TrustLineMutationExecutor(scripted_remote)
        task = asyncio.create_task(executor.execute(mutation_options()))

        transaction = await submitted(scripted_remote)
        transaction.fire(EventType.PROPOSED, tx_hash="FIRST")
        transaction.fire(EventType.VALIDATED, tx_hash="SECOND", flags=TrustSetFlag.NO_RIPPLE)
        result = await task

        assert result.transaction_hash == "FIRST"
        assert result.line.allows_rippling is True
        assert transaction.listener_count() == 0

    @pytest.mark.asyncio
    async def test_validated_first_wins(self, scripted_remote):
        executor = TrustLineMutationExecutor(scripted_remote)
        task = asyncio.create_task(executor.execute(mutation_options()))

        transaction = await submitted(scripted_remote)
        transaction.fire(EventType.VALIDATED, tx_hash="VALIDATED")
        transaction.fire(EventType.PROPOSED, tx_hash="PROPOSED")
        result = await task

        assert result.transaction_hash == "VALIDATED"

    @pytest.mark.asyncio
    async def test_error_event_fails(self, scripted_remote):
        executor = TrustLineMutationExecutor(scripted_remote)
        task = asyncio.create_task(executor.execute(mutation_options()))

        transaction = await submitted(scripted_remote)
        transaction.fire(EventType.ERROR, message="tecNO_LINE_INSUF_RESERVE")

        with pytest.raises(RemoteError, match="tecNO_LINE_INSUF_RESERVE"):
            await task
        assert transaction.listener_count() == 0

    @pytest.mark.asyncio
    async def test_error_after_proposed_is_ignored(self, scripted_remote):
        executor = TrustLineMutationExecutor(scripted_remote)
        task = asyncio.create_task(executor.execute(mutation_options()))

        transaction = await submitted(scripted_remote)
        transaction.fire(EventType.PROPOSED, tx_hash="OK")
        transaction.fire(EventType.ERROR, message="late failure")
        result = await task

        assert result.transaction_hash == "OK"

    @pytest.mark.parametrize(
        "allow_rippling,expected", [(False, False), (True, True), (None, True)]
    )
    @pytest.mark.asyncio
    async def test_allows_rippling_round_trip(self, scripted_remote, allow_rippling, expected):
        executor = TrustLineMutationExecutor(scripted_remote)
        task = asyncio.create_task(
            executor.execute(mutation_options(allow_rippling=allow_rippling))
        )

        transaction = await submitted(scripted_remote)
        transaction.fire(EventType.PROPOSED, flags=transaction.tx_json["Flags"])
        result = await task

        assert result.line.allows_rippling is expected

    @pytest.mark.asyncio
    async def test_set_auth_marks_authorized(self, scripted_remote):
        executor = TrustLineMutationExecutor(scripted_remote)
        task = asyncio.create_task(executor.execute(mutation_options()))

        transaction = await submitted(scripted_remote)
        transaction.fire(EventType.PROPOSED, flags=TrustSetFlag.SET_AUTH)
        result = await task

        assert result.line.authorized is True

    @pytest.mark.asyncio
    async def test_timeout_detaches_listeners(self, scripted_remote):
        executor = TrustLineMutationExecutor(scripted_remote, timeout=0.01)

        with pytest.raises(TransactionTimeoutError):
            await executor.execute(mutation_options())

        transaction = scripted_remote.transactions[-1]
        assert transaction.listener_count() == 0

    @pytest.mark.asyncio
    async def test_submit_failure_is_submission_error(self, scripted_remote):
        scripted_remote.submit_error = ValueError("Secret is required")

        with pytest.raises(SubmissionError, match="Secret is required"):
            await TrustLineMutationExecutor(scripted_remote).execute(mutation_options())

        transaction = scripted_remote.transactions[-1]
        assert transaction.listener_count() == 0

    @pytest.mark.asyncio
    async def test_unexpected_submit_error_detaches_listeners(self, scripted_remote):
        scripted_remote.submit_error = OSError("socket closed")
        transaction = TrustLineMutationExecutor(scripted_remote).build_transaction(
            mutation_options()
        )
        submission = TrustSetSubmission(transaction)

        with pytest.raises(OSError, match="socket closed"):
            await submission.run()

        assert submission.state is SubmissionState.FAILED
        assert transaction.listener_count() == 0

    @pytest.mark.asyncio
    async def test_submission_states(self, scripted_remote):
        transaction = TrustLineMutationExecutor(scripted_remote).build_transaction(
            mutation_options()
        )
        submission = TrustSetSubmission(transaction)
        assert submission.state is SubmissionState.BUILT

        task = asyncio.create_task(submission.run())
        await submitted(scripted_remote)
        assert submission.state is SubmissionState.SUBMITTED

        transaction.fire(EventType.PROPOSED)
        await task
        assert submission.state is SubmissionState.RESOLVED

        with pytest.raises(RuntimeError):
            await submission.run()


class TestGetTrustLinesPipeline:
    """Tests for the get_trust_lines entry point."""

    @pytest.mark.asyncio
    async def test_success(self, scripted_remote):
        scripted_remote.lines = [
            LineEntry(account=ISSUER, currency="USD", limit="10", limit_peer="5"),
        ]

        outcome = await get_trust_lines(scripted_remote, {"account": ACCOUNT, "currency": "usd"})

        assert outcome.status_code == 200
        assert outcome.body["success"] is True
        assert outcome.body["lines"][0]["counterparty"] == ISSUER
        assert outcome.body["lines"][0]["reciprocated_limit"] == "5"

    @pytest.mark.asyncio
    async def test_validation_failure_skips_remote(self, scripted_remote):
        outcome = await get_trust_lines(scripted_remote, {"account": "rA1"})

        assert outcome.status_code == 400
        assert outcome.body == {
            "success": False,
            "message": "Parameter is not a valid Ripple address: account",
        }
        assert scripted_remote.status_checks == 0
        assert scripted_remote.line_requests == []

    @pytest.mark.asyncio
    async def test_disconnected(self, scripted_remote):
        scripted_remote.connected = False

        outcome = await get_trust_lines(scripted_remote, {"account": ACCOUNT})

        assert outcome.status_code == 500
        assert outcome.body["message"] == "Remote is not connected"
        assert scripted_remote.line_requests == []

    @pytest.mark.asyncio
    async def test_remote_error(self, scripted_remote):
        scripted_remote.lines_error = RemoteError("Account not found.", code="actNotFound")

        outcome = await get_trust_lines(scripted_remote, {"account": ACCOUNT})

        assert outcome.status_code == 500
        assert outcome.body == {"success": False, "message": "Account not found."}


class TestAddTrustLinePipeline:
    """Tests for the add_trust_line entry point."""

    @pytest.mark.asyncio
    async def test_success(self, simulated_remote):
        outcome = await add_trust_line(
            simulated_remote,
            {"account": ACCOUNT, "secret": SECRET, "limit": f"100/USD/{ISSUER}"},
            timeout=1.0,
        )

        assert outcome.status_code == 201
        assert outcome.body["success"] is True
        assert outcome.body["line"]["counterparty"] == ISSUER
        assert outcome.body["line"]["value"] == "100"
        assert outcome.body["ledger_index"] == "1000"
        assert len(outcome.body["transaction_hash"]) == 64

    @pytest.mark.asyncio
    async def test_missing_secret_fails_before_connectivity_check(self, scripted_remote):
        outcome = await add_trust_line(
            scripted_remote, {"account": ACCOUNT, "limit": f"100/USD/{ISSUER}"}
        )

        assert outcome.status_code == 400
        assert outcome.body["message"] == "Parameter missing: secret"
        assert scripted_remote.status_checks == 0
        assert scripted_remote.transactions == []

    @pytest.mark.asyncio
    async def test_disconnected_builds_no_transaction(self, scripted_remote):
        scripted_remote.connected = False

        outcome = await add_trust_line(
            scripted_remote,
            {"account": ACCOUNT, "secret": SECRET, "limit": f"100/USD/{ISSUER}"},
        )

        assert outcome.status_code == 500
        assert outcome.body["message"] == "Remote is not connected"
        assert scripted_remote.transactions == []

    @pytest.mark.asyncio
    async def test_status_check_error_is_not_connected(self, scripted_remote):
        scripted_remote.status_error = OSError("connection refused")

        outcome = await add_trust_line(
            scripted_remote,
            {"account": ACCOUNT, "secret": SECRET, "limit": f"100/USD/{ISSUER}"},
        )

        assert outcome.status_code == 500
        assert outcome.body["message"] == "Remote is not connected"

    @pytest.mark.asyncio
    async def test_build_error_is_server_error(self, scripted_remote):
        outcome = await add_trust_line(
            scripted_remote,
            {
                "account": ACCOUNT,
                "secret": SECRET,
                "limit": f"100/USD/{ISSUER}",
                "quality_in": -1,
            },
        )

        assert outcome.status_code == 500
        assert not scripted_remote.transactions[-1].submitted

    @pytest.mark.asyncio
    async def test_timeout(self, scripted_remote):
        outcome = await add_trust_line(
            scripted_remote,
            {"account": ACCOUNT, "secret": SECRET, "limit": f"100/USD/{ISSUER}"},
            timeout=0.01,
        )

        assert outcome.status_code == 504


class TestConnectionGate:
    """Tests for ensure_connected."""

    @pytest.mark.asyncio
    async def test_connected(self, scripted_remote):
        from ripplerest.remote.status import ensure_connected

        await ensure_connected(scripted_remote)
        assert scripted_remote.status_checks == 1

    @pytest.mark.asyncio
    async def test_disconnected_raises(self, scripted_remote):
        from ripplerest.remote.status import ensure_connected

        scripted_remote.connected = False

        with pytest.raises(NotConnectedError):
            await ensure_connected(scripted_remote)

    @pytest.mark.asyncio
    async def test_status_check_error_raises(self):
        from ripplerest.remote.status import ensure_connected

        remote = AsyncMock()
        remote.is_connected.side_effect = ConnectionError("socket closed")

        with pytest.raises(NotConnectedError, match="Remote is not connected"):
            await ensure_connected(remote)

        remote.is_connected.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_retry(self):
        from ripplerest.remote.status import ensure_connected

        remote = AsyncMock()
        remote.is_connected.return_value = False

        with pytest.raises(NotConnectedError):
            await ensure_connected(remote)

        assert remote.is_connected.await_count == 1
