"""Trust line service: query and TrustSet pipelines.

Both entry points run validate -> ensure connected -> execute through a
PipelineRunner and return a PipelineOutcome for the HTTP layer.

Mutation flow:
1. Build the TrustSet (limit, secret, qualities, rippling flag)
2. Submit it and listen for error / proposed / validated
3. The first event claims the completion latch; every listener is then
   removed so later events cannot resolve the request a second time
4. The winning event is turned into a TransactionResult
"""

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Callable, Optional

from ripplerest.contracts.trustlines import (
    TransactionResult,
    TrustLine,
    TrustLineRecord,
    TrustLinesResponse,
)
from ripplerest.errors import (
    RemoteError,
    RippleRestError,
    SubmissionError,
    TransactionTimeoutError,
    ValidationError,
)
from ripplerest.models import TrustLineMutationOptions, TrustLineQueryOptions
from ripplerest.pipeline import Halt, PipelineOutcome, PipelineRunner
from ripplerest.remote.base import (
    EventType,
    LineEntry,
    Remote,
    TransactionEvent,
    TrustSetFlag,
    TrustSetTransaction,
)
from ripplerest.remote.status import ensure_connected
from ripplerest.utils.latch import CompletionLatch, LatchTimeoutError
from ripplerest.validation import validate_mutation_options, validate_query_options

logger = logging.getLogger(__name__)


class TrustLineQueryExecutor:
    """Fetches an account's trust lines and projects them for the API."""

    def __init__(self, remote: Remote):
        self.remote = remote

    async def execute(self, options: TrustLineQueryOptions) -> list[TrustLineRecord]:
        """Query trust lines for options.account.

        The counterparty filter is applied by the server; the currency filter
        is applied here. Output keeps the server's order.

        Raises:
            RemoteError: If the remote request fails
        """
        try:
            entries = await self.remote.account_lines(
                options.account,
                peer=options.counterparty,
                limit=options.limit,
            )
        except RemoteError:
            raise
        except Exception as e:
            logger.error(f"account_lines for {options.account} failed: {e}")
            raise RemoteError(str(e)) from e

        lines = []
        for entry in entries:
            if options.currency and entry.currency.upper() != options.currency:
                continue
            lines.append(self.project(options.account, entry))

        logger.debug(f"Found {len(lines)} of {len(entries)} trust lines for {options.account}")
        return lines

    @staticmethod
    def project(account: str, entry: LineEntry) -> TrustLineRecord:
        return TrustLineRecord(
            account=account,
            counterparty=entry.account,
            currency=entry.currency,
            limit=entry.limit,
            reciprocated_limit=entry.limit_peer,
            account_allows_rippling=not entry.no_ripple,
            counterparty_allows_rippling=not entry.no_ripple_peer,
        )


class SubmissionState(str, Enum):
    """Lifecycle of one TrustSet submission."""

    BUILT = "built"
    SUBMITTED = "submitted"
    RESOLVED = "resolved"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


TERMINAL_STATES = frozenset(
    {SubmissionState.RESOLVED, SubmissionState.FAILED, SubmissionState.TIMED_OUT}
)


class TrustSetSubmission:
    """Submits one transaction and resolves it exactly once.

    Whichever of error / proposed / validated arrives first wins. Once the
    latch is claimed all listeners are detached from the transaction, so a
    validated event following a proposed one (or the reverse) is never seen.
    """

    def __init__(self, transaction: TrustSetTransaction, timeout: Optional[float] = None):
        self.transaction = transaction
        self.timeout = timeout
        self.state = SubmissionState.BUILT
        self.latch = CompletionLatch(f"TrustSet {transaction.account}")

    def _detach(self) -> None:
        self.transaction.remove_all_listeners()

    def _on_error(self, event: TransactionEvent) -> None:
        error = RemoteError(event.message or "Transaction failed", code=event.engine_result)
        if self.latch.fail(error):
            self.state = SubmissionState.FAILED
            self._detach()
            logger.warning(f"TrustSet from {self.transaction.account} failed: {error}")

    def _on_confirmed(self, event: TransactionEvent) -> None:
        if self.latch.resolve(event):
            self.state = SubmissionState.RESOLVED
            self._detach()
            logger.info(
                f"TrustSet {event.tx_json.get('hash')} resolved on {event.type.value} event"
            )

    async def run(self) -> TransactionEvent:
        """Submit and wait for the winning event.

        Raises:
            RemoteError: If an error event wins
            SubmissionError: If the transaction refuses to submit
            TransactionTimeoutError: If no event arrives within the timeout
        """
        if self.state is not SubmissionState.BUILT:
            raise RuntimeError(f"Submission already {self.state.value}")

        self.transaction.on(EventType.ERROR, self._on_error)
        self.transaction.on(EventType.PROPOSED, self._on_confirmed)
        self.transaction.on(EventType.VALIDATED, self._on_confirmed)

        try:
            try:
                self.transaction.submit()
            except (ValueError, TypeError, RuntimeError) as e:
                raise SubmissionError(str(e)) from e

            # An event may already have been delivered synchronously by submit()
            if self.state not in TERMINAL_STATES:
                self.state = SubmissionState.SUBMITTED

            return await self.latch.wait(self.timeout)
        except LatchTimeoutError:
            self.state = SubmissionState.TIMED_OUT
            raise TransactionTimeoutError(
                f"No response for TrustSet from {self.transaction.account} "
                f"within {self.timeout}s"
            ) from None
        except Exception:
            if self.state not in TERMINAL_STATES:
                self.state = SubmissionState.FAILED
            raise
        finally:
            self._detach()


def build_transaction_result(
    transaction: TrustSetTransaction, event: TransactionEvent
) -> TransactionResult:
    """Build the API result from the transaction and its winning event."""
    limit = transaction.limit_amount
    flags = int(event.tx_json.get("Flags", transaction.tx_json.get("Flags", 0)))

    line = TrustLine(
        account=transaction.account,
        counterparty=limit["issuer"],
        currency=limit["currency"],
        value=limit["value"],
        allows_rippling=not flags & TrustSetFlag.NO_RIPPLE,
        authorized=bool(flags & TrustSetFlag.SET_AUTH),
    )

    submit_index = transaction.submit_index
    return TransactionResult(
        line=line,
        ledger_index="" if submit_index is None else str(submit_index),
        transaction_hash=str(event.tx_json.get("hash", "")),
    )


class TrustLineMutationExecutor:
    """Builds, submits and resolves a TrustSet transaction."""

    def __init__(self, remote: Remote, timeout: Optional[float] = None):
        """Initialize executor.

        Args:
            remote: Ledger remote
            timeout: Seconds to wait for a lifecycle event (None = forever)
        """
        self.remote = remote
        self.timeout = timeout

    def build_transaction(self, options: TrustLineMutationOptions) -> TrustSetTransaction:
        """Build the TrustSet without submitting it.

        Raises:
            SubmissionError: If the remote rejects the inputs at build time
        """
        try:
            transaction = self.remote.trust_set(options.account, options.limit.to_spec())
            transaction.set_secret(options.secret)

            if options.quality_in is not None:
                transaction.set_quality_in(options.quality_in)

            if options.quality_out is not None:
                transaction.set_quality_out(options.quality_out)

            if options.allow_rippling is not None:
                if options.allow_rippling:
                    transaction.set_flag(TrustSetFlag.CLEAR_NO_RIPPLE)
                else:
                    transaction.set_flag(TrustSetFlag.NO_RIPPLE)

        except (ValueError, TypeError) as e:
            logger.warning(f"TrustSet for {options.account} rejected at build time: {e}")
            raise SubmissionError(str(e)) from e

        return transaction

    async def execute(self, options: TrustLineMutationOptions) -> TransactionResult:
        transaction = self.build_transaction(options)
        event = await TrustSetSubmission(transaction, self.timeout).run()
        return build_transaction_result(transaction, event)


# ======================
# Pipeline entry points
# ======================


def _validation_step(validator: Callable, params: Mapping) -> Callable:
    """Wrap a validator so a failure ends the request with a 400 response."""

    def validate_options():
        try:
            return validator(params)
        except ValidationError as e:
            logger.info(f"Rejected request: {e}")
            return Halt(PipelineOutcome.failure(e.status_code, str(e)))

    return validate_options


def _connection_step(remote: Remote) -> Callable:
    async def check_connection(options):
        await ensure_connected(remote)
        return options

    return check_connection


async def _run_pipeline(runner: PipelineRunner, on_complete: Callable) -> PipelineOutcome:
    """Run a pipeline and render its errors in one place."""
    try:
        result = await runner.run(on_complete)
    except RippleRestError as e:
        logger.warning(f"{runner.name} failed ({e.status_code}): {e}")
        return PipelineOutcome.failure(e.status_code, str(e))

    if isinstance(result, Halt):
        return result.outcome
    return result


async def get_trust_lines(remote: Remote, params: Mapping) -> PipelineOutcome:
    """List trust lines for an account.

    Args:
        remote: Ledger remote
        params: Merged path, query and body parameters

    Returns:
        200 with {"success": true, "lines": [...]}, or an error outcome
    """
    executor = TrustLineQueryExecutor(remote)

    runner = PipelineRunner(
        "get_trust_lines",
        [
            _validation_step(validate_query_options, params),
            _connection_step(remote),
            executor.execute,
        ],
    )

    def respond(lines: list[TrustLineRecord]) -> PipelineOutcome:
        return PipelineOutcome(200, TrustLinesResponse(lines=lines).model_dump())

    return await _run_pipeline(runner, respond)


async def add_trust_line(
    remote: Remote,
    params: Mapping,
    timeout: Optional[float] = None,
) -> PipelineOutcome:
    """Create or modify a trust line.

    Args:
        remote: Ledger remote
        params: Merged path and body parameters
        timeout: Seconds to wait for the transaction to be proposed

    Returns:
        201 with the TransactionResult, or an error outcome
    """
    executor = TrustLineMutationExecutor(remote, timeout=timeout)

    runner = PipelineRunner(
        "add_trust_line",
        [
            _validation_step(validate_mutation_options, params),
            _connection_step(remote),
            executor.execute,
        ],
    )

    def respond(result: TransactionResult) -> PipelineOutcome:
        return PipelineOutcome(201, result.model_dump())

    return await _run_pipeline(runner, respond)
