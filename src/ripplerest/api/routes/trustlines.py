"""Trust line endpoints.

GET  /v1/accounts/{account}/trustlines - list trust lines
POST /v1/accounts/{account}/trustlines - create or modify a trust line

Request bodies may carry the account secret, so they are never logged.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ripplerest.config import Settings, get_settings
from ripplerest.contracts.trustlines import ErrorResponse, TransactionResult, TrustLinesResponse
from ripplerest.pipeline import PipelineOutcome
from ripplerest.remote.base import Remote
from ripplerest.remote.factory import get_remote
from ripplerest.services.trustlines import add_trust_line, get_trust_lines

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["trustlines"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


class InvalidBodyError(ValueError):
    """Request body is not a JSON object."""


async def _read_json_body(request: Request) -> dict:
    raw = await request.body()
    if not raw:
        return {}

    try:
        body = json.loads(raw)
    except ValueError:
        raise InvalidBodyError("Request body is not valid JSON") from None

    if not isinstance(body, dict):
        raise InvalidBodyError("Request body must be a JSON object")
    return body


def _render(outcome: PipelineOutcome) -> JSONResponse:
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)


@router.get(
    "/accounts/{account}/trustlines",
    response_model=TrustLinesResponse,
    responses=ERROR_RESPONSES,
)
async def list_trust_lines(
    account: str,
    request: Request,
    remote: Remote = Depends(get_remote),
) -> JSONResponse:
    """List an account's trust lines.

    Query parameters: counterparty, currency, limit. A `limit` in the JSON
    body is used when the query string has none.
    """
    params: dict = dict(request.query_params)
    params["account"] = account

    if not params.get("limit"):
        try:
            body = await _read_json_body(request)
        except InvalidBodyError as e:
            return _render(PipelineOutcome.failure(400, str(e)))
        if body.get("limit") is not None:
            params["limit"] = body["limit"]

    return _render(await get_trust_lines(remote, params))


@router.post(
    "/accounts/{account}/trustlines",
    status_code=201,
    response_model=TransactionResult,
    responses=ERROR_RESPONSES,
)
async def create_trust_line(
    account: str,
    request: Request,
    remote: Remote = Depends(get_remote),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Create or modify a trust line.

    Body fields: secret, limit ("value/currency/counterparty" or an object),
    quality_in, quality_out, allow_rippling.
    """
    try:
        body = await _read_json_body(request)
    except InvalidBodyError as e:
        return _render(PipelineOutcome.failure(400, str(e)))

    params = dict(body)
    params["account"] = account

    outcome = await add_trust_line(remote, params, timeout=settings.submission_timeout)
    return _render(outcome)
