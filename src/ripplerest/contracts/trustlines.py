"""Trust line response contracts.

These Pydantic models define what the API returns for trust line queries and
TrustSet submissions.
"""

from pydantic import BaseModel, ConfigDict, Field


class TrustLineRecord(BaseModel):
    """One trust line as seen from the queried account."""

    model_config = ConfigDict(frozen=True)

    account: str = Field(..., description="Queried account")
    counterparty: str = Field(..., description="Peer address on the line")
    currency: str = Field(..., description="Currency code")
    limit: str = Field(..., description="Credit limit this account extends")
    reciprocated_limit: str = Field(..., description="Credit limit the peer extends")
    account_allows_rippling: bool = Field(default=True)
    counterparty_allows_rippling: bool = Field(default=True)


class TrustLinesResponse(BaseModel):
    """Response for a trust line query."""

    success: bool = Field(default=True)
    lines: list[TrustLineRecord] = Field(default_factory=list)


class TrustLine(BaseModel):
    """Trust line as set by a TrustSet transaction."""

    model_config = ConfigDict(frozen=True)

    account: str = Field(..., description="Account that set the line")
    counterparty: str = Field(..., description="Issuer the limit applies to")
    currency: str = Field(..., description="Currency code")
    value: str = Field(..., description="Limit amount")
    allows_rippling: bool = Field(default=True)
    authorized: bool = Field(default=False)


class TransactionResult(BaseModel):
    """Response for a submitted TrustSet transaction."""

    model_config = ConfigDict(frozen=True)

    success: bool = Field(default=True)
    line: TrustLine
    ledger_index: str = Field(..., description="Ledger sequence at submission")
    transaction_hash: str = Field(..., description="Transaction identifier")


class ErrorResponse(BaseModel):
    """Error body for failed requests."""

    success: bool = Field(default=False)
    message: str
