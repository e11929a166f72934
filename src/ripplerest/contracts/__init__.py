"""Response contracts for the API."""

from ripplerest.contracts.trustlines import (
    ErrorResponse,
    TransactionResult,
    TrustLine,
    TrustLineRecord,
    TrustLinesResponse,
)

__all__ = [
    "ErrorResponse",
    "TransactionResult",
    "TrustLine",
    "TrustLineRecord",
    "TrustLinesResponse",
]
