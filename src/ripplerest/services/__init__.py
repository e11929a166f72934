"""Services for ripplerest."""

from ripplerest.services.trustlines import (
    TrustLineMutationExecutor,
    TrustLineQueryExecutor,
    add_trust_line,
    get_trust_lines,
)

__all__ = [
    "TrustLineMutationExecutor",
    "TrustLineQueryExecutor",
    "add_trust_line",
    "get_trust_lines",
]
