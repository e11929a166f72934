"""Validated request options for the trust line pipelines."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class TrustLineQueryOptions:
    """Options for listing an account's trust lines."""

    account: str
    counterparty: Optional[str] = None
    currency: Optional[str] = None  # Uppercased; None matches any
    limit: Optional[Any] = None  # Pagination hint for the remote


@dataclass(frozen=True)
class TrustLimit:
    """Structured trust limit."""

    value: str
    currency: str
    counterparty: str

    def to_spec(self) -> str:
        """Render as "value/currency/counterparty"."""
        return "/".join([self.value, self.currency, self.counterparty])


@dataclass(frozen=True)
class TrustLineMutationOptions:
    """Options for creating or modifying a trust line."""

    account: str
    secret: str = field(repr=False)
    limit: TrustLimit
    quality_in: Optional[float] = None
    quality_out: Optional[float] = None
    allow_rippling: Optional[bool] = None
