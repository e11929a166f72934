"""Error taxonomy for the trust line pipelines.

Every error carries the HTTP status code the terminal handler renders it with.
"""

from typing import Optional


class RippleRestError(Exception):
    """Base class for errors reported back to API clients."""

    status_code = 500


class ValidationError(RippleRestError):
    """A request parameter failed validation (client-caused)."""

    status_code = 400

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class InvalidAddress(ValidationError):
    """Parameter is not a syntactically valid ledger address."""

    def __init__(self, field: str):
        super().__init__(field, f"Parameter is not a valid Ripple address: {field}")


class MissingField(ValidationError):
    """Required parameter is absent."""

    def __init__(self, field: str):
        super().__init__(field, f"Parameter missing: {field}")


class InvalidNumber(ValidationError):
    """Parameter should hold a decimal number."""

    def __init__(self, field: str):
        super().__init__(field, f"Parameter is not a number: {field}")


class InvalidCurrency(ValidationError):
    """Parameter is not a three character currency code."""

    def __init__(self, field: str):
        super().__init__(field, f"Parameter is not a valid currency: {field}")


class InvalidType(ValidationError):
    """Optional parameter is present but has the wrong type."""

    def __init__(self, field: str, expected: str):
        self.expected = expected
        super().__init__(field, f"Parameter must be a {expected}: {field}")


class RemoteConnectionError(RippleRestError):
    """The ledger remote cannot be used right now."""


class NotConnectedError(RemoteConnectionError):
    """Raised when the remote reports it is disconnected."""

    def __init__(self, message: str = "Remote is not connected"):
        super().__init__(message)


class RemoteError(RippleRestError):
    """The remote returned an error for a request or transaction."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        super().__init__(message)


class SubmissionError(RippleRestError):
    """The transaction could not be built, so nothing was submitted."""


class TransactionTimeoutError(RippleRestError):
    """No lifecycle event arrived for a submitted transaction in time."""

    status_code = 504
