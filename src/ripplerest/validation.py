"""Request validation for the trust line pipelines.

Validators are pure: they take the merged request parameters and either return
a validated options object or raise the first ValidationError encountered.
Checks run in a fixed order so the reported error is deterministic.
"""

import re
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from xrpl.core.addresscodec import is_valid_classic_address

from ripplerest.errors import (
    InvalidAddress,
    InvalidCurrency,
    InvalidNumber,
    InvalidType,
    MissingField,
)
from ripplerest.models import TrustLimit, TrustLineMutationOptions, TrustLineQueryOptions

CURRENCY_RE = re.compile(r"^[A-Z0-9]{3}$")


def is_valid_address(address: Any) -> bool:
    """Check ledger address syntax (classic base58 address with checksum)."""
    return isinstance(address, str) and is_valid_classic_address(address)


def is_valid_currency(currency: Any) -> bool:
    """Check for a three character currency code."""
    return isinstance(currency, str) and CURRENCY_RE.match(currency) is not None


def is_number(value: Any) -> bool:
    """True for ints and floats, excluding bools."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_numeric(value: Any) -> bool:
    """True for finite numbers and strings holding a finite decimal."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return Decimal(value).is_finite()
    if isinstance(value, str):
        try:
            return Decimal(value.strip()).is_finite()
        except InvalidOperation:
            return False
    return False


def validate_query_options(params: Mapping) -> TrustLineQueryOptions:
    """Validate options for listing trust lines.

    Args:
        params: Merged path, query and body parameters

    Returns:
        Validated options with the currency uppercased

    Raises:
        InvalidAddress: account or counterparty is not a valid address
        InvalidCurrency: currency is not a three character code
    """
    account = params.get("account")
    if not is_valid_address(account):
        raise InvalidAddress("account")

    counterparty = params.get("counterparty") or None
    if counterparty is not None and not is_valid_address(counterparty):
        raise InvalidAddress("counterparty")

    currency = params.get("currency") or None
    if currency is not None:
        currency = str(currency).upper()
        if not is_valid_currency(currency):
            raise InvalidCurrency("currency")

    return TrustLineQueryOptions(
        account=account,
        counterparty=counterparty,
        currency=currency,
        limit=params.get("limit"),
    )


def validate_mutation_options(params: Mapping) -> TrustLineMutationOptions:
    """Validate options for creating or modifying a trust line.

    `limit` may be a mapping with value/currency/counterparty or a string in
    the form "value/currency/counterparty".

    Raises:
        InvalidAddress: account or limit.counterparty is invalid
        MissingField: secret or limit is missing
        InvalidNumber: limit.value is not numeric
        InvalidCurrency: limit.currency is not a three character code
        InvalidType: quality_in, quality_out or allow_rippling has the wrong type
    """
    account = params.get("account")
    if not is_valid_address(account):
        raise InvalidAddress("account")

    secret = params.get("secret")
    if not secret:
        raise MissingField("secret")

    limit = params.get("limit")
    if isinstance(limit, str):
        parts = limit.split("/")
        parts += [None] * (3 - len(parts))
        limit = {"value": parts[0], "currency": parts[1], "counterparty": parts[2]}

    if not isinstance(limit, Mapping):
        raise MissingField("limit")

    value = limit.get("value")
    if not _is_numeric(value):
        raise InvalidNumber("limit.value")

    currency = limit.get("currency")
    if not is_valid_currency(currency):
        raise InvalidCurrency("limit.currency")

    counterparty = limit.get("counterparty")
    if not is_valid_address(counterparty):
        raise InvalidAddress("limit.counterparty")

    quality_in = params.get("quality_in")
    if quality_in is not None and not is_number(quality_in):
        raise InvalidType("quality_in", "number")

    quality_out = params.get("quality_out")
    if quality_out is not None and not is_number(quality_out):
        raise InvalidType("quality_out", "number")

    allow_rippling = params.get("allow_rippling")
    if allow_rippling is not None and not isinstance(allow_rippling, bool):
        raise InvalidType("allow_rippling", "boolean")

    return TrustLineMutationOptions(
        account=account,
        secret=secret,
        limit=TrustLimit(
            value=str(value).strip(),
            currency=currency,
            counterparty=counterparty,
        ),
        quality_in=quality_in,
        quality_out=quality_out,
        allow_rippling=allow_rippling,
    )
