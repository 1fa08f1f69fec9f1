# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Canonical token sequences for Dagpay signatures.

Field order is part of the wire protocol: the merchant and the gateway must
produce exactly the same sequence, or the HMAC silently stops matching.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Tuple

from .errors import MissingFieldError

CREATION_FIELDS: Tuple[str, ...] = (
    "currencyAmount",
    "currency",
    "description",
    "data",
    "userId",
    "paymentId",
    "date",
    "nonce",
)

STATUS_FIELDS: Tuple[str, ...] = (
    "id",
    "userId",
    "environmentId",
    "coinAmount",
    "currencyAmount",
    "currency",
    "description",
    "data",
    "paymentId",
    "qrCodeUrl",
    "paymentUrl",
    "state",
    "createdDate",
    "updatedDate",
    "expiryDate",
    "validForSeconds",
    "statusDelivered",
    "statusDeliveryAttempts",
    "statusLastAttemptDate",
    "statusDeliveredDate",
    "date",
    "nonce",
)

# Serialized as "" when absent or null.
OPTIONAL_STATUS_FIELDS = frozenset({"statusLastAttemptDate", "statusDeliveredDate"})

# Always "true" or "false", decided by truthiness; absent or null is "false".
FLAG_STATUS_FIELDS = frozenset({"statusDelivered"})

_MISSING = object()


def _lookup(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, _MISSING)
    return getattr(record, name, _MISSING)


def format_number(value: Decimal) -> str:
    """Render a number the way the gateway's JSON layer does (JavaScript ``Number#toString``).

    Shortest digits, no trailing zeros, positional notation for exponents in
    (-7, 21), ``d.ddde+x`` outside that range.
    """
    if value.is_nan():
        return "NaN"
    if value.is_infinite():
        return "-Infinity" if value.is_signed() else "Infinity"
    if value.is_zero():
        return "0"
    sign, digit_tuple, exp = value.normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = k + exp
    if k <= n <= 21:
        out = digits + "0" * (n - k)
    elif 0 < n <= 21:
        out = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        out = "0." + "0" * (-n) + digits
    else:
        e = n - 1
        mantissa = digits[0] + (f".{digits[1:]}" if k > 1 else "")
        out = f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
    return ("-" if sign else "") + out


def to_token(name: str, value: Any) -> str:
    if isinstance(value, str):
        return value
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format_number(Decimal(repr(value)))
    if isinstance(value, Decimal):
        return format_number(value)
    raise TypeError(f"field {name!r} has unsupported type {type(value).__name__}")


def is_truthy(value: Any) -> bool:
    """Truthiness as the gateway evaluates it (JavaScript): only false, 0, NaN, "" and null are false."""
    if value is _MISSING or value is None or value is False:
        return False
    if isinstance(value, (int, float, Decimal)):
        return value == value and value != 0
    if isinstance(value, str):
        return value != ""
    return True


def canonical_tokens(
    record: Any,
    fields: Iterable[str],
    optional: Iterable[str] = (),
    flags: Iterable[str] = (),
) -> List[str]:
    optional = frozenset(optional)
    flags = frozenset(flags)
    tokens: List[str] = []
    for name in fields:
        value = _lookup(record, name)
        if name in flags:
            tokens.append("true" if is_truthy(value) else "false")
            continue
        if value is _MISSING or value is None:
            if name in optional:
                tokens.append("")
                continue
            raise MissingFieldError(name)
        tokens.append(to_token(name, value))
    return tokens


def tokens_for_creation(record: Any) -> List[str]:
    return canonical_tokens(record, CREATION_FIELDS)


def tokens_for_status(record: Any) -> List[str]:
    return canonical_tokens(record, STATUS_FIELDS, OPTIONAL_STATUS_FIELDS, FLAG_STATUS_FIELDS)
