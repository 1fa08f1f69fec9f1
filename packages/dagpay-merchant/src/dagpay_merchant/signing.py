# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import hashlib
import hmac
from typing import Any, Iterable

from .canonical import tokens_for_creation, tokens_for_status

# Not escaped inside tokens; both sides join the same way.
SEPARATOR = ":"


def sign(tokens: Iterable[str], secret: str) -> str:
    """HMAC-SHA512 over ``SEPARATOR``-joined tokens, as lowercase hex."""
    if not secret:
        raise ValueError("signing secret is required")
    payload = SEPARATOR.join(tokens)
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha512).hexdigest()


def verify(tokens: Iterable[str], secret: str, provided_signature: Any) -> bool:
    if not isinstance(provided_signature, str) or not provided_signature:
        return False
    expected = sign(tokens, secret)
    return hmac.compare_digest(expected.encode("utf-8"), provided_signature.encode("utf-8"))


def sign_creation(record: Any, secret: str) -> str:
    return sign(tokens_for_creation(record), secret)


def sign_status(record: Any, secret: str) -> str:
    return sign(tokens_for_status(record), secret)
