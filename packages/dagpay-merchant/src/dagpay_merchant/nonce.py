# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import secrets

DEFAULT_NONCE_LENGTH = 32


def generate_nonce(length: int = DEFAULT_NONCE_LENGTH) -> str:
    """Return ``length`` uppercase hex characters from the OS CSPRNG.

    Odd lengths drop the low nibble of the last byte; every nibble of a uniform
    byte is itself uniform, so the output stays unbiased.
    """
    if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
        raise ValueError(f"nonce length must be a positive integer, got {length!r}")
    return secrets.token_hex((length + 1) // 2)[:length].upper()
