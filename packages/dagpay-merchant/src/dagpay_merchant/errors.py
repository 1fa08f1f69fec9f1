# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from typing import Any, Optional


class DagpayError(Exception):
    pass


class ConfigurationError(DagpayError, ValueError):
    pass


class MissingFieldError(DagpayError, KeyError):
    """A required field is absent (or null) in a record being canonicalized."""

    def __init__(self, field: str):
        super().__init__(field)
        self.field = field

    def __str__(self) -> str:
        return f"missing required field: {self.field}"


class InvalidAmountError(DagpayError, ValueError):
    def __init__(self, value: Any, reason: str = "amount must be a finite decimal"):
        super().__init__(f"{reason}: {value!r}")
        self.value = value


class RemoteInvoiceCreationError(DagpayError):
    """The gateway refused (or never answered) an invoice-creation call.

    ``status_code`` is None when no HTTP response was received. ``body`` is the
    remote response body as returned, parsed JSON when possible.
    """

    def __init__(self, status_code: Optional[int], body: Any, message: Optional[str] = None):
        super().__init__(message or f"invoice creation rejected by gateway (status={status_code})")
        self.status_code = status_code
        self.body = body


class CallbackRejection(DagpayError):
    code = "CALLBACK_REJECTED"


class SignatureMismatch(CallbackRejection):
    code = "SIGNATURE_MISMATCH"


class UnknownEnvironment(CallbackRejection, KeyError):
    code = "UNKNOWN_ENVIRONMENT"

    def __str__(self) -> str:
        return Exception.__str__(self)


class MalformedCallback(CallbackRejection):
    code = "MALFORMED_CALLBACK"
