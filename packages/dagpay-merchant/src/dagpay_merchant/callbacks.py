# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Verification of gateway-signed invoice status callbacks.

The callback endpoint is reachable by anyone. Nothing in the payload is trusted
(``id``, ``state``, ``environmentId`` included) until the signature recomputed
over the canonical status tokens matches the one supplied.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from .canonical import tokens_for_status
from .environments import SecretLookup
from .errors import (
    CallbackRejection,
    MalformedCallback,
    MissingFieldError,
    SignatureMismatch,
    UnknownEnvironment,
)
from .invoices import InvoiceStatus
from .signing import sign, verify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Accepted:
    record: InvoiceStatus
    raw: Dict[str, Any]
    ok: bool = True


@dataclass(frozen=True)
class Rejected:
    reason: CallbackRejection
    ok: bool = False

    @property
    def code(self) -> str:
        return self.reason.code


VerificationResult = Union[Accepted, Rejected]


class CallbackVerifier:
    def verify(self, payload: Any, secret_lookup: SecretLookup) -> VerificationResult:
        if not isinstance(payload, dict):
            return self._reject(MalformedCallback("callback body must be a JSON object"), payload)

        provided = payload.get("signature")
        try:
            secret = secret_lookup(payload)
        except UnknownEnvironment as e:
            return self._reject(e, payload, provided)

        try:
            tokens = tokens_for_status(payload)
        except (MissingFieldError, TypeError) as e:
            return self._reject(MalformedCallback(str(e)), payload, provided)

        if not verify(tokens, secret, provided):
            expected = sign(tokens, secret)
            return self._reject(SignatureMismatch("invalid signature provided"), payload, provided, expected)

        # A verified record is accepted even when it does not fit InvoiceStatus.
        try:
            record = InvoiceStatus.model_validate(payload)
        except ValidationError as e:
            logger.warning(
                "Verified status callback id=%s does not match InvoiceStatus, keeping raw values: %s",
                payload.get("id"),
                e,
            )
            record = InvoiceStatus.model_construct(**payload)

        logger.info("Verified status callback id=%s state=%s", record.id, record.state)
        return Accepted(record=record, raw=payload)

    @staticmethod
    def _reject(
        reason: CallbackRejection,
        payload: Any,
        provided: Any = None,
        expected: Optional[str] = None,
    ) -> Rejected:
        # Audit trail: whole payload and both signatures, never a per-field diff.
        logger.warning(
            "Rejected status callback code=%s reason=%s payload=%r provided_signature=%r expected_signature=%r",
            reason.code,
            reason,
            payload,
            provided,
            expected,
        )
        return Rejected(reason)


def verify_callback(payload: Any, secret_lookup: SecretLookup) -> VerificationResult:
    return CallbackVerifier().verify(payload, secret_lookup)
