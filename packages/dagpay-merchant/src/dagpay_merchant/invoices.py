# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .canonical import tokens_for_creation
from .environments import Environment
from .errors import InvalidAmountError
from .nonce import generate_nonce
from .signing import sign

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "DAG"

Amount = Union[str, int, float, Decimal]


class InvoiceCreateRequest(BaseModel):
    """Signed body for ``POST {apiBaseUrl}/invoices``. Frozen: any change would void the signature."""

    model_config = ConfigDict(frozen=True)

    userId: str
    environmentId: str
    currencyAmount: Decimal
    currency: str
    description: str
    data: str
    paymentId: str
    date: str
    nonce: str
    signature: str

    def to_payload(self) -> Dict[str, Any]:
        body = self.model_dump()
        # JSON number, as the gateway re-derives the signed token from it
        body["currencyAmount"] = float(self.currencyAmount)
        return body


class InvoiceStatus(BaseModel):
    """Gateway invoice record, as delivered to the status callback or returned on creation."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    userId: str
    environmentId: str
    coinAmount: Decimal
    currencyAmount: Decimal
    currency: str
    description: str
    data: str
    paymentId: str
    qrCodeUrl: str
    paymentUrl: str
    state: str
    createdDate: str
    updatedDate: str
    expiryDate: str
    validForSeconds: int
    statusDelivered: bool = False
    statusDeliveryAttempts: int
    statusLastAttemptDate: Optional[str] = None
    statusDeliveredDate: Optional[str] = None
    date: str
    nonce: str
    signature: str = Field(repr=False)


class BuiltInvoice(NamedTuple):
    request: InvoiceCreateRequest
    correlation_id: str


def parse_amount(amount: Amount) -> Decimal:
    if isinstance(amount, bool) or not isinstance(amount, (str, int, float, Decimal)):
        raise InvalidAmountError(amount)
    if isinstance(amount, str):
        amount = amount.strip()
    elif isinstance(amount, float):
        amount = repr(amount)
    try:
        value = Decimal(amount)
    except InvalidOperation:
        raise InvalidAmountError(amount)
    if not value.is_finite():
        raise InvalidAmountError(amount)
    if Decimal(repr(float(value))) != value:
        raise InvalidAmountError(amount, "amount has more precision than the gateway accepts")
    return value


def format_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with milliseconds and a ``Z`` suffix (``2018-05-01T12:00:00.000Z``)."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _merchant_data(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class InvoiceRequestBuilder:
    def __init__(
        self,
        environment: Environment,
        *,
        clock: Callable[[], datetime] = _utcnow,
        nonce_factory: Callable[[int], str] = generate_nonce,
    ):
        self.environment = environment
        self.clock = clock
        self.nonce_factory = nonce_factory

    def build(
        self,
        amount: Amount,
        currency: str = DEFAULT_CURRENCY,
        description: str = "",
        merchant_data: Any = None,
        *,
        payment_id: Optional[str] = None,
    ) -> BuiltInvoice:
        """Assemble and sign an invoice-creation request.

        ``date``, ``nonce`` and (unless given) ``paymentId`` are fresh on every
        call, retries included. The returned correlation id is the payment id.
        """
        fields: Dict[str, Any] = {
            "userId": self.environment.user_id,
            "environmentId": self.environment.environment_id,
            "currencyAmount": parse_amount(amount),
            "currency": currency,
            "description": description,
            "data": _merchant_data(merchant_data),
            "paymentId": payment_id or self.nonce_factory(32),
            "date": format_timestamp(self.clock()),
            "nonce": self.nonce_factory(32),
        }
        signature = sign(tokens_for_creation(fields), self.environment.secret)
        request = InvoiceCreateRequest(**fields, signature=signature)
        logger.info(
            "Built invoice request paymentId=%s env=%s amount=%s %s",
            request.paymentId,
            self.environment.name,
            fields["currencyAmount"],
            currency,
        )
        return BuiltInvoice(request, request.paymentId)


def build_invoice_request(
    environment: Environment,
    amount: Amount,
    currency: str = DEFAULT_CURRENCY,
    description: str = "",
    merchant_data: Any = None,
    *,
    payment_id: Optional[str] = None,
) -> BuiltInvoice:
    return InvoiceRequestBuilder(environment).build(
        amount, currency, description, merchant_data, payment_id=payment_id
    )
