# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from opentelemetry import trace
from opentelemetry.propagate import inject

from .environments import Environment
from .errors import RemoteInvoiceCreationError
from .invoices import InvoiceCreateRequest

logger = logging.getLogger(__name__)


def _body(r: httpx.Response) -> Any:
    try:
        return r.json()
    except ValueError:
        return r.text


class DagpayClient:
    """Thin async client for the Dagpay REST API. No retries; callers own that policy."""

    def __init__(
        self,
        environment: Environment,
        *,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.environment = environment
        self.invoices_url = environment.invoices_url
        self.http = httpx.AsyncClient(timeout=timeout, transport=transport)
        self.tracer = trace.get_tracer("dagpay_merchant.client")

    async def __aenter__(self) -> "DagpayClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    async def create_invoice(self, request: InvoiceCreateRequest) -> Dict[str, Any]:
        """POST the signed request and return the created invoice (the response ``payload``)."""
        with self.tracer.start_as_current_span("dagpay.create_invoice") as span:
            span.set_attribute("dagpay.environment", self.environment.name)
            span.set_attribute("dagpay.payment_id", request.paymentId)
            headers: Dict[str, str] = {}
            inject(headers)
            try:
                r = await self.http.post(self.invoices_url, json=request.to_payload(), headers=headers)
            except httpx.HTTPError as e:
                logger.error("Invoice creation transport error paymentId=%s: %s", request.paymentId, e)
                raise RemoteInvoiceCreationError(None, str(e), f"invoice creation request failed: {e}") from e

            span.set_attribute("http.status_code", r.status_code)
            if r.is_error:
                body = _body(r)
                logger.error(
                    "Gateway rejected invoice paymentId=%s status=%s body=%r",
                    request.paymentId,
                    r.status_code,
                    body,
                )
                raise RemoteInvoiceCreationError(r.status_code, body)

            body = _body(r)
            invoice = body.get("payload") if isinstance(body, dict) else None
            if not isinstance(invoice, dict):
                raise RemoteInvoiceCreationError(r.status_code, body, "gateway response missing invoice payload")
            logger.info("Created invoice id=%s paymentId=%s", invoice.get("id"), request.paymentId)
            return invoice
