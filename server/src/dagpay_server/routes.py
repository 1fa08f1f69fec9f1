# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Union

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, Field

from dagpay_merchant import (
    CallbackVerifier,
    DagpayClient,
    Environment,
    EnvironmentRegistry,
    InvalidAmountError,
    InvoiceRequestBuilder,
    MissingFieldError,
    RemoteInvoiceCreationError,
    UnknownEnvironment,
)
from dagpay_merchant.environments import SecretLookup

from .store import InMemoryInvoiceStore, InvoiceStore

logger = logging.getLogger(__name__)


# -------------------------------
# Models
# -------------------------------


class BuyRequest(BaseModel):
    currencyAmount: Union[str, int, float]
    description: str = ""
    environment: Optional[str] = Field(None, description="Registered environment name; defaults to the server's")
    currency: Optional[str] = None
    data: Optional[Union[str, Dict[str, Any]]] = Field(None, description="Merchant-opaque data echoed in callbacks")
    paymentId: Optional[str] = None


class ServerRuntimeConfig(BaseModel):
    default_environment: Optional[str] = Field(
        default_factory=lambda: os.getenv("DAGPAY_DEFAULT_ENVIRONMENT") or None
    )
    currency: str = Field(default_factory=lambda: os.getenv("DAGPAY_CURRENCY", "DAG"))
    timeout_s: float = Field(default_factory=lambda: float(os.getenv("DAGPAY_TIMEOUT_S", "15")))
    # "environment_id" routes callbacks on the signed environmentId field,
    # "data" on an environment name embedded in the merchant data JSON.
    callback_routing: str = Field(default_factory=lambda: os.getenv("DAGPAY_CALLBACK_ROUTING", "environment_id"))
    callback_data_key: str = Field(default_factory=lambda: os.getenv("DAGPAY_CALLBACK_DATA_KEY", "environment"))


# -------------------------------
# Dependencies
# -------------------------------


def get_server_cfg() -> ServerRuntimeConfig:
    return ServerRuntimeConfig()


@lru_cache(maxsize=1)
def get_registry() -> EnvironmentRegistry:
    return EnvironmentRegistry.from_env()


@lru_cache(maxsize=1)
def get_invoice_store() -> InvoiceStore:
    return InMemoryInvoiceStore()


ClientFactory = Callable[[Environment], DagpayClient]


def get_client_factory(cfg: ServerRuntimeConfig = Depends(get_server_cfg)) -> ClientFactory:
    def factory(env: Environment) -> DagpayClient:
        return DagpayClient(env, timeout=cfg.timeout_s)

    return factory


def _secret_lookup(registry: EnvironmentRegistry, cfg: ServerRuntimeConfig) -> SecretLookup:
    if cfg.callback_routing == "data":
        return registry.lookup_by_data_field(cfg.callback_data_key)
    return registry.lookup_by_environment_id


def _with_routing_key(data: Union[str, Dict[str, Any], None], key: str, env_name: str) -> Dict[str, Any]:
    """Merchant data with the environment name under ``key``, for data-routed callbacks."""
    if data is None or data == "":
        merged: Dict[str, Any] = {}
    elif isinstance(data, dict):
        merged = dict(data)
    else:
        try:
            merged = json.loads(data)
        except ValueError:
            merged = None
        if not isinstance(merged, dict):
            raise ValueError("data must be a JSON object when callbacks are routed on data")
    merged[key] = env_name
    return merged


def _error_response(status_code: int, code: str, message: str, req_id: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}, "request_id": req_id, **extra},
    )


# -------------------------------
# Router
# -------------------------------

router = APIRouter(tags=["dagpay-merchant"])


@router.get("/health")
async def health(registry: EnvironmentRegistry = Depends(get_registry)) -> Dict[str, Any]:
    return {
        "status": "ok",
        "time": datetime.now(timezone.utc).isoformat(),
        "environments": registry.names(),
    }


@router.post("/buy")
async def buy(
    body: BuyRequest,
    cfg: ServerRuntimeConfig = Depends(get_server_cfg),
    registry: EnvironmentRegistry = Depends(get_registry),
    store: InvoiceStore = Depends(get_invoice_store),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    req_id = str(uuid.uuid4())
    try:
        env = registry.get(body.environment or cfg.default_environment or registry.names()[0])
    except UnknownEnvironment as e:
        logger.warning(f"[{req_id}] /buy rejected: {e}")
        return _error_response(422, e.code, str(e), req_id)

    data = body.data
    if cfg.callback_routing == "data":
        try:
            data = _with_routing_key(data, cfg.callback_data_key, env.name)
        except ValueError as e:
            return _error_response(422, "INVALID_DATA", str(e), req_id)

    try:
        built = InvoiceRequestBuilder(env).build(
            body.currencyAmount,
            body.currency or cfg.currency,
            body.description,
            data,
            payment_id=body.paymentId,
        )
    except InvalidAmountError as e:
        logger.info(f"[{req_id}] /buy invalid amount: {e}")
        return _error_response(422, "INVALID_AMOUNT", str(e), req_id)
    except MissingFieldError as e:
        return _error_response(422, "MISSING_FIELD", str(e), req_id)

    try:
        async with client_factory(env) as client:
            invoice = await client.create_invoice(built.request)
    except RemoteInvoiceCreationError as e:
        logger.error(f"[{req_id}] Gateway rejected paymentId={built.correlation_id}: status={e.status_code}")
        return _error_response(502, "REMOTE_REJECTED", str(e), req_id, status=e.status_code, data=e.body)

    payment_url = invoice.get("paymentUrl")
    if not payment_url:
        return _error_response(502, "REMOTE_INVALID_RESPONSE", "invoice has no paymentUrl", req_id, data=invoice)
    if invoice.get("id"):
        store.upsert(invoice)
    logger.info(f"[{req_id}] Redirecting paymentId={built.correlation_id} to {payment_url}")
    return RedirectResponse(payment_url, status_code=303)


@router.post("/status")
async def status_callback(
    request: Request,
    cfg: ServerRuntimeConfig = Depends(get_server_cfg),
    registry: EnvironmentRegistry = Depends(get_registry),
    store: InvoiceStore = Depends(get_invoice_store),
):
    req_id = str(uuid.uuid4())
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    result = CallbackVerifier().verify(payload, _secret_lookup(registry, cfg))
    if not result.ok:
        # Non-2xx so the gateway's delivery retries kick in.
        return _error_response(500, result.code, str(result.reason), req_id)

    store.upsert(dict(result.raw))
    logger.info(f"[{req_id}] Stored status id={result.record.id} state={result.record.state}")
    return {"status": "ok"}
