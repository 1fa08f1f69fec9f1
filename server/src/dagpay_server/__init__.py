# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Dagpay merchant server

Provides a FastAPI router that creates signed Dagpay invoices (/buy) and
accepts gateway-signed status callbacks (/status).

Usage:
    from dagpay_server import router

    app = FastAPI()
    app.include_router(router)
"""

from .routes import (
    BuyRequest,
    ServerRuntimeConfig,
    get_client_factory,
    get_invoice_store,
    get_registry,
    get_server_cfg,
    router,
)
from .store import InMemoryInvoiceStore, InvoiceStore

__version__ = "0.1.0"

__all__ = [
    "router",
    "BuyRequest",
    "ServerRuntimeConfig",
    "get_server_cfg",
    "get_registry",
    "get_invoice_store",
    "get_client_factory",
    "InvoiceStore",
    "InMemoryInvoiceStore",
]
