#!/usr/bin/env python3
# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""
Standalone runner for the Dagpay merchant server.

Env:
  - SERVER_PORT (default: 3000)
  - SERVER_HOST (default: 0.0.0.0)
  - SERVER_USE_SSL=true with SERVER_CERT / SERVER_KEY for HTTPS
  - DAGPAY_API_BASE_URL, DAGPAY_USER_ID, DAGPAY_ENVIRONMENT_ID, DAGPAY_SECRET
    (or DAGPAY_ENVIRONMENTS=live,test with DAGPAY_<NAME>_* per environment)
  - LOG_LEVEL (default: INFO)
"""

import logging
import os

# Load .env BEFORE building the app so the registry sees DAGPAY_* vars
from dotenv import load_dotenv  # type: ignore
load_dotenv()

from fastapi import FastAPI

from dagpay_merchant import setup_otel_from_env
from dagpay_server import get_registry, router


logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("dagpay_merchant_server")


def _truthy(value: str) -> bool:
    return value.lower() in {"1", "true", "yes"}


def build_app() -> FastAPI:
    app = FastAPI(
        title="Dagpay Merchant Server",
        description="Signed Dagpay invoice creation and status callback verification",
        version="0.1.0",
    )

    # Fail fast on missing credentials instead of on the first request
    registry = get_registry()

    if os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"):
        setup_otel_from_env(registry)

    app.include_router(router)

    logger.info(f"Merchant server initialized (environments: {', '.join(registry.names())})")
    return app


app = build_app()


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("SERVER_HOST", "0.0.0.0")
    port = int(os.getenv("SERVER_PORT", "3000"))
    ssl_kwargs = {}
    if _truthy(os.getenv("SERVER_USE_SSL", "false")):
        ssl_kwargs = {"ssl_certfile": os.getenv("SERVER_CERT"), "ssl_keyfile": os.getenv("SERVER_KEY")}
    uvicorn.run("run_merchant_server:app", host=host, port=port, log_level="info", **ssl_kwargs)
