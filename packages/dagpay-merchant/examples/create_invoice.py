# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Create a single Dagpay invoice from the command line and print its payment URL."""

import asyncio
import os
import sys

from dotenv import load_dotenv
from dagpay_merchant import (
    DagpayClient,
    EnvironmentRegistry,
    InvalidAmountError,
    InvoiceRequestBuilder,
    RemoteInvoiceCreationError,
    setup_otel_from_env,
)

load_dotenv()


async def main() -> int:
    registry = EnvironmentRegistry.from_env()
    setup_otel_from_env(registry, use_console=bool(os.getenv("OTEL_CONSOLE_EXPORTER")))
    env = registry.get(os.getenv("DAGPAY_DEFAULT_ENVIRONMENT") or registry.names()[0])

    try:
        built = InvoiceRequestBuilder(env).build(
            os.getenv("AMOUNT", "0.1"),
            "DAG",
            os.getenv("DESCRIPTION", "iPhone X"),
            {"sessionId": "cli"},
        )
    except InvalidAmountError as e:
        print(f"❌ {e}")
        return 2

    async with DagpayClient(env) as client:
        try:
            invoice = await client.create_invoice(built.request)
        except RemoteInvoiceCreationError as e:
            print(f"❌ Gateway rejected invoice (status {e.status_code}): {e.body}")
            return 1

    print(f"✅ Invoice {invoice.get('id')} created for paymentId {built.correlation_id}")
    print(invoice.get("paymentUrl"))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
