# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Tracing setup for merchant processes.

Spans from ``DagpayClient`` carry the environment they were sent to; the
resource set up here lists every Dagpay environment the process serves.
"""
from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional

from .environments import EnvironmentRegistry

DEFAULT_SERVICE_NAME = "dagpay-merchant"


def merchant_resource_attributes(
    registry: Optional[EnvironmentRegistry] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """OpenTelemetry resource attributes for a merchant serving ``registry``.

    ``OTEL_SERVICE_NAME`` wins; otherwise a single-environment process is named
    ``dagpay-merchant-<env>`` and a multi-environment one ``dagpay-merchant``.
    """
    environ = os.environ if environ is None else environ
    names = registry.names() if registry is not None else []

    service_name = environ.get("OTEL_SERVICE_NAME") or (
        f"{DEFAULT_SERVICE_NAME}-{names[0]}" if len(names) == 1 else DEFAULT_SERVICE_NAME
    )
    attributes = {"service.name": service_name, "service.namespace": "dagpay"}
    if names:
        attributes["deployment.environment"] = ",".join(names)
        attributes["dagpay.environment_ids"] = ",".join(registry.get(n).environment_id for n in names)
    return attributes


def setup_otel_from_env(
    registry: Optional[EnvironmentRegistry] = None,
    *,
    use_console: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> Any:
    """Install an SDK tracer provider for this merchant and return it.

    Env vars:
    - OTEL_EXPORTER_OTLP_ENDPOINT (OTLP/HTTP export only when set)
    - OTEL_SERVICE_NAME (overrides the environment-derived name)
    - OTEL_CONSOLE_EXPORTER=1 to also print spans to stdout
    """
    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
    except ImportError as e:  # pragma: no cover - import error path
        raise RuntimeError(
            "OpenTelemetry SDK/exporter not installed. Install extras: pip install dagpay-merchant[otel]"
        ) from e

    environ = os.environ if environ is None else environ
    provider = TracerProvider(resource=Resource.create(merchant_resource_attributes(registry, environ)))

    endpoint = environ.get("OTEL_EXPORTER_OTLP_ENDPOINT")
    if endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    if use_console or environ.get("OTEL_CONSOLE_EXPORTER", "0").lower() in {"1", "true", "yes"}:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    return provider
