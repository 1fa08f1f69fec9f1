# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from .callbacks import Accepted, CallbackVerifier, Rejected, verify_callback
from .canonical import CREATION_FIELDS, STATUS_FIELDS, tokens_for_creation, tokens_for_status
from .client import DagpayClient
from .environments import Environment, EnvironmentRegistry, single_secret
from .errors import (
    CallbackRejection,
    ConfigurationError,
    DagpayError,
    InvalidAmountError,
    MalformedCallback,
    MissingFieldError,
    RemoteInvoiceCreationError,
    SignatureMismatch,
    UnknownEnvironment,
)
from .invoices import (
    BuiltInvoice,
    InvoiceCreateRequest,
    InvoiceRequestBuilder,
    InvoiceStatus,
    build_invoice_request,
)
from .nonce import generate_nonce
from .otel import merchant_resource_attributes, setup_otel_from_env
from .signing import SEPARATOR, sign, sign_creation, sign_status, verify

__all__ = [
    "CREATION_FIELDS",
    "STATUS_FIELDS",
    "tokens_for_creation",
    "tokens_for_status",
    "generate_nonce",
    "SEPARATOR",
    "sign",
    "verify",
    "sign_creation",
    "sign_status",
    "Environment",
    "EnvironmentRegistry",
    "single_secret",
    "InvoiceCreateRequest",
    "InvoiceStatus",
    "InvoiceRequestBuilder",
    "BuiltInvoice",
    "build_invoice_request",
    "CallbackVerifier",
    "Accepted",
    "Rejected",
    "verify_callback",
    "DagpayClient",
    "merchant_resource_attributes",
    "setup_otel_from_env",
    "DagpayError",
    "ConfigurationError",
    "MissingFieldError",
    "InvalidAmountError",
    "RemoteInvoiceCreationError",
    "CallbackRejection",
    "SignatureMismatch",
    "UnknownEnvironment",
    "MalformedCallback",
]
