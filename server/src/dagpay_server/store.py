# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import threading
from typing import Any, Dict, Mapping, Optional, Protocol


class InvoiceStore(Protocol):
    def get(self, invoice_id: str) -> Optional[Dict[str, Any]]: ...

    def upsert(self, record: Mapping[str, Any]) -> None: ...


class InMemoryInvoiceStore:
    """Process-local invoice records keyed by gateway invoice id. Not durable."""

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, invoice_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._records.get(invoice_id)
            return dict(record) if record is not None else None

    def upsert(self, record: Mapping[str, Any]) -> None:
        invoice_id = record.get("id")
        if not invoice_id:
            raise ValueError("invoice record has no id")
        with self._lock:
            merged = dict(self._records.get(str(invoice_id), {}))
            merged.update(record)
            self._records[str(invoice_id)] = merged

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
