"""Public package API for invoice layout, PDF export and the invoice server."""

from __future__ import annotations

from typing import Any

from .layout import Document, layout_invoice
from .models import Company, Invoice, LineItem, invoice_total


def build_invoice_pdf(company: Any, invoice: Any, total: Any = None):
    from .rendering import build_invoice_pdf as _build_invoice_pdf

    return _build_invoice_pdf(company, invoice, total)


def run(host: str = "0.0.0.0", port: int = 8080, db_path: str = "invoices.db") -> None:
    from .server import run as _run

    _run(host, port, db_path)


__all__ = [
    "Company",
    "Document",
    "Invoice",
    "LineItem",
    "build_invoice_pdf",
    "invoice_total",
    "layout_invoice",
    "run",
]
