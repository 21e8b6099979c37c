"""Action dispatch for the invoice JSON API."""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .formatting import parse_number
from .storage import InvoiceStore

logger = logging.getLogger(__name__)

Response = Tuple[int, Any]


class ApiError(Exception):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    def payload(self) -> Dict[str, str]:
        return {"error": self.message}


def parse_json_body(body: Optional[bytes]) -> Dict[str, Any]:
    if not body:
        raise ApiError(400, "Request body cannot be empty.")
    try:
        payload = json.loads(body.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ApiError(400, "Body must be UTF-8 encoded JSON.") from exc
    except json.JSONDecodeError as exc:
        raise ApiError(400, f"Invalid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})") from exc

    if not isinstance(payload, dict):
        raise ApiError(400, "JSON root must be an object.")
    return payload


def require_id(params: Mapping[str, Any]) -> int:
    raw = params.get("id")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ApiError(404, "Not found") from None


def validate_company(data: Mapping[str, Any]) -> None:
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ApiError(400, "Company name is required.")


def validate_invoice(data: Mapping[str, Any]) -> None:
    for field, label in (("number", "Invoice number"), ("date", "Invoice date")):
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            raise ApiError(400, f"{label} is required.")
    items = data.get("items")
    if items is not None and not isinstance(items, list):
        raise ApiError(400, "'items' must be an array.")


def invoice_render_payload(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Turn a stored invoice (as returned by ``get_invoice``) into a render payload."""
    company = {
        "name": row.get("company_name") or "",
        "address": row.get("company_address") or "",
        "email": row.get("company_email") or "",
        "ifu": row.get("company_ifu") or "",
        "vmcf": row.get("company_vmcf") or "",
        "paypal": row.get("company_paypal") or "",
    }
    invoice = {
        "id": row.get("id"),
        "number": row.get("number") or "",
        "date": str(row.get("date") or "")[:10],
        "clientName": row.get("client_name") or "",
        "clientAddress": row.get("client_address") or "",
        "clientCity": row.get("client_city") or "",
        "clientSiren": row.get("client_siren") or "",
        "conditions": row.get("conditions") or "",
        "items": [
            {
                "description": item.get("description") or "",
                "quantity": item.get("quantity"),
                "unitPrice": item.get("unit_price"),
                "amount": item.get("amount"),
            }
            for item in row.get("items") or []
        ],
    }
    total = parse_number(row.get("total_ttc"))
    return {"company": company, "invoice": invoice, "total": float(total) if total is not None else None}


class InvoiceService:
    """Maps ``(method, action)`` pairs onto :class:`InvoiceStore` operations."""

    def __init__(self, store: InvoiceStore) -> None:
        self.store = store
        self.routes: Dict[str, Dict[str, Callable[[Mapping[str, Any], Optional[bytes]], Any]]] = {
            "GET": {
                "setup": lambda params, body: self.store.setup(),
                "companies": lambda params, body: self.store.list_companies(),
                "clients": lambda params, body: self.store.list_clients(),
                "invoices": lambda params, body: self.store.list_invoices(),
                "invoice": self._get_invoice,
                "suggestions": lambda params, body: self.store.suggestions(),
            },
            "POST": {
                "save-company": self._save_company,
                "save-invoice": self._save_invoice,
            },
            "DELETE": {
                "delete-invoice": self._delete_invoice,
            },
        }

    def _get_invoice(self, params: Mapping[str, Any], body: Optional[bytes]) -> Dict[str, Any]:
        invoice = self.store.get_invoice(require_id(params))
        if invoice is None:
            raise ApiError(404, "Not found")
        return invoice

    def _save_company(self, params: Mapping[str, Any], body: Optional[bytes]) -> Dict[str, Any]:
        data = parse_json_body(body)
        validate_company(data)
        company = self.store.save_company(data)
        if company is None:
            raise ApiError(404, "Not found")
        return company

    def _save_invoice(self, params: Mapping[str, Any], body: Optional[bytes]) -> Dict[str, Any]:
        data = parse_json_body(body)
        validate_invoice(data)
        if data.get("id") and self.store.get_invoice(data["id"]) is None:
            raise ApiError(404, "Not found")
        try:
            invoice_id = self.store.save_invoice(data)
        except sqlite3.IntegrityError as exc:
            if "invoices.number" in str(exc):
                raise ApiError(400, f"Invoice number {data['number']!r} already exists.") from exc
            raise
        return {"ok": True, "id": invoice_id}

    def _delete_invoice(self, params: Mapping[str, Any], body: Optional[bytes]) -> Dict[str, Any]:
        self.store.delete_invoice(require_id(params))
        return {"ok": True}

    def pdf_payload(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        return invoice_render_payload(self._get_invoice(params, None))

    def dispatch(
        self,
        method: str,
        action: Optional[str],
        params: Mapping[str, Any],
        body: Optional[bytes] = None,
    ) -> Response:
        routes = self.routes.get(method.upper())
        if routes is None:
            return 405, {"error": "Method not allowed"}

        handler = routes.get(action or "")
        if handler is None:
            return 400, {"error": f"Unknown action: {action}"}

        try:
            return 200, handler(params, body)
        except ApiError as exc:
            return exc.status, exc.payload()
        except sqlite3.Error as exc:
            logger.exception("API error on %s %s", method, action)
            return 500, {"error": str(exc)}
