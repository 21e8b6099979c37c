"""SQLite persistence for companies, clients and invoices."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from .config import DB_PATH, DEFAULT_CONDITIONS, INVOICE_NUMBER_SEED, default_company
from .formatting import parse_number
from .models import invoice_total

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS companies (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    address TEXT DEFAULT '',
    email TEXT DEFAULT '',
    ifu TEXT DEFAULT '',
    vmcf TEXT DEFAULT '',
    paypal TEXT DEFAULT '',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS clients (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    address TEXT DEFAULT '',
    city TEXT DEFAULT '',
    siren TEXT DEFAULT '',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS invoices (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    number TEXT NOT NULL UNIQUE,
    date TEXT NOT NULL,
    company_id INTEGER REFERENCES companies(id),
    client_id INTEGER REFERENCES clients(id),
    conditions TEXT DEFAULT '',
    total_ttc NUMERIC DEFAULT 0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS invoice_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_id INTEGER REFERENCES invoices(id) ON DELETE CASCADE,
    description TEXT DEFAULT '',
    quantity NUMERIC,
    unit_price NUMERIC,
    amount NUMERIC DEFAULT 0,
    sort_order INTEGER DEFAULT 0
);
"""

INVOICE_SELECT = """
SELECT i.*,
    c.name AS client_name, c.address AS client_address, c.city AS client_city, c.siren AS client_siren,
    co.name AS company_name, co.address AS company_address, co.email AS company_email,
    co.ifu AS company_ifu, co.vmcf AS company_vmcf, co.paypal AS company_paypal
FROM invoices i
LEFT JOIN clients c ON i.client_id = c.id
LEFT JOIN companies co ON i.company_id = co.id
"""


def _casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if isinstance(value, str) else value


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value)


def _number(value: Any) -> Optional[float]:
    """Stored form of an optional decimal column: ``None`` when blank, unparseable or zero."""
    number = parse_number(value)
    if number is None or number == 0:
        return None
    return float(round(number, 2))


def next_invoice_number(last_number: Optional[str], seed: str = INVOICE_NUMBER_SEED) -> str:
    """Increment the numeric suffix of ``PREFIX-N``; anything else restarts from ``seed``."""
    if not last_number:
        return seed
    parts = last_number.split("-")
    if len(parts) != 2:
        return seed
    prefix, counter = parts
    try:
        return f"{prefix}-{int(counter) + 1}"
    except ValueError:
        return seed


class InvoiceStore:
    def __init__(self, path: str = DB_PATH) -> None:
        self.path = path

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def setup(self) -> Dict[str, Any]:
        with self.connect() as conn:
            conn.executescript(SCHEMA)
            if conn.execute("SELECT id FROM companies LIMIT 1").fetchone() is None:
                seed = default_company()
                conn.execute(
                    "INSERT INTO companies (name, address, email, ifu, vmcf, paypal) "
                    "VALUES (:name, :address, :email, :ifu, :vmcf, :paypal)",
                    seed,
                )
                logger.info("Seeded default company %r", seed["name"])
        return {"ok": True, "message": "Schema ready"}

    # Companies

    def list_companies(self) -> List[Dict[str, Any]]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM companies ORDER BY updated_at DESC, id DESC").fetchall()
        return [dict(row) for row in rows]

    def save_company(self, data: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        values = {
            "name": _text(data.get("name")),
            "address": _text(data.get("address")),
            "email": _text(data.get("email")),
            "ifu": _text(data.get("ifu")),
            "vmcf": _text(data.get("vmcf")),
            "paypal": _text(data.get("paypal")),
        }
        with self.connect() as conn:
            if data.get("id"):
                values["id"] = data["id"]
                conn.execute(
                    "UPDATE companies SET name = :name, address = :address, email = :email, "
                    "ifu = :ifu, vmcf = :vmcf, paypal = :paypal, updated_at = CURRENT_TIMESTAMP "
                    "WHERE id = :id",
                    values,
                )
                company_id = data["id"]
            else:
                cursor = conn.execute(
                    "INSERT INTO companies (name, address, email, ifu, vmcf, paypal) "
                    "VALUES (:name, :address, :email, :ifu, :vmcf, :paypal)",
                    values,
                )
                company_id = cursor.lastrowid
            row = conn.execute("SELECT * FROM companies WHERE id = ?", (company_id,)).fetchone()
        return dict(row) if row is not None else None

    # Clients

    def list_clients(self) -> List[Dict[str, Any]]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM clients ORDER BY name ASC").fetchall()
        return [dict(row) for row in rows]

    def _upsert_client(self, conn: sqlite3.Connection, data: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        name = _text(data.get("name"))
        if not name:
            return None

        existing = conn.execute(
            "SELECT * FROM clients WHERE casefold(name) = ? ORDER BY id LIMIT 1",
            (name.casefold(),),
        ).fetchone()
        if existing is not None:
            conn.execute(
                "UPDATE clients SET address = ?, city = ?, siren = ? WHERE id = ?",
                (
                    _text(data.get("address")) or existing["address"],
                    _text(data.get("city")) or existing["city"],
                    _text(data.get("siren")) or existing["siren"],
                    existing["id"],
                ),
            )
            client_id = existing["id"]
        else:
            cursor = conn.execute(
                "INSERT INTO clients (name, address, city, siren) VALUES (?, ?, ?, ?)",
                (name, _text(data.get("address")), _text(data.get("city")), _text(data.get("siren"))),
            )
            client_id = cursor.lastrowid
        return dict(conn.execute("SELECT * FROM clients WHERE id = ?", (client_id,)).fetchone())

    def upsert_client(self, data: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Create a client, or update the one whose name matches ignoring case."""
        with self.connect() as conn:
            return self._upsert_client(conn, data)

    # Invoices

    def _items(self, conn: sqlite3.Connection, invoice_id: int) -> List[Dict[str, Any]]:
        rows = conn.execute(
            "SELECT * FROM invoice_items WHERE invoice_id = ? ORDER BY sort_order ASC, id ASC",
            (invoice_id,),
        ).fetchall()
        return [dict(row) for row in rows]

    def list_invoices(self) -> List[Dict[str, Any]]:
        with self.connect() as conn:
            rows = conn.execute(INVOICE_SELECT + " ORDER BY i.created_at DESC, i.id DESC").fetchall()
            invoices = []
            for row in rows:
                invoice = dict(row)
                invoice["items"] = self._items(conn, invoice["id"])
                invoices.append(invoice)
        return invoices

    def get_invoice(self, invoice_id: Any) -> Optional[Dict[str, Any]]:
        with self.connect() as conn:
            row = conn.execute(INVOICE_SELECT + " WHERE i.id = ?", (invoice_id,)).fetchone()
            if row is None:
                return None
            invoice = dict(row)
            invoice["items"] = self._items(conn, invoice["id"])
        return invoice

    def save_invoice(self, data: Mapping[str, Any]) -> int:
        """Insert or update an invoice and replace its items; returns the invoice id.

        The whole save runs in one transaction, so a duplicate number leaves
        nothing half-written.
        """
        items = data.get("items") or []
        total = float(round(invoice_total(items), 2))
        conditions = _text(data.get("conditions")) or DEFAULT_CONDITIONS

        with self.connect() as conn:
            client = self._upsert_client(
                conn,
                {
                    "name": data.get("clientName"),
                    "address": data.get("clientAddress"),
                    "city": data.get("clientCity"),
                    "siren": data.get("clientSiren"),
                },
            )
            client_id = client["id"] if client else None

            company_id = data.get("companyId")
            if not company_id:
                latest = conn.execute(
                    "SELECT id FROM companies ORDER BY updated_at DESC, id DESC LIMIT 1"
                ).fetchone()
                company_id = latest["id"] if latest else None

            values = {
                "number": _text(data.get("number")),
                "date": _text(data.get("date")),
                "company_id": company_id,
                "client_id": client_id,
                "conditions": conditions,
                "total_ttc": total,
            }
            if data.get("id"):
                invoice_id = data["id"]
                values["id"] = invoice_id
                conn.execute(
                    "UPDATE invoices SET number = :number, date = :date, company_id = :company_id, "
                    "client_id = :client_id, conditions = :conditions, total_ttc = :total_ttc "
                    "WHERE id = :id",
                    values,
                )
                conn.execute("DELETE FROM invoice_items WHERE invoice_id = ?", (invoice_id,))
            else:
                cursor = conn.execute(
                    "INSERT INTO invoices (number, date, company_id, client_id, conditions, total_ttc) "
                    "VALUES (:number, :date, :company_id, :client_id, :conditions, :total_ttc)",
                    values,
                )
                invoice_id = cursor.lastrowid

            for sort_order, item in enumerate(items):
                item = item if isinstance(item, Mapping) else {}
                conn.execute(
                    "INSERT INTO invoice_items "
                    "(invoice_id, description, quantity, unit_price, amount, sort_order) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        invoice_id,
                        _text(item.get("description")),
                        _number(item.get("quantity")),
                        _number(item.get("unitPrice", item.get("unit_price"))),
                        _number(item.get("amount")) or 0,
                        sort_order,
                    ),
                )

        logger.info("Saved invoice %r (id=%s, %d item(s))", values["number"], invoice_id, len(items))
        return invoice_id

    def delete_invoice(self, invoice_id: Any) -> bool:
        with self.connect() as conn:
            cursor = conn.execute("DELETE FROM invoices WHERE id = ?", (invoice_id,))
        return cursor.rowcount > 0

    def suggestions(self) -> Dict[str, Any]:
        with self.connect() as conn:
            clients = conn.execute("SELECT DISTINCT name FROM clients ORDER BY name").fetchall()
            descriptions = conn.execute(
                "SELECT DISTINCT description FROM invoice_items WHERE description != '' ORDER BY description"
            ).fetchall()
            last = conn.execute(
                "SELECT number FROM invoices ORDER BY created_at DESC, id DESC LIMIT 1"
            ).fetchone()

        return {
            "clients": [row["name"] for row in clients],
            "descriptions": [row["description"] for row in descriptions],
            "nextNumber": next_invoice_number(last["number"] if last else None),
        }
