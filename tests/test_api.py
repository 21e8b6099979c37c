import json
import os
import sqlite3
import tempfile
import unittest
from unittest.mock import patch

from invoice_desk.api import ApiError, InvoiceService, invoice_render_payload, parse_json_body
from invoice_desk.storage import InvoiceStore


def json_bytes(payload: object) -> bytes:
    return json.dumps(payload).encode("utf-8")


INVOICE = {
    "number": "INV-1",
    "date": "2024-03-05",
    "clientName": "Bob",
    "items": [{"description": "Service", "quantity": "2", "unitPrice": "50", "amount": "100"}],
}


class ParseBodyTests(unittest.TestCase):
    def test_accepts_json_objects(self) -> None:
        self.assertEqual(parse_json_body(json_bytes({"a": 1})), {"a": 1})

    def test_rejects_invalid_bodies(self) -> None:
        for body in (b"", b"\xff", b'{"items":', json_bytes(["bad-root"])):
            with self.subTest(body=body):
                with self.assertRaises(ApiError) as ctx:
                    parse_json_body(body)
                self.assertEqual(ctx.exception.status, 400)


class ServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.store = InvoiceStore(os.path.join(self.tmp.name, "invoices.db"))
        self.service = InvoiceService(self.store)
        status, _ = self.service.dispatch("GET", "setup", {})
        self.assertEqual(status, 200)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_unknown_action_is_a_bad_request(self) -> None:
        status, payload = self.service.dispatch("GET", "nope", {})

        self.assertEqual(status, 400)
        self.assertEqual(payload, {"error": "Unknown action: nope"})

    def test_unsupported_method_is_rejected(self) -> None:
        status, payload = self.service.dispatch("PUT", "invoices", {})

        self.assertEqual(status, 405)
        self.assertIn("error", payload)

    def test_save_and_fetch_invoice(self) -> None:
        status, saved = self.service.dispatch("POST", "save-invoice", {}, json_bytes(INVOICE))
        self.assertEqual(status, 200)
        self.assertTrue(saved["ok"])

        status, invoice = self.service.dispatch("GET", "invoice", {"id": str(saved["id"])})

        self.assertEqual(status, 200)
        self.assertEqual(invoice["number"], "INV-1")
        self.assertEqual(invoice["items"][0]["description"], "Service")

    def test_missing_invoice_is_not_found(self) -> None:
        for params in ({"id": "42"}, {"id": "abc"}, {}):
            with self.subTest(params=params):
                status, payload = self.service.dispatch("GET", "invoice", params)
                self.assertEqual(status, 404)
                self.assertEqual(payload, {"error": "Not found"})

    def test_save_invoice_requires_number_and_date(self) -> None:
        body = json_bytes({**INVOICE, "number": " "})

        status, payload = self.service.dispatch("POST", "save-invoice", {}, body)

        self.assertEqual(status, 400)
        self.assertIn("number", payload["error"])

    def test_save_invoice_rejects_non_list_items(self) -> None:
        status, _ = self.service.dispatch("POST", "save-invoice", {}, json_bytes({**INVOICE, "items": "x"}))

        self.assertEqual(status, 400)

    def test_duplicate_invoice_number_is_reported(self) -> None:
        self.service.dispatch("POST", "save-invoice", {}, json_bytes(INVOICE))

        status, payload = self.service.dispatch("POST", "save-invoice", {}, json_bytes(INVOICE))

        self.assertEqual(status, 400)
        self.assertIn("INV-1", payload["error"])

    def test_updating_unknown_invoice_is_not_found(self) -> None:
        status, _ = self.service.dispatch("POST", "save-invoice", {}, json_bytes({**INVOICE, "id": 77}))

        self.assertEqual(status, 404)

    def test_save_company_requires_a_name(self) -> None:
        status, payload = self.service.dispatch("POST", "save-company", {}, json_bytes({"name": ""}))

        self.assertEqual(status, 400)
        self.assertEqual(payload, {"error": "Company name is required."})

    def test_save_company_returns_the_stored_row(self) -> None:
        status, company = self.service.dispatch(
            "POST", "save-company", {}, json_bytes({"name": "ACME", "address": "1 Rue X"})
        )

        self.assertEqual(status, 200)
        self.assertEqual(company["name"], "ACME")
        status, companies = self.service.dispatch("GET", "companies", {})
        self.assertEqual(companies[0]["name"], "ACME")

    def test_delete_invoice(self) -> None:
        _, saved = self.service.dispatch("POST", "save-invoice", {}, json_bytes(INVOICE))

        status, payload = self.service.dispatch("DELETE", "delete-invoice", {"id": str(saved["id"])})

        self.assertEqual((status, payload), (200, {"ok": True}))
        status, invoices = self.service.dispatch("GET", "invoices", {})
        self.assertEqual(invoices, [])

    def test_suggestions_and_clients(self) -> None:
        self.service.dispatch("POST", "save-invoice", {}, json_bytes(INVOICE))

        _, suggestions = self.service.dispatch("GET", "suggestions", {})
        _, clients = self.service.dispatch("GET", "clients", {})

        self.assertEqual(suggestions["nextNumber"], "INV-2")
        self.assertEqual([client["name"] for client in clients], ["Bob"])

    def test_storage_failures_become_server_errors(self) -> None:
        with patch.object(self.store, "list_invoices", side_effect=sqlite3.OperationalError("disk I/O error")):
            with self.assertLogs("invoice_desk.api", level="ERROR"):
                status, payload = self.service.dispatch("GET", "invoices", {})

        self.assertEqual(status, 500)
        self.assertEqual(payload, {"error": "disk I/O error"})

    def test_pdf_payload_rebuilds_the_render_input(self) -> None:
        _, saved = self.service.dispatch("POST", "save-invoice", {}, json_bytes(INVOICE))

        payload = self.service.pdf_payload({"id": str(saved["id"])})

        self.assertEqual(payload["company"]["name"], "My Company")
        self.assertEqual(payload["invoice"]["clientName"], "Bob")
        self.assertEqual(payload["invoice"]["items"][0]["unitPrice"], 50)
        self.assertEqual(payload["total"], 100.0)


class RenderPayloadTests(unittest.TestCase):
    def test_handles_rows_with_missing_joins(self) -> None:
        payload = invoice_render_payload({"id": 3, "number": "X-1", "date": "2024-01-02T00:00:00", "items": []})

        self.assertEqual(payload["company"]["name"], "")
        self.assertEqual(payload["invoice"]["date"], "2024-01-02")
        self.assertIsNone(payload["total"])


if __name__ == "__main__":
    unittest.main()
