import os
import sqlite3
import tempfile
import unittest
from unittest.mock import patch

from invoice_desk.storage import InvoiceStore, next_invoice_number


def invoice_data(number: str = "INV-1", **fields):
    data = {
        "number": number,
        "date": "2024-03-05",
        "clientName": "Bob",
        "clientAddress": "2 Rue Y",
        "clientCity": "Lyon",
        "items": [
            {"description": "Design", "quantity": "2", "unitPrice": "50", "amount": "100"},
            {"description": "Hosting", "quantity": "", "unitPrice": "", "amount": "20.5"},
        ],
    }
    data.update(fields)
    return data


class StoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.store = InvoiceStore(os.path.join(self.tmp.name, "invoices.db"))
        self.store.setup()

    def tearDown(self) -> None:
        self.tmp.cleanup()


class SetupTests(StoreTestCase):
    def test_setup_seeds_a_single_default_company(self) -> None:
        self.store.setup()

        companies = self.store.list_companies()
        self.assertEqual(len(companies), 1)
        self.assertEqual(companies[0]["name"], "My Company")

    def test_seed_company_comes_from_environment(self) -> None:
        store = InvoiceStore(os.path.join(self.tmp.name, "other.db"))
        with patch.dict(os.environ, {"INVOICE_COMPANY_NAME": "Studio Nord"}):
            store.setup()

        self.assertEqual(store.list_companies()[0]["name"], "Studio Nord")


class CompanyTests(StoreTestCase):
    def test_save_company_inserts_then_updates(self) -> None:
        created = self.store.save_company({"name": "ACME", "address": "1 Rue X"})
        assert created is not None

        updated = self.store.save_company({"id": created["id"], "name": "ACME SA", "paypal": "pay@acme.test"})

        assert updated is not None
        self.assertEqual(updated["id"], created["id"])
        self.assertEqual(updated["name"], "ACME SA")
        self.assertEqual(updated["address"], "")
        self.assertEqual(updated["paypal"], "pay@acme.test")

    def test_save_company_with_unknown_id_returns_none(self) -> None:
        self.assertIsNone(self.store.save_company({"id": 999, "name": "Ghost"}))


class ClientTests(StoreTestCase):
    def test_upsert_matches_names_ignoring_case(self) -> None:
        first = self.store.upsert_client({"name": "Bob", "address": "2 Rue Y", "city": "Lyon"})
        second = self.store.upsert_client({"name": "  bOB ", "city": "Paris"})

        assert first is not None and second is not None
        self.assertEqual(first["id"], second["id"])
        self.assertEqual(second["name"], "Bob")
        self.assertEqual(second["address"], "2 Rue Y")
        self.assertEqual(second["city"], "Paris")
        self.assertEqual(len(self.store.list_clients()), 1)

    def test_upsert_folds_non_ascii_case(self) -> None:
        first = self.store.upsert_client({"name": "Élodie"})
        second = self.store.upsert_client({"name": "ÉLODIE"})

        assert first is not None and second is not None
        self.assertEqual(first["id"], second["id"])

    def test_upsert_does_not_fuzzy_match(self) -> None:
        self.store.upsert_client({"name": "Bob"})
        self.store.upsert_client({"name": "Bobby"})

        self.assertEqual([c["name"] for c in self.store.list_clients()], ["Bob", "Bobby"])

    def test_upsert_ignores_blank_names(self) -> None:
        self.assertIsNone(self.store.upsert_client({"name": "   "}))
        self.assertEqual(self.store.list_clients(), [])


class InvoiceTests(StoreTestCase):
    def test_save_invoice_persists_items_in_order_with_total(self) -> None:
        invoice_id = self.store.save_invoice(invoice_data())

        invoice = self.store.get_invoice(invoice_id)

        assert invoice is not None
        self.assertEqual(invoice["number"], "INV-1")
        self.assertEqual(invoice["client_name"], "Bob")
        self.assertEqual(invoice["company_name"], "My Company")
        self.assertEqual(invoice["conditions"], "Paiement à réception")
        self.assertAlmostEqual(float(invoice["total_ttc"]), 120.5)
        self.assertEqual([item["description"] for item in invoice["items"]], ["Design", "Hosting"])
        self.assertIsNone(invoice["items"][1]["quantity"])
        self.assertEqual([item["sort_order"] for item in invoice["items"]], [0, 1])

    def test_updating_an_invoice_replaces_its_items(self) -> None:
        invoice_id = self.store.save_invoice(invoice_data())

        self.store.save_invoice(
            invoice_data(id=invoice_id, items=[{"description": "Audit", "amount": "300"}])
        )

        invoice = self.store.get_invoice(invoice_id)
        assert invoice is not None
        self.assertEqual([item["description"] for item in invoice["items"]], ["Audit"])
        self.assertAlmostEqual(float(invoice["total_ttc"]), 300)

    def test_duplicate_numbers_are_rejected_atomically(self) -> None:
        self.store.save_invoice(invoice_data())

        with self.assertRaises(sqlite3.IntegrityError):
            self.store.save_invoice(invoice_data(clientName="Carol"))

        self.assertEqual(len(self.store.list_invoices()), 1)
        self.assertEqual([c["name"] for c in self.store.list_clients()], ["Bob"])

    def test_delete_cascades_to_items(self) -> None:
        invoice_id = self.store.save_invoice(invoice_data())

        self.assertTrue(self.store.delete_invoice(invoice_id))

        self.assertIsNone(self.store.get_invoice(invoice_id))
        with self.store.connect() as conn:
            count = conn.execute("SELECT COUNT(*) FROM invoice_items").fetchone()[0]
        self.assertEqual(count, 0)
        self.assertFalse(self.store.delete_invoice(invoice_id))

    def test_list_invoices_returns_newest_first_with_items(self) -> None:
        self.store.save_invoice(invoice_data("INV-1"))
        self.store.save_invoice(invoice_data("INV-2"))

        invoices = self.store.list_invoices()

        self.assertEqual([inv["number"] for inv in invoices], ["INV-2", "INV-1"])
        self.assertEqual(len(invoices[0]["items"]), 2)

    def test_suggestions_offer_next_number_and_known_values(self) -> None:
        self.assertEqual(self.store.suggestions()["nextNumber"], "INV-100")

        self.store.save_invoice(invoice_data("EM-41"))

        suggestions = self.store.suggestions()
        self.assertEqual(suggestions["nextNumber"], "EM-42")
        self.assertEqual(suggestions["clients"], ["Bob"])
        self.assertEqual(suggestions["descriptions"], ["Design", "Hosting"])


class NextNumberTests(unittest.TestCase):
    def test_increments_numeric_suffix(self) -> None:
        self.assertEqual(next_invoice_number("ABC-9", seed="S-1"), "ABC-10")

    def test_falls_back_to_seed(self) -> None:
        for last in (None, "", "NOSUFFIX", "A-B-3", "A-x"):
            with self.subTest(last=last):
                self.assertEqual(next_invoice_number(last, seed="S-1"), "S-1")


if __name__ == "__main__":
    unittest.main()
