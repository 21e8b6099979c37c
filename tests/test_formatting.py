import unittest
from decimal import Decimal

from invoice_desk.formatting import (
    NBSP,
    fmt_date_fr,
    fmt_eur,
    fmt_qty,
    invoice_filename,
    is_present,
    parse_money,
    parse_number,
    single_line,
    wrap_text,
)


class CharMeasurer:
    def text_width(self, text: str, size: float, style: str = "") -> float:
        return float(len(text))


class FormattingTests(unittest.TestCase):
    def test_fmt_eur_groups_thousands_with_non_breaking_space(self) -> None:
        self.assertEqual(fmt_eur("1234567.891"), f"1{NBSP}234{NBSP}567,89 €")
        self.assertEqual(fmt_eur(100), "100,00 €")
        self.assertEqual(fmt_eur(Decimal("0.005")), "0,01 €")

    def test_fmt_eur_handles_negative_values(self) -> None:
        self.assertEqual(fmt_eur("-1500"), f"-1{NBSP}500,00 €")
        self.assertEqual(fmt_eur("-0.001"), "0,00 €")

    def test_fmt_eur_renders_unparseable_values_as_zero(self) -> None:
        for value in ("", "abc", None, [], float("nan"), float("inf"), True):
            with self.subTest(value=value):
                self.assertEqual(fmt_eur(value), "0,00 €")

    def test_fmt_eur_is_stable_when_reparsed(self) -> None:
        for value in ("0", "12.5", "999.999", "1234567.1", "-42.42", 1e12):
            with self.subTest(value=value):
                formatted = fmt_eur(value)
                self.assertEqual(fmt_eur(parse_money(formatted)), formatted)

    def test_parse_number_reads_leading_number_only(self) -> None:
        self.assertEqual(parse_number("12.5abc"), Decimal("12.5"))
        self.assertEqual(parse_number("  .5"), Decimal("0.5"))
        self.assertEqual(parse_number("1e3"), Decimal("1E+3"))
        self.assertIsNone(parse_number("abc"))
        self.assertIsNone(parse_number(""))
        self.assertIsNone(parse_number(None))
        self.assertIsNone(parse_number(False))
        self.assertIsNone(parse_number({"amount": 1}))

    def test_fmt_date_fr_uses_two_digit_year(self) -> None:
        self.assertEqual(fmt_date_fr("2024-03-05"), "05/03/24")
        self.assertEqual(fmt_date_fr("2024-03-05T00:00:00.000Z"), "05/03/24")

    def test_fmt_date_fr_returns_empty_for_invalid_input(self) -> None:
        for value in ("", "not-a-date", "2024-13-45", "2024-03", "2024", "20240305", None, 20240305):
            with self.subTest(value=value):
                self.assertEqual(fmt_date_fr(value), "")

    def test_fmt_qty_handles_numbers_and_strings(self) -> None:
        self.assertEqual(fmt_qty(3), "3")
        self.assertEqual(fmt_qty(2.0), "2")
        self.assertEqual(fmt_qty(2.5), "2.5")
        self.assertEqual(fmt_qty(" 1,5 "), "1,5")

    def test_is_present_treats_blank_and_zero_numbers_as_absent(self) -> None:
        self.assertFalse(is_present(None))
        self.assertFalse(is_present("  "))
        self.assertFalse(is_present(0))
        self.assertTrue(is_present("0"))
        self.assertTrue(is_present(0.5))

    def test_invoice_filename_replaces_slashes(self) -> None:
        self.assertEqual(invoice_filename("2024/03/INV-1"), "Facture_2024-03-INV-1.pdf")
        self.assertEqual(invoice_filename(None), "Facture_.pdf")

    def test_single_line_collapses_whitespace(self) -> None:
        self.assertEqual(single_line(" a\n b\t c "), "a b c")
        self.assertEqual(single_line(None), "")
        self.assertEqual(single_line(42), "42")

    def test_wrap_text_breaks_on_words_and_newlines(self) -> None:
        lines = wrap_text(CharMeasurer(), "aaa bbb ccc\nddd", 7, 10)
        self.assertEqual(lines, ["aaa bbb", "ccc", "ddd"])

    def test_wrap_text_splits_words_longer_than_the_column(self) -> None:
        lines = wrap_text(CharMeasurer(), "ab abcdefghij", 4, 10)
        self.assertEqual(lines, ["ab", "abcd", "efgh", "ij"])


if __name__ == "__main__":
    unittest.main()
