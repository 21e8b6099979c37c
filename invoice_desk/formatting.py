"""Formatting and text wrapping helpers."""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Any, List, Optional, Protocol

from dateutil import parser as dateutil_parser

NBSP = "\u00a0"
CURRENCY_SUFFIX = " €"
ZERO_EUR = "0,00" + CURRENCY_SUFFIX

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}(?:[T ]|$)")
_CENTS = Decimal("0.01")
_MONEY_CONTEXT = Context(prec=64)


class TextWidthProvider(Protocol):
    def text_width(self, text: str, size: float, style: str = "") -> float:
        ...


def parse_number(value: Any) -> Optional[Decimal]:
    """Parse the leading number of ``value`` the way a browser ``parseFloat`` does.

    Returns ``None`` for anything without a finite leading number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return Decimal(str(value))
    if not isinstance(value, str):
        return None

    match = _LEADING_NUMBER.match(value)
    if not match:
        return None
    try:
        number = Decimal(match.group(1))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def fmt_eur(value: Any) -> str:
    """Format ``value`` as ``1 234,50 €``; unparseable values give ``0,00 €``."""
    number = parse_number(value)
    if number is None:
        return ZERO_EUR

    try:
        rounded = number.quantize(_CENTS, rounding=ROUND_HALF_UP, context=_MONEY_CONTEXT)
    except InvalidOperation:
        return ZERO_EUR
    sign = "-" if rounded < 0 else ""
    digits = f"{rounded.copy_abs():.2f}"
    int_part, frac_part = digits.split(".")

    groups = []
    while len(int_part) > 3:
        groups.insert(0, int_part[-3:])
        int_part = int_part[:-3]
    groups.insert(0, int_part)
    return f"{sign}{NBSP.join(groups)},{frac_part}{CURRENCY_SUFFIX}"


def parse_money(text: Any) -> Optional[Decimal]:
    """Parse a string produced by :func:`fmt_eur` back into a Decimal."""
    if not isinstance(text, str):
        return parse_number(text)
    cleaned = text.replace("€", "").replace(NBSP, "").replace(" ", "").replace(",", ".")
    return parse_number(cleaned)


def fmt_qty(qty: Any) -> str:
    if isinstance(qty, str):
        return qty.strip()
    try:
        quantity = float(qty)
        if quantity.is_integer():
            return str(int(quantity))
        return str(quantity)
    except Exception:
        return str(qty)


def fmt_date_fr(raw: Any) -> str:
    """Format an ISO date as ``DD/MM/YY``; anything unparseable gives ``""``."""
    if not isinstance(raw, str):
        return ""
    raw = raw.strip()
    if not _ISO_DATE.match(raw):
        return ""
    try:
        dt = dateutil_parser.isoparse(raw)
    except (ValueError, OverflowError):
        return ""
    return dt.strftime("%d/%m/%y")


def single_line(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())


def is_present(value: Any) -> bool:
    """Whether an optional cell value was filled in."""
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    return True


def invoice_filename(number: Any) -> str:
    return f"Facture_{single_line(number).replace('/', '-')}.pdf"


def wrap_text(
    fonts_obj: TextWidthProvider,
    text: str,
    max_width: float,
    font_size: float,
    style: str = "",
) -> List[str]:
    def line_width(value: str) -> float:
        return fonts_obj.text_width(value, font_size, style)

    def wrap_paragraph(paragraph: str) -> List[str]:
        words = paragraph.split()
        if not words:
            return [paragraph]

        lines: List[str] = []
        current = ""
        for word in words:
            candidate = word if not current else f"{current} {word}"
            if line_width(candidate) <= max_width:
                current = candidate
                continue

            if current:
                lines.append(current)
                current = ""

            if line_width(word) <= max_width:
                current = word
                continue

            chunk = ""
            for char in word:
                candidate_chunk = chunk + char
                if chunk and line_width(candidate_chunk) > max_width:
                    lines.append(chunk)
                    chunk = char
                else:
                    chunk = candidate_chunk
            current = chunk

        if current:
            lines.append(current)
        return lines

    result: List[str] = []
    for paragraph in text.replace("\r\n", "\n").split("\n"):
        result.extend(wrap_paragraph(paragraph))
    return result if result else [text]
