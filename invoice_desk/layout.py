"""Invoice document layout.

:func:`layout_invoice` turns a company, an invoice and its total into a
:class:`Document`: a list of A4 pages holding absolutely positioned text, line
and rectangle operations. The layout is pure; drawing the operations onto a
PDF is the job of :mod:`invoice_desk.rendering`.

Malformed values never stop the layout. Missing cells print ``-``,
unparseable money prints ``0,00 €`` and bad dates print nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple, Union

from .config import DEFAULT_CONDITIONS
from .formatting import (
    TextWidthProvider,
    fmt_date_fr,
    fmt_eur,
    fmt_qty,
    invoice_filename,
    is_present,
    parse_number,
    single_line,
    wrap_text,
)
from .models import Company, Invoice, LineItem, invoice_total
from .pagination import PageCursor, lines_fitting, row_height
from .pdf_constants import (
    AMOUNT_X,
    BLOCK_SPACE,
    CELL_TEXT_OFFSET,
    CLIENT_BLOCK_GAP,
    CLIENT_LINE_H,
    COLOR_DARK,
    COLOR_FOOTER_RULE,
    COLOR_GRAY,
    COLOR_LIGHT_GRAY,
    COLOR_MUTED,
    COLOR_ROW_RULE,
    COLOR_TEAL,
    COLOR_TEAL_PALE,
    COLOR_TOTAL_BOX,
    COLOR_WHITE,
    CONDITIONS_GAP,
    CONTENT_RIGHT,
    CONTENT_W,
    CONT_TABLE_SPACE,
    DESC_W,
    DESC_X,
    DIVIDER_STEPS,
    DIVIDER_WIDTH,
    DIVIDER_Y,
    FONT_SIZE_BODY,
    FONT_SIZE_FOOTER,
    FONT_SIZE_NAME,
    FONT_SIZE_TABLE_HEADER,
    FONT_SIZE_TITLE,
    FONT_SIZE_TOTAL,
    FONT_SIZE_VALUE,
    FOOTER_RULE_Y,
    FOOTER_TEXT_Y,
    HEADER_LINE_H,
    LABEL_AMOUNT,
    LABEL_ATTENTION,
    LABEL_CONDITIONS,
    LABEL_DATE,
    LABEL_DESCRIPTION,
    LABEL_IFU,
    LABEL_PAYMENT,
    LABEL_PAYPAL,
    LABEL_QUANTITY,
    LABEL_TOTAL,
    LABEL_UNIT_PRICE,
    LABEL_VMCF,
    MARGIN_LEFT,
    NUMBER_Y,
    PAGE_USABLE_BOTTOM,
    PAGE_W,
    PLACEHOLDER,
    POST_TABLE_SPACE,
    PRICE_X,
    QTY_X,
    ROW_LINE_H,
    ROW_MIN_H,
    RULE_WIDTH,
    SERIF,
    SANS,
    TABLE_GAP,
    TABLE_HEADER_H,
    TABLE_MIN_Y,
    TEXT_LINE_H,
    TITLE,
    TITLE_Y,
    TOP_Y,
    TOTAL_BLOCK_H,
    TOTAL_BOX_GAP,
    TOTAL_BOX_H,
    TOTAL_BOX_W,
    TOTAL_LABEL_PAD,
    TOTALS_SLACK,
)

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]


@dataclass(frozen=True)
class TextOp:
    x: float
    y: float
    text: str
    size: float
    color: Color
    style: str = ""
    family: str = SANS
    align: str = "left"


@dataclass(frozen=True)
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    color: Color
    width: float


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float
    w: float
    h: float
    color: Color


DrawOp = Union[TextOp, LineOp, RectOp]


@dataclass
class Page:
    number: int
    ops: List[DrawOp] = field(default_factory=list)

    def texts(self) -> List[str]:
        return [op.text for op in self.ops if isinstance(op, TextOp)]

    def text_ops(self) -> List[TextOp]:
        return [op for op in self.ops if isinstance(op, TextOp)]


@dataclass
class Document:
    pages: List[Page]
    filename: str

    @property
    def page_count(self) -> int:
        return len(self.pages)


class FixedPitchMeasurer:
    """Approximates proportional fonts with an average glyph width of half an em."""

    PT_TO_MM = 25.4 / 72.0

    def __init__(self, em_ratio: float = 0.5) -> None:
        self.em_ratio = em_ratio

    def text_width(self, text: str, size: float, style: str = "") -> float:
        ratio = self.em_ratio * (1.05 if "B" in style else 1.0)
        return len(text) * size * ratio * self.PT_TO_MM


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else single_line(value)


def _line_items(items: Any) -> List[LineItem]:
    if not isinstance(items, (list, tuple)):
        return []
    return [item if isinstance(item, LineItem) else LineItem.from_dict(item) for item in items]


class InvoiceLayout:
    def __init__(
        self,
        company: Any,
        invoice: Any,
        total: Any = None,
        measurer: Optional[TextWidthProvider] = None,
    ) -> None:
        self.company = company if isinstance(company, Company) else Company.from_dict(company)
        self.invoice = invoice if isinstance(invoice, Invoice) else Invoice.from_dict(invoice)
        self.items = _line_items(self.invoice.items)
        self.total = invoice_total(self.items) if total is None else total
        self.measurer = measurer or FixedPitchMeasurer()

        self.pages: List[Page] = [Page(number=1)]
        self.cursor = PageCursor(TOP_Y, on_new_page=self._open_page)

    @property
    def page(self) -> Page:
        return self.pages[-1]

    def _open_page(self) -> None:
        self.pages.append(Page(number=len(self.pages) + 1))

    def _text(
        self,
        x: float,
        y: float,
        text: str,
        size: float,
        color: Color,
        style: str = "",
        family: str = SANS,
        align: str = "left",
    ) -> None:
        self.page.ops.append(TextOp(x, y, text, size, color, style, family, align))

    def _line(self, x1: float, y1: float, x2: float, y2: float, color: Color, width: float) -> None:
        self.page.ops.append(LineOp(x1, y1, x2, y2, color, width))

    def _rect(self, x: float, y: float, w: float, h: float, color: Color) -> None:
        self.page.ops.append(RectOp(x, y, w, h, color))

    def _draw_header(self) -> None:
        company = self.company
        y = TOP_Y
        self._text(MARGIN_LEFT, y, single_line(company.name), FONT_SIZE_NAME, COLOR_DARK, style="B")
        y += HEADER_LINE_H
        self._text(MARGIN_LEFT, y, single_line(company.address), FONT_SIZE_BODY, COLOR_DARK)
        y += HEADER_LINE_H
        self._text(MARGIN_LEFT, y, single_line(company.email), FONT_SIZE_BODY, COLOR_TEAL)
        y += 8
        self._text(MARGIN_LEFT, y, LABEL_IFU + single_line(company.ifu), FONT_SIZE_BODY, COLOR_DARK)
        y += 4.5
        self._text(MARGIN_LEFT, y, LABEL_VMCF + single_line(company.vmcf), FONT_SIZE_BODY, COLOR_DARK)

        self._text(
            CONTENT_RIGHT,
            TITLE_Y,
            TITLE,
            FONT_SIZE_TITLE,
            COLOR_GRAY,
            style="B",
            family=SERIF,
            align="right",
        )
        self._text(
            CONTENT_RIGHT,
            NUMBER_Y,
            single_line(self.invoice.number),
            FONT_SIZE_VALUE,
            COLOR_LIGHT_GRAY,
            align="right",
        )

    def _draw_divider(self) -> None:
        start, end = COLOR_TEAL, COLOR_TEAL_PALE
        step_w = CONTENT_W / DIVIDER_STEPS
        for i in range(DIVIDER_STEPS):
            ratio = i / DIVIDER_STEPS
            color = tuple(int(round(a + (b - a) * ratio)) for a, b in zip(start, end))
            x = MARGIN_LEFT + i * step_w
            self._line(x, DIVIDER_Y, x + step_w, DIVIDER_Y, color, DIVIDER_WIDTH)  # type: ignore[arg-type]

    def _draw_client_block(self) -> float:
        y = DIVIDER_Y + CLIENT_BLOCK_GAP
        self._text(MARGIN_LEFT, y, LABEL_ATTENTION, FONT_SIZE_BODY, COLOR_TEAL, style="I")
        self._text(CONTENT_RIGHT, y, LABEL_DATE, FONT_SIZE_BODY, COLOR_LIGHT_GRAY, style="B", align="right")

        value_y = y + 6
        date_text = fmt_date_fr(self.invoice.date)
        if date_text:
            self._text(CONTENT_RIGHT, value_y, date_text, FONT_SIZE_VALUE, COLOR_DARK, align="right")

        client_y = value_y
        for value in (self.invoice.client_name, self.invoice.client_address, self.invoice.client_city):
            line = single_line(value)
            if line:
                self._text(MARGIN_LEFT, client_y, line, FONT_SIZE_VALUE, COLOR_DARK)
                client_y += CLIENT_LINE_H
        return client_y

    def _draw_table_header(self) -> None:
        y = self.cursor.y
        text_y = y + CELL_TEXT_OFFSET
        self._rect(MARGIN_LEFT, y, CONTENT_W, TABLE_HEADER_H, COLOR_TEAL)
        size = FONT_SIZE_TABLE_HEADER
        self._text(DESC_X, text_y, LABEL_DESCRIPTION, size, COLOR_WHITE, style="B")
        self._text(QTY_X, text_y, LABEL_QUANTITY, size, COLOR_WHITE, style="B", align="center")
        self._text(PRICE_X, text_y, LABEL_UNIT_PRICE, size, COLOR_WHITE, style="B", align="center")
        self._text(AMOUNT_X, text_y, LABEL_AMOUNT, size, COLOR_WHITE, style="B", align="right")
        self.cursor.advance(TABLE_HEADER_H)

    def _continue_table(self) -> None:
        self.cursor.new_page()
        self._draw_table_header()

    def _draw_row(self, lines: Sequence[str], item: Optional[LineItem]) -> None:
        y = self.cursor.y
        height = row_height(len(lines))
        text_y = y + CELL_TEXT_OFFSET
        self._line(MARGIN_LEFT, y + height, CONTENT_RIGHT, y + height, COLOR_ROW_RULE, RULE_WIDTH)
        for index, line in enumerate(lines):
            self._text(DESC_X, text_y + index * ROW_LINE_H, line, FONT_SIZE_BODY, COLOR_DARK)

        if item is not None:
            self._text(QTY_X, text_y, quantity_cell(item.quantity), FONT_SIZE_BODY, COLOR_DARK, align="center")
            self._text(PRICE_X, text_y, unit_price_cell(item.unit_price), FONT_SIZE_BODY, COLOR_DARK, align="center")
            self._text(AMOUNT_X, text_y, amount_cell(item.amount), FONT_SIZE_BODY, COLOR_DARK, align="right")
        self.cursor.advance(height)

    def _draw_items(self) -> None:
        items = self.items
        for index, item in enumerate(items):
            description = _as_text(item.description).strip() or PLACEHOLDER
            lines = wrap_text(self.measurer, description, DESC_W, FONT_SIZE_BODY)
            height = row_height(len(lines))
            is_last = index == len(items) - 1
            required = max(height, POST_TABLE_SPACE) if is_last else height

            # Rows taller than a whole page start where they are and continue
            # under a fresh header band.
            if not self.cursor.fits(required):
                if height <= CONT_TABLE_SPACE or not self.cursor.fits(ROW_MIN_H):
                    self._continue_table()

            first: Optional[LineItem] = item
            while True:
                take = lines_fitting(PAGE_USABLE_BOTTOM - self.cursor.y)
                if take >= len(lines):
                    self._draw_row(lines, first)
                    break
                self._draw_row(lines[:take], first)
                lines = lines[take:]
                first = None
                self._continue_table()

    def _draw_total(self) -> None:
        self.cursor.ensure_space(POST_TABLE_SPACE, PAGE_USABLE_BOTTOM + TOTALS_SLACK)
        self.cursor.advance(TOTAL_BOX_GAP)
        y = self.cursor.y
        box_x = CONTENT_RIGHT - TOTAL_BOX_W
        self._rect(box_x, y, TOTAL_BOX_W, TOTAL_BOX_H, COLOR_TOTAL_BOX)
        self._text(box_x + TOTAL_LABEL_PAD, y + 8, LABEL_TOTAL, FONT_SIZE_VALUE, COLOR_MUTED, style="B")
        self._text(
            box_x + TOTAL_BOX_W - TOTAL_LABEL_PAD,
            y + 8.5,
            fmt_eur(self.total),
            FONT_SIZE_TOTAL,
            COLOR_DARK,
            style="B",
            align="right",
        )
        self.cursor.advance(TOTAL_BLOCK_H)

    def _draw_conditions(self) -> None:
        self.cursor.ensure_space(BLOCK_SPACE)
        self._text(MARGIN_LEFT, self.cursor.y, LABEL_CONDITIONS, FONT_SIZE_VALUE, COLOR_TEAL, style="B")
        self.cursor.advance(CONDITIONS_GAP)

        conditions = _as_text(self.invoice.conditions).strip() or DEFAULT_CONDITIONS
        for line in wrap_text(self.measurer, conditions, CONTENT_W, FONT_SIZE_BODY):
            self.cursor.ensure_space(TEXT_LINE_H)
            self._text(MARGIN_LEFT, self.cursor.y, line, FONT_SIZE_BODY, COLOR_MUTED)
            self.cursor.advance(TEXT_LINE_H)
        self.cursor.advance(CONDITIONS_GAP)

    def _draw_payment(self) -> None:
        self.cursor.ensure_space(BLOCK_SPACE)
        self._text(MARGIN_LEFT, self.cursor.y, LABEL_PAYMENT, FONT_SIZE_VALUE, COLOR_TEAL, style="B")
        self.cursor.advance(HEADER_LINE_H)
        y = self.cursor.y
        self._text(MARGIN_LEFT, y, LABEL_PAYPAL, FONT_SIZE_BODY, COLOR_MUTED, style="B")
        label_w = self.measurer.text_width(LABEL_PAYPAL, FONT_SIZE_BODY, "B")
        self._text(MARGIN_LEFT + label_w, y, single_line(self.company.paypal), FONT_SIZE_BODY, COLOR_MUTED)

    def _draw_footers(self) -> None:
        footer = footer_text(self.company)
        for page in self.pages:
            page.ops.append(
                LineOp(MARGIN_LEFT, FOOTER_RULE_Y, CONTENT_RIGHT, FOOTER_RULE_Y, COLOR_FOOTER_RULE, RULE_WIDTH)
            )
            page.ops.append(
                TextOp(PAGE_W / 2, FOOTER_TEXT_Y, footer, FONT_SIZE_FOOTER, COLOR_LIGHT_GRAY, align="center")
            )

    def layout(self) -> Document:
        self._draw_header()
        self._draw_divider()
        client_bottom = self._draw_client_block()

        self.cursor.y = max(client_bottom + TABLE_GAP, TABLE_MIN_Y)
        self._draw_table_header()
        self._draw_items()
        self._draw_total()
        self._draw_conditions()
        self._draw_payment()
        self._draw_footers()

        logger.debug(
            "Laid out invoice %r: %d item(s) on %d page(s)",
            self.invoice.number,
            len(self.items),
            len(self.pages),
        )
        return Document(pages=self.pages, filename=invoice_filename(self.invoice.number))


def quantity_cell(quantity: Any) -> str:
    return fmt_qty(quantity) if is_present(quantity) else PLACEHOLDER


def unit_price_cell(unit_price: Any) -> str:
    return fmt_eur(unit_price) if is_present(unit_price) else PLACEHOLDER


def amount_cell(amount: Any) -> str:
    value = parse_number(amount)
    return fmt_eur(value) if value is not None and value > 0 else PLACEHOLDER


def footer_text(company: Company) -> str:
    return f"{single_line(company.name)}, {single_line(company.address)}"


def layout_invoice(
    company: Any,
    invoice: Any,
    total: Any = None,
    measurer: Optional[TextWidthProvider] = None,
) -> Document:
    return InvoiceLayout(company, invoice, total, measurer).layout()
