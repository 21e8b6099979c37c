"""Invoice PDF rendering on top of the layout engine."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

from fpdf import FPDF  # type: ignore

from .fonts import FontManager
from .layout import Document, LineOp, RectOp, TextOp, layout_invoice
from .models import Company, Invoice, invoice_total

logger = logging.getLogger(__name__)


class ExportError(RuntimeError):
    """Raised when a rendered invoice cannot be written to disk."""


class InvoiceRenderer:
    def __init__(self, company: Any, invoice: Any, total: Any = None) -> None:
        self.pdf = FPDF(unit="mm", format="A4")
        self.pdf.set_auto_page_break(False)
        self.fonts = FontManager(self.pdf)
        self.document = layout_invoice(company, invoice, total, measurer=self.fonts)

    def _draw_text(self, op: TextOp) -> None:
        x = op.x
        if op.align != "left":
            width = self.fonts.text_width(op.text, op.size, op.style, op.family)
            x -= width if op.align == "right" else width / 2.0
        self.fonts.draw_text(x, op.y, op.text, op.size, op.color, op.style, op.family)

    def _draw_line(self, op: LineOp) -> None:
        self.pdf.set_draw_color(*op.color)
        self.pdf.set_line_width(op.width)
        self.pdf.line(op.x1, op.y1, op.x2, op.y2)

    def _draw_rect(self, op: RectOp) -> None:
        self.pdf.set_fill_color(*op.color)
        self.pdf.rect(op.x, op.y, op.w, op.h, style="F")

    def render(self) -> bytes:
        for page in self.document.pages:
            self.pdf.add_page()
            for op in page.ops:
                if isinstance(op, TextOp):
                    self._draw_text(op)
                elif isinstance(op, LineOp):
                    self._draw_line(op)
                elif isinstance(op, RectOp):
                    self._draw_rect(op)

        pdf_blob = self.pdf.output()
        if isinstance(pdf_blob, (bytes, bytearray)):
            return bytes(pdf_blob)
        raise RuntimeError(f"Unexpected PDF output type: {type(pdf_blob).__name__}")


class InvoicePDF:
    """A rendered invoice ready to be downloaded or written to disk."""

    def __init__(self, document: Document, content: bytes) -> None:
        self.document = document
        self.content = content

    @property
    def filename(self) -> str:
        return self.document.filename

    @property
    def page_count(self) -> int:
        return self.document.page_count

    def output(self) -> bytes:
        return self.content

    def save(self, path: Union[str, os.PathLike, None] = None) -> Path:
        """Write the PDF to ``path`` (a file or a directory, default: the invoice filename).

        The file is written next to its destination and renamed into place, so
        a failed export never leaves a truncated PDF behind.
        """
        target = Path(path) if path is not None else Path(self.filename)
        if target.is_dir():
            target = target / self.filename

        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=".invoice-", suffix=".pdf", dir=target.parent)
            with os.fdopen(fd, "wb") as handle:
                handle.write(self.content)
            os.replace(tmp_path, target)
        except OSError as exc:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise ExportError(f"Could not write {target}: {exc}") from exc

        logger.info("Saved invoice PDF to %s (%d page(s))", target, self.page_count)
        return target


def build_invoice_pdf(company: Any, invoice: Any, total: Any = None) -> InvoicePDF:
    renderer = InvoiceRenderer(company, invoice, total)
    return InvoicePDF(renderer.document, renderer.render())


def render_invoice_payload(payload: Dict[str, Any]) -> bytes:
    """Render ``{"company": ..., "invoice": ..., "total": ...}`` to PDF bytes."""
    company = Company.from_dict(payload.get("company"))
    invoice = Invoice.from_dict(payload.get("invoice"))
    total: Optional[Any] = payload.get("total")
    if total is None:
        total = invoice_total(invoice.items)
    return build_invoice_pdf(company, invoice, total).output()
