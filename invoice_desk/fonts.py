"""Font discovery and text drawing helpers."""

from __future__ import annotations

import os
import threading
from typing import Dict, List, Optional, Tuple

from fpdf import FPDF  # type: ignore

from .pdf_constants import SANS, SERIF

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_BUNDLED_DIR = os.path.join(_PROJECT_ROOT, "fonts")
_SYSTEM_DIRS = [
    "/usr/share/fonts/truetype/dejavu",
    "/usr/share/fonts/dejavu",
    "/usr/share/fonts/TTF",
    "/Library/Fonts",
]


def font_candidates(filename: str) -> List[str]:
    return [os.path.join(directory, filename) for directory in [_BUNDLED_DIR, *_SYSTEM_DIRS]]


def find_font_path(env_var: str, candidates: List[str]) -> Optional[str]:
    override = os.getenv(env_var)
    if override and os.path.exists(override):
        return override

    for path in candidates:
        if os.path.exists(path):
            return path
    return None


# (family, style) -> (override env var, file name)
FONT_FILES: Dict[Tuple[str, str], Tuple[str, str]] = {
    (SANS, ""): ("INVOICE_FONT_PATH", "DejaVuSans.ttf"),
    (SANS, "B"): ("INVOICE_FONT_BOLD_PATH", "DejaVuSans-Bold.ttf"),
    (SANS, "I"): ("INVOICE_FONT_ITALIC_PATH", "DejaVuSans-Oblique.ttf"),
    (SERIF, "B"): ("INVOICE_FONT_TITLE_PATH", "DejaVuSerif-Bold.ttf"),
}


def regular_font_available() -> bool:
    env_var, filename = FONT_FILES[(SANS, "")]
    return find_font_path(env_var, font_candidates(filename)) is not None


FONT_INIT_LOCK = threading.Lock()


class FontManager:
    """Registers the invoice fonts on an FPDF document and measures text in document units.

    Styles whose font file is missing fall back to the regular sans face; a
    missing bold face is simulated by drawing the text twice.
    """

    FAMILIES = {SANS: "InvoiceSans", SERIF: "InvoiceSerif"}

    def __init__(self, pdf: FPDF) -> None:
        self.pdf = pdf
        self.available: Dict[Tuple[str, str], bool] = {}

        paths = {
            key: find_font_path(env_var, font_candidates(filename))
            for key, (env_var, filename) in FONT_FILES.items()
        }
        if not paths[(SANS, "")]:
            raise RuntimeError(
                "Unicode font not found. Set INVOICE_FONT_PATH to a valid TTF file."
            )

        with FONT_INIT_LOCK:
            for (family, style), path in paths.items():
                if not path:
                    continue
                self.pdf.add_font(self.FAMILIES[family], style, path)
                self.available[(family, style)] = True

    def _resolve(self, family: str, style: str) -> Tuple[str, str, bool]:
        """Return the registered family, style and whether bold must be simulated."""
        style = "B" if "B" in style else ("I" if "I" in style else "")
        if self.available.get((family, style)):
            return self.FAMILIES[family], style, False
        if family != SANS:
            return self._resolve(SANS, style)
        return self.FAMILIES[SANS], "", style == "B"

    def set_font(self, size: float, style: str = "", family: str = SANS) -> bool:
        name, resolved, fake_bold = self._resolve(family, style)
        self.pdf.set_font(name, resolved, size)
        return fake_bold

    def text_width(self, text: str, size: float, style: str = "", family: str = SANS) -> float:
        self.set_font(size, style, family)
        return self.pdf.get_string_width(text)

    def draw_text(
        self,
        x: float,
        y: float,
        text: str,
        size: float,
        color: Tuple[int, int, int],
        style: str = "",
        family: str = SANS,
    ) -> None:
        self.pdf.set_text_color(*color)
        fake_bold = self.set_font(size, style, family)
        self.pdf.text(x, y, text)
        if fake_bold:
            self.pdf.text(x + 0.15, y, text)
