"""Page geometry, colors and labels for the A4 invoice template.

All distances are millimetres measured from the top-left corner of the page.
Font sizes are points.
"""

from __future__ import annotations

PAGE_W = 210.0
PAGE_H = 297.0
MARGIN_LEFT = 22.0
MARGIN_RIGHT = 22.0
CONTENT_W = PAGE_W - MARGIN_LEFT - MARGIN_RIGHT
CONTENT_RIGHT = MARGIN_LEFT + CONTENT_W

# Table columns
DESC_X = MARGIN_LEFT + 4
DESC_W = 76.0
QTY_X = MARGIN_LEFT + 88
PRICE_X = MARGIN_LEFT + 120
AMOUNT_X = CONTENT_RIGHT - 4
CELL_TEXT_OFFSET = 6.5

# Vertical layout
TOP_Y = 25.0
HEADER_LINE_H = 5.0
TITLE_Y = 30.0
NUMBER_Y = 37.0
DIVIDER_Y = 58.0
DIVIDER_STEPS = 40
DIVIDER_WIDTH = 1.0
CLIENT_BLOCK_GAP = 10.0
CLIENT_LINE_H = 5.0
TABLE_MIN_Y = 100.0
TABLE_GAP = 8.0

TABLE_HEADER_H = 10.0
ROW_MIN_H = 10.0
ROW_LINE_H = 5.0
ROW_PAD = 5.0
RULE_WIDTH = 0.3

PAGE_USABLE_BOTTOM = 265.0
POST_TABLE_SPACE = 80.0
TOTALS_SLACK = 10.0
BLOCK_SPACE = 20.0

TOTAL_BOX_W = 90.0
TOTAL_BOX_H = 12.0
TOTAL_BOX_GAP = 8.0
TOTAL_BLOCK_H = 20.0
TOTAL_LABEL_PAD = 6.0

TEXT_LINE_H = 5.0
CONDITIONS_GAP = 5.0

FOOTER_RULE_Y = 276.0
FOOTER_TEXT_Y = 280.0

# Derived row capacities for single-line rows, used for page estimates.
ITEMS_START_Y_FIRST = TABLE_MIN_Y + TABLE_HEADER_H
ITEMS_START_Y_CONT = TOP_Y + TABLE_HEADER_H
CONT_TABLE_SPACE = PAGE_USABLE_BOTTOM - ITEMS_START_Y_CONT
FIRST_PAGE_ROWS = int((PAGE_USABLE_BOTTOM - ITEMS_START_Y_FIRST - ROW_MIN_H) // ROW_MIN_H) + 1
MID_PAGE_ROWS = int((PAGE_USABLE_BOTTOM - ITEMS_START_Y_CONT - ROW_MIN_H) // ROW_MIN_H) + 1
LAST_PAGE_ROWS = int((PAGE_USABLE_BOTTOM - POST_TABLE_SPACE - ITEMS_START_Y_CONT) // ROW_MIN_H) + 1
SINGLE_PAGE_ROWS = int((PAGE_USABLE_BOTTOM - POST_TABLE_SPACE - ITEMS_START_Y_FIRST) // ROW_MIN_H) + 1

# Fonts
SANS = "sans"
SERIF = "serif"
FONT_SIZE_NAME = 11
FONT_SIZE_BODY = 9.5
FONT_SIZE_VALUE = 10
FONT_SIZE_TABLE_HEADER = 9
FONT_SIZE_TITLE = 30
FONT_SIZE_TOTAL = 14
FONT_SIZE_FOOTER = 8

# Colors
COLOR_TEAL = (46, 184, 184)
COLOR_TEAL_PALE = (204, 234, 234)
COLOR_DARK = (51, 51, 51)
COLOR_GRAY = (102, 102, 102)
COLOR_LIGHT_GRAY = (136, 136, 136)
COLOR_MUTED = (85, 85, 85)
COLOR_WHITE = (255, 255, 255)
COLOR_TOTAL_BOX = (245, 245, 245)
COLOR_ROW_RULE = (230, 230, 230)
COLOR_FOOTER_RULE = (210, 210, 210)

# Labels
TITLE = "FACTURE"
LABEL_ATTENTION = "À l’attention de"
LABEL_DATE = "Date"
LABEL_IFU = "IFU : "
LABEL_VMCF = "VMCF : "
LABEL_DESCRIPTION = "Description"
LABEL_QUANTITY = "Quantité"
LABEL_UNIT_PRICE = "Prix unitaire €"
LABEL_AMOUNT = "Montant €"
LABEL_TOTAL = "Total TTC"
LABEL_CONDITIONS = "Conditions"
LABEL_PAYMENT = "Détails paiement"
LABEL_PAYPAL = "Paypal : "
DEFAULT_CONDITIONS = "Paiement à réception"
PLACEHOLDER = "-"
