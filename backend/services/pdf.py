"""
Bon de commande PDF (A4 portrait, fpdf2).

La mise en page est séparée du dessin :
    - paginate_rows / place_totals : calcul pur des positions (testable)
    - render_order_pdf : dessine à partir de ces positions

Les polices sont passées explicitement (PdfFonts), jamais via un état global.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from fpdf import FPDF

from backend.app.core.config import Settings
from backend.app.db.models.models_v1 import Order

# A4 en points : 595.28 x 841.89, marges ~20mm
MARGIN_PT = 57
PAGE_WIDTH = 595.28
PAGE_HEIGHT = 841.89
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN_PT
FOOTER_HEIGHT = 22
FOOTER_Y = PAGE_HEIGHT - MARGIN_PT - 12
BODY_TOP = 100
TABLE_BOTTOM = PAGE_HEIGHT - MARGIN_PT - FOOTER_HEIGHT

ROW_HEIGHT = 20
HEADER_ROW_HEIGHT = 24
TOTALS_HEIGHT = 50
NOTES_HEIGHT = 46

COL_NAME = 200
COL_UNIT = 52
COL_PRICE = 88
COL_QTY = 52
COL_TOTAL = int(CONTENT_WIDTH - COL_NAME - COL_UNIT - COL_PRICE - COL_QTY)

COLORS = {
    "dark_gray": (61, 61, 61),
    "gold": (212, 175, 55),
    "text": (26, 26, 26),
    "text_muted": (75, 85, 99),
    "row_alt": (249, 250, 251),
    "border": (229, 231, 235),
    "header_bg": (243, 244, 246),
    "white": (255, 255, 255),
}

LABELS = {
    "order_details": "Order details",
    "order_no": "Order no.",
    "date": "Date",
    "supplier": "Supplier",
    "status": "Status",
    "item": "Item",
    "unit": "Unit",
    "price": "Unit price",
    "qty": "Qty",
    "total": "Total",
    "subtotal": "Subtotal",
    "notes": "Notes",
    "page": "Page",
    "generated": "Generated",
}

_TRANSLIT = str.maketrans(
    {"ş": "s", "Ş": "S", "ı": "i", "İ": "I", "ğ": "g", "Ğ": "G", "ü": "u", "Ü": "U", "ö": "o", "Ö": "O", "ç": "c", "Ç": "C"}
)


@dataclass(frozen=True)
class PdfFonts:
    family: str = "helvetica"
    # Police TTF optionnelle (unicode complet) ; sinon polices core latin-1
    ttf_regular: str | None = None
    ttf_bold: str | None = None

    @property
    def unicode(self) -> bool:
        return self.ttf_regular is not None


def to_pdf_text(s: str | None, fonts: PdfFonts) -> str:
    s = s or ""
    if fonts.unicode:
        return s
    s = s.translate(_TRANSLIT)
    out = []
    for ch in s:
        try:
            ch.encode("latin-1")
            out.append(ch)
            continue
        except UnicodeEncodeError:
            pass
        base = "".join(c for c in unicodedata.normalize("NFKD", ch) if not unicodedata.combining(c))
        try:
            base.encode("latin-1")
            out.append(base or "?")
        except UnicodeEncodeError:
            out.append("?")
    return "".join(out)


def format_amount(value: Decimal | float | int, currency: str = "MKD") -> str:
    """120000 -> '120.000 MKD' (séparateur de milliers '.', pas de décimales)."""
    n = Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{int(n):,} {currency}".replace(",", ".")


# ---------- LAYOUT (pur) ----------
@dataclass
class TableLayout:
    rows: list[tuple[int, float]] = field(default_factory=list)  # (page index, y) par ligne
    header_rows: list[tuple[int, float]] = field(default_factory=list)
    end_page: int = 0
    end_y: float = 0.0

    @property
    def page_count(self) -> int:
        return self.end_page + 1


def paginate_rows(
    row_count: int,
    start_y: float,
    *,
    body_top: float = BODY_TOP,
    table_bottom: float = TABLE_BOTTOM,
    row_height: float = ROW_HEIGHT,
    header_height: float = HEADER_ROW_HEIGHT,
) -> TableLayout:
    """
    Place les lignes du tableau.

    `start_y` : position du header sur la première page.
    Nouvelle page uniquement si la ligne suivante déborde ; le header
    du tableau est répété en haut de chaque nouvelle page.
    """
    layout = TableLayout()
    page = 0
    layout.header_rows.append((page, start_y))
    y = start_y + header_height

    for _ in range(row_count):
        if y + row_height > table_bottom:
            page += 1
            layout.header_rows.append((page, body_top))
            y = body_top + header_height
        layout.rows.append((page, y))
        y += row_height

    layout.end_page = page
    layout.end_y = y
    return layout


def place_totals(
    page: int,
    y: float,
    *,
    has_notes: bool,
    body_top: float = BODY_TOP,
    table_bottom: float = TABLE_BOTTOM,
) -> tuple[tuple[int, float], tuple[int, float] | None]:
    """Position (page, y) du bloc totaux puis du bloc notes (None si pas de notes)."""
    y += 8
    if table_bottom - y < TOTALS_HEIGHT:
        page += 1
        y = body_top
    totals = (page, y)
    y += TOTALS_HEIGHT

    if not has_notes:
        return totals, None
    if table_bottom - y < NOTES_HEIGHT:
        page += 1
        y = body_top
    return totals, (page, y)


# ---------- RENDER ----------
class OrderDocument(FPDF):
    def __init__(self, settings: Settings, fonts: PdfFonts, generated_at: datetime):
        super().__init__(orientation="P", unit="pt", format="A4")
        self.settings = settings
        self.font_set = fonts
        self.generated_at = generated_at
        self.set_auto_page_break(False)
        self.set_margins(MARGIN_PT, MARGIN_PT, MARGIN_PT)
        if fonts.unicode:
            self.add_font(fonts.family, "", fonts.ttf_regular)
            self.add_font(fonts.family, "B", fonts.ttf_bold or fonts.ttf_regular)

    def text_of(self, s: str | None) -> str:
        return to_pdf_text(s, self.font_set)

    def use_font(self, size: float, bold: bool = False) -> None:
        self.set_font(self.font_set.family, "B" if bold else "", size)

    def use_color(self, key: str) -> None:
        self.set_text_color(*COLORS[key])

    def text_at(self, x: float, y: float, w: float, h: float, text: str, align: str = "L") -> None:
        self.set_xy(x, y)
        self.cell(w, h, self.text_of(text), align=align)

    def header(self) -> None:
        s = self.settings
        self.use_color("gold")
        self.use_font(16, bold=True)
        self.text_at(MARGIN_PT, 50, 250, 18, s.company_name)

        self.use_color("text_muted")
        self.use_font(9)
        details_w = 180
        details_x = PAGE_WIDTH - MARGIN_PT - details_w
        for i, line in enumerate([s.company_address, s.company_city, s.company_email, s.company_phone, s.company_reg_no]):
            self.text_at(details_x, 38 + 12 * i, details_w, 12, line, align="R")

        self.set_draw_color(*COLORS["border"])
        self.line(MARGIN_PT, 96, PAGE_WIDTH - MARGIN_PT, 96)

    def footer(self) -> None:
        self.use_color("text_muted")
        self.use_font(7)
        generated = self.generated_at.strftime("%d.%m.%Y %H:%M")
        self.text_at(MARGIN_PT, FOOTER_Y - 8, 300, 8, f"{self.settings.company_name} | {self.settings.company_reg_no}")
        self.text_at(MARGIN_PT, FOOTER_Y, 300, 8, f"{LABELS['generated']}: {generated}")
        self.text_at(
            PAGE_WIDTH - MARGIN_PT - 80,
            FOOTER_Y,
            80,
            8,
            f"{LABELS['page']} {self.page_no()} / {{nb}}",
            align="R",
        )

    def draw_meta(self, order: Order) -> float:
        top = BODY_TOP
        height = 52
        self.set_fill_color(*COLORS["header_bg"])
        self.set_draw_color(*COLORS["border"])
        self.rect(MARGIN_PT, top, CONTENT_WIDTH, height, style="DF")

        self.use_color("dark_gray")
        self.use_font(10, bold=True)
        self.text_at(MARGIN_PT + 10, top + 8, 200, 12, LABELS["order_details"])

        self.use_color("text")
        self.use_font(9)
        left_x = MARGIN_PT + 10
        right_x = MARGIN_PT + CONTENT_WIDTH * 0.55
        self.text_at(left_x, top + 24, 200, 12, f"{LABELS['order_no']}: {order.order_number}")
        self.text_at(left_x, top + 38, 200, 12, f"{LABELS['date']}: {order.order_date.strftime('%Y.%m.%d')}")
        self.text_at(right_x, top + 24, 200, 12, f"{LABELS['supplier']}: {order.supplier_name}")
        self.text_at(right_x, top + 38, 200, 12, f"{LABELS['status']}: {order.status.value}")
        return top + height + 10

    def draw_table_header(self, y: float) -> None:
        x = MARGIN_PT
        self.set_fill_color(*COLORS["dark_gray"])
        self.rect(x, y, CONTENT_WIDTH, HEADER_ROW_HEIGHT, style="F")
        self.use_color("white")
        self.use_font(9, bold=True)
        h = HEADER_ROW_HEIGHT
        self.text_at(x + 8, y, COL_NAME - 8, h, LABELS["item"])
        self.text_at(x + COL_NAME, y, COL_UNIT, h, LABELS["unit"], align="R")
        self.text_at(x + COL_NAME + COL_UNIT, y, COL_PRICE, h, LABELS["price"], align="R")
        self.text_at(x + COL_NAME + COL_UNIT + COL_PRICE, y, COL_QTY, h, LABELS["qty"], align="R")
        self.text_at(x + COL_NAME + COL_UNIT + COL_PRICE + COL_QTY, y, COL_TOTAL - 4, h, LABELS["total"], align="R")

    def draw_row(self, index: int, y: float, name: str, unit: str, price: Decimal, qty: int) -> None:
        x = MARGIN_PT
        cur = self.settings.currency
        fill = COLORS["row_alt"] if index % 2 == 1 else COLORS["white"]
        self.set_fill_color(*fill)
        self.set_draw_color(*COLORS["border"])
        self.rect(x, y, CONTENT_WIDTH, ROW_HEIGHT, style="DF")

        self.use_color("text")
        self.use_font(9)
        h = ROW_HEIGHT
        self.text_at(x + 8, y, COL_NAME - 10, h, name)
        self.text_at(x + COL_NAME, y, COL_UNIT, h, unit, align="R")
        self.text_at(x + COL_NAME + COL_UNIT, y, COL_PRICE, h, format_amount(price, cur), align="R")
        self.text_at(x + COL_NAME + COL_UNIT + COL_PRICE, y, COL_QTY, h, str(qty), align="R")
        self.text_at(
            x + COL_NAME + COL_UNIT + COL_PRICE + COL_QTY,
            y,
            COL_TOTAL - 4,
            h,
            format_amount(price * qty, cur),
            align="R",
        )

    def draw_totals(self, y: float, total: Decimal) -> None:
        cur = self.settings.currency
        box_w = 200
        numbers_w = 95
        box_right = PAGE_WIDTH - MARGIN_PT - 10
        box_x = box_right - box_w
        line_y = y + 18

        self.use_color("text")
        self.use_font(9)
        self.text_at(box_x + 8, y + 2, 100, 12, LABELS["subtotal"])
        self.text_at(box_right - 8 - numbers_w, y + 2, numbers_w, 12, format_amount(total, cur), align="R")
        self.set_draw_color(*COLORS["border"])
        self.line(box_x, line_y, box_x + box_w, line_y)
        self.use_font(10, bold=True)
        self.text_at(box_x + 8, line_y + 6, 100, 12, LABELS["total"])
        self.text_at(box_right - 8 - numbers_w, line_y + 6, numbers_w, 12, format_amount(total, cur), align="R")

    def draw_notes(self, y: float, notes: str) -> None:
        pad = 10
        self.set_fill_color(*COLORS["row_alt"])
        self.set_draw_color(*COLORS["border"])
        self.rect(MARGIN_PT, y, CONTENT_WIDTH, NOTES_HEIGHT - 10, style="DF")
        self.use_color("text_muted")
        self.use_font(8, bold=True)
        self.text_at(MARGIN_PT + pad, y + 4, 100, 10, LABELS["notes"])
        self.use_color("text")
        self.use_font(9)
        self.text_at(MARGIN_PT + pad, y + 16, CONTENT_WIDTH - 2 * pad, 12, notes.strip())

    def goto_page(self, page_index: int) -> None:
        # les pages sont créées dans l'ordre ; add_page déclenche header/footer
        while self.page_no() < page_index + 1:
            self.add_page()


def render_order_pdf(
    order: Order,
    settings: Settings,
    *,
    fonts: PdfFonts | None = None,
    generated_at: datetime | None = None,
) -> bytes:
    fonts = fonts or PdfFonts(
        family="dejavu" if settings.pdf_font_path else "helvetica",
        ttf_regular=settings.pdf_font_path,
        ttf_bold=settings.pdf_font_bold_path,
    )
    doc = OrderDocument(settings, fonts, generated_at or datetime.now(timezone.utc))
    doc.add_page()

    items = list(order.items)
    table_top = doc.draw_meta(order)
    layout = paginate_rows(len(items), table_top)

    headers = dict(layout.header_rows)
    drawn_headers: set[int] = set()
    for idx, (item, (page, y)) in enumerate(zip(items, layout.rows)):
        doc.goto_page(page)
        if page not in drawn_headers:
            doc.draw_table_header(headers[page])
            drawn_headers.add(page)
        doc.draw_row(idx, y, item.name, item.unit, Decimal(str(item.price)), item.quantity)
    if 0 not in drawn_headers:
        doc.draw_table_header(headers[0])

    has_notes = bool(order.notes and order.notes.strip())
    (t_page, t_y), notes_pos = place_totals(layout.end_page, layout.end_y, has_notes=has_notes)
    doc.goto_page(t_page)
    doc.draw_totals(t_y, Decimal(str(order.total_amount)))
    if notes_pos is not None:
        doc.goto_page(notes_pos[0])
        doc.draw_notes(notes_pos[1], order.notes or "")

    return bytes(doc.output())
