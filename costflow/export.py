"""
Export utilities for completed calculations.

Every function takes a CalculationRecord (or None) and is a no-op returning
None when there is nothing to export, so callers never need to guard.

- to_csv / download_csv:   INPUTS and RESULTS sections as CSV
- build_printable_html:    standalone HTML page with the math text
- trigger_print:           the same page, calling window.print() on load
- download_pdf:            estimate document built with fpdf2
- copy_summary:            plain-text summary to a clipboard writer, with a
                           manual-selection fallback when the clipboard refuses
"""

import csv
import html
import io
import logging
from typing import Callable, Optional

from fpdf import FPDF
from pydantic import BaseModel

from .calculators.units import format_currency, format_number
from .errors import ExportFailure
from .runner import CalculationRecord

logger = logging.getLogger(__name__)

DEFAULT_BRAND = "CostFlow Estimator"

# Result keys shown in the copied summary, in order, when present
KEY_RESULTS = ("material_cost", "labor_cost", "equipment_cost", "subtotal", "markup", "tax", "total")


class ExportFile(BaseModel):
    filename: str
    media_type: str
    content: bytes


class CopyResult(BaseModel):
    copied: bool
    text: str
    manual: bool = False  # True: show the text for manual selection
    toast: str = ""


def format_label(key: str) -> str:
    """'adjusted_yd3' -> 'Adjusted Yd3'"""
    return key.replace("_", " ").replace("-", " ").strip().title()


def _fmt_value(key: str, value) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)):
        if key.endswith(("_cost", "_price", "_flat")) or key in ("subtotal", "markup", "tax", "total"):
            return format_currency(value)
        return format_number(value, 3)
    return "" if value is None else str(value)


def _visible(items: dict) -> list:
    return [(k, v) for k, v in (items or {}).items() if not str(k).startswith("_")]


def _generated(record: CalculationRecord) -> str:
    return record.timestamp.strftime("%B %d, %Y %H:%M")


def _filename(record: CalculationRecord, ext: str) -> str:
    return "%s_calculation_%s.%s" % (record.type, record.timestamp.strftime("%Y-%m-%d"), ext)


# --- CSV ---

def to_csv(record: Optional[CalculationRecord]) -> Optional[str]:
    if record is None:
        return None
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["%s Results" % record.title])
    writer.writerow(["Generated", _generated(record)])
    writer.writerow([])
    writer.writerow(["INPUTS"])
    for key, value in _visible(record.inputs):
        writer.writerow([format_label(key), "" if value is None else value])
    writer.writerow([])
    writer.writerow(["RESULTS"])
    for key, value in _visible(record.results):
        writer.writerow([format_label(key), value])
    return buf.getvalue()


def download_csv(record: Optional[CalculationRecord]) -> Optional[ExportFile]:
    text = to_csv(record)
    if text is None:
        return None
    return ExportFile(filename=_filename(record, "csv"), media_type="text/csv", content=text.encode("utf-8"))


# --- Print / HTML ---

PRINT_STYLE = """
body { font-family: Arial, sans-serif; margin: 20px; }
.header { border-bottom: 2px solid #333; padding-bottom: 10px; margin-bottom: 20px; }
.section { margin: 20px 0; }
.item { display: flex; justify-content: space-between; padding: 5px 0; border-bottom: 1px dotted #ccc; }
.label { font-weight: bold; }
pre { white-space: pre-wrap; font-family: inherit; }
@media print { body { margin: 0; } .no-print { display: none; } }
"""


def _html_items(items: list) -> str:
    return "\n".join(
        '<div class="item"><span class="label">%s:</span><span class="value">%s</span></div>'
        % (html.escape(format_label(k)), html.escape(_fmt_value(k, v)))
        for k, v in items
    )


def build_printable_html(record: Optional[CalculationRecord], brand: str = DEFAULT_BRAND,
                         auto_print: bool = False) -> Optional[str]:
    if record is None:
        return None
    title = html.escape("%s Calculator Results" % record.title)
    script = "<script>window.addEventListener('load', function () { window.print(); });</script>" if auto_print else ""
    math = ""
    if record.math:
        math = '<div class="section"><h3>Show the Math</h3><pre>%s</pre></div>' % html.escape(record.math)
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\">\n<title>%s</title>\n"
        "<style>%s</style>\n%s\n</head>\n<body>\n"
        '<div class="header"><h1>%s</h1><p>Generated: %s</p><p>%s</p></div>\n'
        '<div class="section"><h3>Input Values</h3>\n%s\n</div>\n'
        '<div class="section"><h3>Results</h3>\n%s\n</div>\n'
        "%s\n"
        '<div class="section no-print"><p><small>Generated by %s</small></p></div>\n'
        "</body>\n</html>\n"
    ) % (
        title, PRINT_STYLE, script, title, html.escape(_generated(record)), html.escape(record.summary),
        _html_items(_visible(record.inputs)), _html_items(_visible(record.results)),
        math, html.escape(brand),
    )


def trigger_print(record: Optional[CalculationRecord], brand: str = DEFAULT_BRAND) -> Optional[str]:
    """Printable page that opens the browser print dialog as soon as it loads."""
    return build_printable_html(record, brand=brand, auto_print=True)


# --- PDF ---

def _safe(text: str) -> str:
    """Replace Unicode chars that can't be rendered by built-in PDF fonts (latin-1)."""
    if not text:
        return ""
    return (
        str(text)
        .replace("\u2014", " - ")  # em dash
        .replace("\u2013", "-")    # en dash
        .replace("\u2212", "-")    # minus sign
        .replace("\u2080", "0")    # subscript digits
        .replace("\u2081", "1")
        .replace("**", "")
        .encode("latin-1", errors="replace")
        .decode("latin-1")
    )


class EstimatePDF(FPDF):
    """Estimate document: header, inputs, results, math."""

    def __init__(self, brand: str = DEFAULT_BRAND):
        super().__init__()
        self.brand = brand
        self.set_auto_page_break(auto=True, margin=20)

    def header(self):
        pass  # drawn once on the first page

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(150, 150, 150)
        self.cell(0, 10, f"{_safe(self.brand)} - Page {self.page_no()}/{{nb}}", align="C")

    def section_header(self, title):
        self.set_font("Helvetica", "B", 11)
        self.set_fill_color(45, 55, 72)
        self.set_text_color(255, 255, 255)
        self.cell(0, 8, f"  {title}", fill=True, new_x="LMARGIN", new_y="NEXT")
        self.set_text_color(0, 0, 0)
        self.ln(2)

    def key_value_row(self, label, value, bold=False):
        self.set_font("Helvetica", "B" if bold else "", 9)
        self.cell(110, 5.5, _safe(label))
        self.cell(0, 5.5, _safe(value), align="R", new_x="LMARGIN", new_y="NEXT")


def render_pdf(record: CalculationRecord, brand: str = DEFAULT_BRAND) -> bytes:
    pdf = EstimatePDF(brand=brand)
    pdf.alias_nb_pages()
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 18)
    pdf.cell(0, 10, _safe(brand), new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "B", 13)
    pdf.cell(0, 8, _safe("%s Estimate" % record.title), new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 10)
    pdf.cell(0, 5, f"Date: {_generated(record)}", new_x="LMARGIN", new_y="NEXT")
    if record.summary:
        pdf.ln(2)
        pdf.multi_cell(0, 5, _safe(record.summary))
    pdf.ln(4)

    pdf.section_header("INPUTS")
    for key, value in _visible(record.inputs):
        pdf.key_value_row(format_label(key), _fmt_value(key, value))
    pdf.ln(4)

    pdf.section_header("RESULTS")
    for key, value in _visible(record.results):
        pdf.key_value_row(format_label(key), _fmt_value(key, value), bold=(key == "total"))
    pdf.ln(4)

    if record.math:
        pdf.section_header("SHOW THE MATH")
        pdf.set_font("Helvetica", "", 8)
        for line in record.math.splitlines():
            if line.startswith("###"):
                pdf.set_font("Helvetica", "B", 9)
                pdf.multi_cell(0, 5, _safe(line.lstrip("# ")), new_x="LMARGIN", new_y="NEXT")
                pdf.set_font("Helvetica", "", 8)
            elif line.strip():
                pdf.multi_cell(0, 4.5, _safe(line), new_x="LMARGIN", new_y="NEXT")
            else:
                pdf.ln(1.5)

    pdf.ln(6)
    pdf.set_font("Helvetica", "I", 7)
    pdf.set_text_color(120, 120, 120)
    pdf.multi_cell(0, 4, "Rough order of magnitude estimate. Prices are representative regional "
                         "averages and exclude site-specific conditions.")
    return bytes(pdf.output())


def download_pdf(record: Optional[CalculationRecord], brand: str = DEFAULT_BRAND) -> Optional[ExportFile]:
    if record is None:
        return None
    return ExportFile(filename=_filename(record, "pdf"), media_type="application/pdf",
                      content=render_pdf(record, brand=brand))


# --- Clipboard ---

def summary_text(record: CalculationRecord) -> str:
    lines = ["%s Calculator Results" % record.title, "Generated: %s" % _generated(record), ""]
    if record.summary:
        lines += [record.summary, ""]
    for key in KEY_RESULTS:
        if key in record.results:
            lines.append("%s: %s" % (format_label(key), _fmt_value(key, record.results[key])))
    return "\n".join(lines)


def copy_summary(record: Optional[CalculationRecord],
                 clipboard: Optional[Callable[[str], None]] = None) -> Optional[CopyResult]:
    """
    Copy the summary text with the given clipboard writer. A missing or failing
    clipboard falls back to manual selection; the failure is logged, not raised.
    """
    if record is None:
        return None
    text = summary_text(record)
    try:
        if clipboard is None:
            raise ExportFailure("copy", "clipboard not available")
        try:
            clipboard(text)
        except Exception as e:
            raise ExportFailure("copy", str(e)) from e
    except ExportFailure as e:
        logger.info("%s; falling back to manual selection", e)
        return CopyResult(copied=False, text=text, manual=True,
                          toast="Copy unavailable. Select the text below and copy it manually.")
    return CopyResult(copied=True, text=text, toast="Results copied to clipboard")
