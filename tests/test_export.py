"""
Export utilities: CSV, printable HTML, print, PDF, clipboard copy.
"""

from datetime import datetime

from costflow import export
from costflow.runner import CalculationRecord


# --- Test fixtures ---

def _sample_record():
    """A computed concrete slab, as the runner stores it."""
    return CalculationRecord(
        type="concrete",
        title="Concrete Slab",
        inputs={"length_ft": 20.0, "width_ft": 10.0, "pour_type": "slab", "apply_tax": False},
        results={
            "adjusted_yd3": 2.593,
            "material_cost": 375.93,
            "labor_cost": 56.17,
            "subtotal": 432.10,
            "total": 432.10,
            "_debug": "hidden",
        },
        timestamp=datetime(2024, 2, 18, 9, 30),
        math="### Volume\nVolume_yd³ = 66.67 ft³ ÷ 27 = 2.469 yd³\n\n**Total = $432.10**",
        summary="2.59 yd³ concrete | $432.10 total",
    )


# --- No calculation yet ---

def test_exports_are_noops_without_a_record():
    assert export.to_csv(None) is None
    assert export.download_csv(None) is None
    assert export.build_printable_html(None) is None
    assert export.trigger_print(None) is None
    assert export.download_pdf(None) is None
    assert export.copy_summary(None, clipboard=lambda text: None) is None


# --- CSV ---

def test_csv_sections():
    text = export.to_csv(_sample_record())
    lines = text.splitlines()
    assert lines[0] == "Concrete Slab Results"
    assert lines[1] == "Generated,\"February 18, 2024 09:30\""
    assert "INPUTS" in lines
    assert "Length Ft,20.0" in lines
    assert "Apply Tax,False" in lines
    assert "RESULTS" in lines
    assert "Total,432.1" in lines
    assert "hidden" not in text


def test_download_csv_file():
    file = export.download_csv(_sample_record())
    assert file.filename == "concrete_calculation_2024-02-18.csv"
    assert file.media_type == "text/csv"
    assert file.content.startswith(b"Concrete Slab Results")


# --- HTML / print ---

def test_printable_html_escapes_and_formats():
    record = _sample_record()
    record = record.model_copy(update={"title": "Slab <Pro>"})
    page = export.build_printable_html(record, brand="Acme Estimating")
    assert "<title>Slab &lt;Pro&gt; Calculator Results</title>" in page
    assert "$432.10" in page
    assert "Show the Math" in page
    assert "Generated by Acme Estimating" in page
    assert "window.print()" not in page


def test_trigger_print_calls_window_print():
    page = export.trigger_print(_sample_record())
    assert "window.print()" in page


# --- PDF ---

def test_pdf_document():
    file = export.download_pdf(_sample_record())
    assert file.filename.endswith(".pdf")
    assert file.media_type == "application/pdf"
    assert file.content.startswith(b"%PDF")


def test_safe_text_for_builtin_fonts():
    assert export._safe("ceil₀.₁(400 − 20)") == "ceil0.1(400 - 20)"
    assert export._safe("**Total**") == "Total"
    assert export._safe("") == ""


# --- Clipboard ---

def test_copy_with_clipboard():
    copied = []
    result = export.copy_summary(_sample_record(), clipboard=copied.append)
    assert result.copied is True
    assert result.manual is False
    assert copied == [result.text]
    assert "Total: $432.10" in result.text
    assert "2.59 yd³ concrete" in result.text


def test_copy_falls_back_to_manual_selection():
    def refuse(text):
        raise PermissionError("clipboard blocked")

    result = export.copy_summary(_sample_record(), clipboard=refuse)
    assert result.copied is False
    assert result.manual is True
    assert "manually" in result.toast
    assert "Material Cost: $375.93" in result.text

    no_clipboard = export.copy_summary(_sample_record())
    assert no_clipboard.manual is True
