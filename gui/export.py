"""
DualSolver — Calculation report export

Plain-text report (clipboard) and PDF report with the convergence graph.
Both work on ``CalculationResult.to_dict()`` data so they can be used
without a window.
"""

import os
import re
import tempfile

from fpdf import FPDF

from dualsolver.formatting import format_complex
from dualsolver.graph import analyze_result, build_figure


def _variable_line(var: dict, precision: int) -> str:
    value = complex(var.get("value", 0.0), var.get("imag", 0.0))
    unit = f" [{var['unit']}]" if var.get("unit") else ""
    lock = "  (locked)" if var.get("locked") else ""
    return f"{var['name']} = {format_complex(value, precision)}{unit}{lock}"


def build_plain_text(result: dict, precision: int = 6) -> str:
    """Convert a calculation result dict into a readable plain-text report."""
    lines: list[str] = []
    lines.append("=" * 56)
    lines.append("  DualSolver — Calculation Report")
    lines.append("=" * 56)

    lines.append("\n── SOURCE ─────────────────────────────────")
    lines.extend(f"  {line}" for line in result.get("source_code", "").splitlines())

    variables = result.get("variables", [])
    if variables:
        lines.append("\n── VARIABLES ──────────────────────────────")
        lines.extend(f"  {_variable_line(v, precision)}" for v in variables)

    lines.append("\n── RESULT ─────────────────────────────────")
    if result.get("ok"):
        lines.append(f"  {result.get('message', '')} after "
                     f"{result.get('iterations', 0)} iteration(s)")
    else:
        lines.append(f"  Failed ({result.get('failure')})")
        errors = result.get("errors", [])
        if errors:
            for e in errors:
                lines.append(f"  {e['line']}({e['column']}): {e['message']}")
        else:
            lines.append(f"  {result.get('message', '')}")

    summary = result.get("summary", {})
    if summary:
        lines.append("\n── SUMMARY ────────────────────────────────")
        lines.append(f"  Runtime: {summary.get('runtime_ms', '?')} ms")
        lines.append(f"  Timestamp: {summary.get('timestamp', '?')}")
        lines.append(f"  Library: {summary.get('library', '?')}")

    lines.append("\n" + "=" * 56)
    return "\n".join(lines)


def safe_filename(text: str) -> str:
    safe = re.sub(r'[<>:"/\\|?*;=]', '', text)[:40].strip()
    return re.sub(r'\s+', '_', safe) or "calculation"


def _latin1(text: str) -> str:
    # core PDF fonts only cover latin-1
    return text.replace("—", "-").encode("latin-1", "replace").decode("latin-1")


def write_pdf(result: dict, path: str, precision: int = 6) -> None:
    """Write *result* as a PDF report to *path*, graph included."""
    pdf = FPDF()
    pdf.set_auto_page_break(auto=True, margin=20)
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 20)
    pdf.set_text_color(26, 140, 255)
    pdf.cell(0, 12, "DualSolver - Calculation Report", new_x="LMARGIN", new_y="NEXT")
    pdf.set_draw_color(26, 140, 255)
    pdf.line(10, pdf.get_y(), 200, pdf.get_y())
    pdf.ln(6)

    def _section(title: str) -> None:
        pdf.ln(4)
        pdf.set_font("Helvetica", "B", 13)
        pdf.set_text_color(26, 140, 255)
        pdf.cell(0, 8, title, new_x="LMARGIN", new_y="NEXT")
        pdf.line(10, pdf.get_y(), 200, pdf.get_y())
        pdf.ln(3)

    def _mono_text(text: str, size: int = 10) -> None:
        pdf.set_font("Courier", "", size)
        pdf.set_text_color(30, 30, 30)
        pdf.multi_cell(0, 6, _latin1(text), new_x="LMARGIN", new_y="NEXT")

    _section("SOURCE")
    _mono_text(result.get("source_code", "") or " ")

    variables = result.get("variables", [])
    if variables:
        _section("VARIABLES")
        for var in variables:
            _mono_text(_variable_line(var, precision))

    _section("RESULT")
    if result.get("ok"):
        pdf.set_font("Courier", "", 14)
        pdf.set_text_color(76, 175, 80)
        pdf.cell(0, 10, _latin1(f"{result.get('message', '')} after "
                                f"{result.get('iterations', 0)} iteration(s)"),
                 new_x="LMARGIN", new_y="NEXT")
    else:
        _mono_text("\n".join(e["rendered"] for e in result.get("errors", []))
                   or result.get("message", ""))

    graph_img_path = None
    fig = build_figure(result)
    if fig is not None:
        tmp = tempfile.NamedTemporaryFile(suffix=".png", delete=False)
        fig.savefig(tmp.name, dpi=150, bbox_inches="tight")
        tmp.close()
        graph_img_path = tmp.name
        _section("CONVERGENCE")
        pdf.image(graph_img_path, x=10, w=pdf.w - 20)
        analysis = analyze_result(result)
        if analysis and analysis["rate"] is not None:
            _mono_text(f"Estimated order of convergence: {analysis['rate']:.2f}")

    summary = result.get("summary", {})
    if summary:
        _section("SUMMARY")
        for label in ("runtime_ms", "timestamp", "library"):
            _mono_text(f"{label}: {summary.get(label, '?')}")

    try:
        pdf.output(path)
    finally:
        if graph_img_path:
            os.remove(graph_img_path)
