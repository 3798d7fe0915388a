from pathlib import Path

from dualsolver import calculate
from dualsolver.project import VariableDefinition
from gui import export


def test_plain_text_report_for_success() -> None:
    externals = [VariableDefinition(1, "R", value=4700.0, unit="Ohm", locked=True)]
    result = calculate("var I = 1; 4.7 * I = 47;", externals).to_dict()
    text = export.build_plain_text(result)
    assert "DualSolver — Calculation Report" in text
    assert "  var I = 10; 4.7 * I = 47;" in text
    assert "R = 4700 [Ohm]  (locked)" in text
    assert "Solution found after" in text
    assert "Library: NumPy" in text


def test_plain_text_report_lists_errors() -> None:
    text = export.build_plain_text(calculate("a = b;").to_dict())
    assert "Failed (compile)" in text
    assert "1(1): Unknown variable a" in text
    assert "1(5): Unknown variable b" in text


def test_safe_filename() -> None:
    assert export.safe_filename("var x = 1;  x*x=2;") == "var_x_1_xx2"
    assert export.safe_filename("???") == "calculation"


def test_write_pdf_with_graph(tmp_path: Path) -> None:
    target = tmp_path / "report.pdf"
    result = calculate("var x = 1; x * x = 2;").to_dict()
    export.write_pdf(result, str(target))
    assert target.read_bytes().startswith(b"%PDF")


def test_write_pdf_for_failure(tmp_path: Path) -> None:
    target = tmp_path / "failed.pdf"
    export.write_pdf(calculate("x = ;").to_dict(), str(target))
    assert target.stat().st_size > 0
