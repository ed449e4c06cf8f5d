import pytest
from openpyxl import load_workbook

from sheet_interpreter.cli import build_parser, main


@pytest.fixture
def sheet_file(tmp_path):
    path = tmp_path / "sheet.txt"
    path.write_text("1|2|=A1 + B1\n=incFrom(1)\n=^^\n", encoding="utf-8")
    return path


def test_main(sheet_file, capsys):
    assert main([str(sheet_file)]) == 0
    out = capsys.readouterr().out
    assert out.splitlines() == ["1.0 | 2.0 | 3.0", "1.0", "2.0"]


def test_separator(sheet_file, capsys):
    assert main([str(sheet_file), "--separator", ";"]) == 0
    assert capsys.readouterr().out.splitlines()[0] == "1.0;2.0;3.0"


def test_output_workbook(sheet_file, tmp_path, capsys):
    output = tmp_path / "values.xlsx"
    assert main([str(sheet_file), "--output", str(output)]) == 0
    ws = load_workbook(output).active
    assert ws["C1"].value == 3.0
    assert ws["A3"].value == 2.0


def test_cycles_are_errors(tmp_path, capsys):
    path = tmp_path / "cycle.txt"
    path.write_text("=B1|=A1", encoding="utf-8")
    assert main([str(path)]) == 0
    assert capsys.readouterr().out.strip() == "Error | Error"


def test_cycles_abort_without_detection(tmp_path, capsys):
    path = tmp_path / "cycle.txt"
    path.write_text("=B1|=A1", encoding="utf-8")
    assert main([str(path), "--no-cycle-detection"]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Detected cycle: A1 -> B1 -> A1" in captured.err


def test_long_chain(tmp_path, capsys):
    path = tmp_path / "chain.txt"
    path.write_text(
        "\n".join(["=incFrom(1)"] + ["=^^"] * 1499 + ["=A1500 + A1"]),
        encoding="utf-8",
    )
    assert main([str(path)]) == 0
    assert capsys.readouterr().out.splitlines()[-1] == "1501.0"


def test_parse_error(tmp_path, capsys):
    path = tmp_path / "bad.txt"
    path.write_text("1\n=1 +", encoding="utf-8")
    assert main([str(path)]) == 1
    assert "A2" in capsys.readouterr().err


def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "missing.txt")]) == 1
    assert "not found" in capsys.readouterr().err


def test_usage():
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 2

    args = build_parser().parse_args(["sheet.txt", "--no-cycle-detection", "-v"])
    assert args.no_cycle_detection
    assert args.verbose
