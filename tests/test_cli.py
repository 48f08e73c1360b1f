"""Tests for the command-line interface."""

from __future__ import annotations

import csv
from typing import TYPE_CHECKING, Callable

import pytest
from m5_samples import absorbance_settings, block, grid_row, m5_text

from softmax_m5._cli import main
from softmax_m5._csv import CSV_HEADER

if TYPE_CHECKING:
    from pathlib import Path


def test_cli_help(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--help"])
    assert exc_info.value.code == 0
    assert "usage: softmax-m5" in capsys.readouterr().out


def test_cli_missing_input(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 0
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Missing input M5 tab-delimited file" in captured.err
    assert "--help" in captured.err


def test_cli_convert_to_stdout(
    simple_export: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main([str(simple_export)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == ",".join(CSV_HEADER)
    assert len(lines) == 5


def test_cli_convert_to_file(simple_export: Path, tmp_path: Path) -> None:
    out = tmp_path / "out.csv"
    assert main([str(simple_export), str(out)]) == 0
    with open(out, newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == list(CSV_HEADER)
    assert [r[1] for r in rows[1:]] == ["A01", "A02", "B01", "B02"]


def test_cli_bad_export_writes_nothing(
    write_m5: Callable[..., Path], tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    rows = [grid_row([1, 2], temperature="25"), grid_row([3, 4])]
    path = write_m5(m5_text(block(absorbance_settings(), [rows], end="oops\n")))
    out = tmp_path / "out.csv"
    assert main([str(path), str(out)]) == 1
    assert not out.exists()
    err = capsys.readouterr().err
    assert "Could not decode" in err
    assert "block.0.end" in err
    assert "type=missing_sentinel" in err


def test_cli_strict_flag(
    write_m5: Callable[..., Path], capsys: pytest.CaptureFixture[str]
) -> None:
    rows = [grid_row([1, 2], temperature="25", spacer="x"), grid_row([3, 4])]
    path = write_m5(m5_text(block(absorbance_settings(), [rows])))
    assert main([str(path)]) == 0
    capsys.readouterr()
    assert main(["--strict", str(path)]) == 1
    assert "nonblank_spacer" in capsys.readouterr().err


def test_cli_nonexistent_input(tmp_path: Path) -> None:
    assert main([str(tmp_path / "missing.txt")]) == 2


def test_cli_unknown_protocol(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["nosuchproto://export.txt"]) == 2
    assert "✗ Error" in capsys.readouterr().err
