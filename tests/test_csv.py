import csv
import io

import pytest

from m5_samples import (
    block,
    fluorescence_settings,
    grid_row,
    m5_text,
    simple_absorbance_block,
)

from softmax_m5 import CSV_HEADER, parse_m5_text, write_csv
from softmax_m5._csv import _format_number


def _rows(text: str) -> list[list[str]]:
    buf = io.StringIO()
    n = write_csv(parse_m5_text(text), buf)
    rows = list(csv.reader(io.StringIO(buf.getvalue())))
    assert rows[0] == list(CSV_HEADER)
    assert len(rows) == n + 1
    return rows[1:]


def test_absorbance_rows() -> None:
    rows = _rows(m5_text(simple_absorbance_block("P1")))
    assert rows == [
        ["P1", "A01", "A", "1", "", "25", "Absorbance", "", "", "450", "0.5"],
        ["P1", "A02", "A", "2", "", "25", "Absorbance", "", "", "450", "1.2"],
        ["P1", "B01", "B", "1", "", "25", "Absorbance", "", "", "450", "0.33"],
        ["P1", "B02", "B", "2", "", "25", "Absorbance", "", "", "450", "0.9"],
    ]


def test_fluorescence_well_scan_rows() -> None:
    settings = fluorescence_settings(
        "Scan",
        read_type="Well Scan",
        wave_count=2,
        excitation="485 530",
        emission="528 590",
        row_span=1,
        col_span=12,
    )
    values = [str(i) for i in range(12)]
    text = m5_text(
        block(settings, [[grid_row(values, values, temperature="37.5", time="0:45")]])
    )
    rows = _rows(text)
    assert len(rows) == 24
    assert rows[0] == [
        "Scan", "A01", "A", "1", "0.75", "37.5", "Fluorescence",
        "485", "528", "ex 485/em 528", "0",
    ]  # fmt: skip
    assert rows[11][1:4] == ["A12", "A", "12"]
    assert rows[12][7:10] == ["530", "590", "ex 530/em 590"]


def test_empty_document_writes_header_only() -> None:
    buf = io.StringIO()
    assert write_csv(parse_m5_text("##BLOCKS= 0\n"), buf) == 0
    assert buf.getvalue() == ",".join(CSV_HEADER) + "\n"


@pytest.mark.parametrize(
    "value, expected",
    [
        (25.0, "25"),
        (0.5, "0.5"),
        (-0.0, "-0"),
        (1234.5, "1234.5"),
        (1e-7, "0.0000001"),
        (1e20, "100000000000000000000"),
    ],
)
def test_number_format(value: float, expected: str) -> None:
    assert _format_number(value) == expected
