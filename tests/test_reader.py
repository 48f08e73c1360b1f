import io

import pytest
from m5_samples import (
    absorbance_settings,
    block,
    fluorescence_settings,
    grid_row,
    m5_text,
    simple_absorbance_block,
)

from softmax_m5 import (
    AbsorbanceWavelength,
    Document,
    FluorescenceWavelength,
    FormatErrorType,
    LineReader,
    M5FormatError,
    parse_block,
    parse_m5,
    parse_m5_text,
)


def test_end_to_end_absorbance() -> None:
    doc = parse_m5_text(m5_text(simple_absorbance_block()))
    assert isinstance(doc, Document)
    assert len(doc.blocks) == 1
    (blk,) = doc.blocks
    assert blk.settings.name == "Plate1"
    assert len(blk.reads) == 1
    read = blk.reads[0]
    assert read.info.temperature == 25.0
    assert [(v.well, v.value) for v in read.values] == [
        ((0, 0), 0.50),
        ((0, 1), 1.20),
        ((1, 0), 0.33),
        ((1, 1), 0.90),
    ]
    assert {v.wavelength for v in read.values} == {AbsorbanceWavelength(nm=450)}
    assert [v.name for v in read.values] == ["A01", "A02", "B01", "B02"]


def test_multiple_blocks_and_reads() -> None:
    kinetic = block(
        fluorescence_settings("Scan", read_type="Well Scan", reads=2, row_span=1),
        [
            [grid_row([10, 11], temperature="30.0", time="0:00")],
            [grid_row([12, 13], temperature="30.2", time="0:30")],
        ],
    )
    text = m5_text(simple_absorbance_block("A"), kinetic, simple_absorbance_block("B"))
    doc = parse_m5_text(text)
    assert [b.settings.name for b in doc.blocks] == ["A", "Scan", "B"]

    scan = doc.blocks[1]
    assert [r.info.elapsed_time for r in scan.reads] == [0.0, 0.5]
    assert [r.info.temperature for r in scan.reads] == [30.0, 30.2]
    assert scan.reads[1].values[1].value == 13
    assert scan.reads[1].values[1].wavelength == FluorescenceWavelength(
        excitation=485, emission=528
    )
    assert sum(1 for _ in doc.iter_values()) == 4 + 4 + 4


def test_zero_blocks() -> None:
    assert parse_m5_text("##BLOCKS= 0\n").blocks == ()


def test_trailing_lines_after_last_block_are_ignored() -> None:
    trailer = "\nOriginal Filename: run1; Date Last Saved: 1/1/2020\n"
    doc = parse_m5_text(m5_text(simple_absorbance_block(), trailer=trailer))
    assert len(doc.blocks) == 1


def test_block_count_mismatch_is_an_error() -> None:
    text = m5_text(simple_absorbance_block(), count=2)
    with pytest.raises(M5FormatError) as exc_info:
        parse_m5_text(text)
    err = exc_info.value
    assert err.error_type is FormatErrorType.premature_eof
    assert err.loc == ("block", 1)


def test_empty_input() -> None:
    with pytest.raises(M5FormatError) as exc_info:
        parse_m5_text("")
    assert exc_info.value.error_type is FormatErrorType.premature_eof


def test_missing_magic_is_located_at_header() -> None:
    with pytest.raises(M5FormatError) as exc_info:
        parse_m5_text(simple_absorbance_block())
    err = exc_info.value
    assert err.error_type is FormatErrorType.missing_magic
    assert err.loc == ("header",)
    assert err.ctx["line"] == 1


@pytest.mark.parametrize("end", ["~end\n", "End\n", "\n", "0.1\t0.2\n"])
def test_sentinel_enforced(end: str) -> None:
    rows = [grid_row(["0.50", "1.20"], temperature="25.0"), grid_row(["0.33", "0.90"])]
    text = m5_text(block(absorbance_settings(), [rows], end=end))
    with pytest.raises(M5FormatError, match="~End") as exc_info:
        parse_m5_text(text)
    err = exc_info.value
    assert err.error_type is FormatErrorType.missing_sentinel
    assert err.loc == ("block", 0, "end")
    assert err.ctx["line"] == 7


def test_sentinel_is_trimmed() -> None:
    rows = [grid_row([1, 2], temperature="25.0"), grid_row([3, 4])]
    text = m5_text(block(absorbance_settings(), [rows], end="  ~End \r\n"))
    assert len(parse_m5_text(text).blocks) == 1


@pytest.mark.parametrize(
    "header",
    ["\tTemperature(°F)\t1\t2\n", "\tTemp\t1\t2\n", "Temperature(°C)\n"],
)
def test_unsupported_unit(header: str) -> None:
    rows = [grid_row([1, 2], temperature="25.0"), grid_row([3, 4])]
    text = m5_text(block(absorbance_settings(), [rows], header=header))
    with pytest.raises(M5FormatError) as exc_info:
        parse_m5_text(text)
    err = exc_info.value
    assert err.error_type is FormatErrorType.unsupported_unit
    assert err.loc == ("block", 0, "header")


def test_latin1_mangled_temperature_header() -> None:
    rows = [grid_row([1, 2], temperature="25.0"), grid_row([3, 4])]
    header = "\tTemperature(Â°C)\t1\t2\n"
    text = m5_text(block(absorbance_settings(), [rows], header=header))
    assert len(parse_m5_text(text).blocks) == 1


def test_error_in_second_block_is_fully_located() -> None:
    bad = block(
        absorbance_settings("Bad", reads=2, row_span=1),
        [
            [grid_row([1, 2], temperature="25")],
            [grid_row([3, "oops"], temperature="25")],
        ],
    )
    with pytest.raises(M5FormatError) as exc_info:
        parse_m5_text(m5_text(simple_absorbance_block(), bad))
    err = exc_info.value
    assert err.loc == ("block", 1, "read", 1, "row", 0, "col", 1)
    assert err.ctx["raw"] == "oops"
    msg = str(err)
    assert msg.splitlines()[0] == "1 parse error(s) for M5FormatError"
    assert "block.1.read.1.row.0.col.1" in msg
    assert "type=field_parse_failure" in msg


def test_settings_error_is_located() -> None:
    text = m5_text(block(absorbance_settings(row_span="two"), []))
    with pytest.raises(M5FormatError) as exc_info:
        parse_m5_text(text)
    err = exc_info.value
    assert err.loc == ("block", 0, "settings", "row span")
    assert err.ctx["line"] == 2


def test_parse_block_directly() -> None:
    reader = LineReader(io.StringIO(simple_absorbance_block()))
    blk = parse_block(reader)
    assert blk.settings.layout.read_count == 1
    assert reader.lineno == 6


def test_parse_m5_accepts_stream_or_reader() -> None:
    text = m5_text(simple_absorbance_block())
    assert parse_m5(io.StringIO(text)) == parse_m5(LineReader(io.StringIO(text)))


def test_strict_mode_from_argument() -> None:
    rows = [grid_row([1, 2], temperature="25.0", spacer="x"), grid_row([3, 4])]
    text = m5_text(block(absorbance_settings(), [rows]))
    assert len(parse_m5_text(text).blocks) == 1
    with pytest.raises(M5FormatError) as exc_info:
        parse_m5_text(text, strict=True)
    assert exc_info.value.error_type is FormatErrorType.nonblank_spacer


def test_documents_are_immutable() -> None:
    doc = parse_m5_text(m5_text(simple_absorbance_block()))
    with pytest.raises(ValueError):
        doc.blocks[0].settings.name = "other"  # type: ignore[misc]


@pytest.mark.parametrize("newline", ["\n", "\r\n", "\r"])
def test_parse_text_line_endings(newline: str) -> None:
    text = m5_text(simple_absorbance_block()).replace("\n", newline)
    doc = parse_m5_text(text)
    assert [v.value for v in doc.blocks[0].reads[0].values] == [0.5, 1.2, 0.33, 0.9]
