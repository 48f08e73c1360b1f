from __future__ import annotations

import io
from typing import TYPE_CHECKING

from pydantic import ValidationError

from softmax_m5._errors import FormatErrorType, M5FormatError, error_loc
from softmax_m5._grid import parse_read
from softmax_m5._layout import parse_settings
from softmax_m5._lines import LineReader
from softmax_m5._models import Document, PlateBlock
from softmax_m5._util import resolve_strict

if TYPE_CHECKING:
    import os
    from typing import TextIO

__all__ = [
    "BLOCKS_MAGIC",
    "END_SENTINEL",
    "TEMPERATURE_HEADERS",
    "parse_block",
    "parse_block_count",
    "parse_m5",
    "parse_m5_text",
    "read_m5",
]

BLOCKS_MAGIC = "##BLOCKS="
END_SENTINEL = "~End"
TEMPERATURE_HEADERS = ("Temperature(°C)", "Temperature(Â°C)")
"""Accepted spellings of the temperature column header.

The second is the UTF-8 encoded degree sign decoded as Latin-1.
"""
MAX_BLOCKS = 0xFFFF


def parse_block_count(line: str) -> int:
    """Parse the `##BLOCKS= <n>` line that opens every export.

    Raises
    ------
    M5FormatError
        `missing_magic` if the first token is not `##BLOCKS=`, `malformed_count` if
        the count is absent or not an integer in 0..65535.
    """
    tokens = line.split()
    if not tokens or tokens[0] != BLOCKS_MAGIC:
        raise M5FormatError(
            FormatErrorType.missing_magic,
            f"File does not start with {BLOCKS_MAGIC!r}",
            ctx={"expected": BLOCKS_MAGIC, "found": tokens[0] if tokens else ""},
        )
    if len(tokens) < 2:
        raise M5FormatError(
            FormatErrorType.malformed_count,
            "Missing block count",
            ctx={"field": "block count"},
        )
    raw = tokens[1]
    try:
        count = int(raw)
    except ValueError:
        count = -1
    if not raw.isdigit() or not 0 <= count <= MAX_BLOCKS:
        raise M5FormatError(
            FormatErrorType.malformed_count,
            f"Invalid block count: {raw!r}",
            ctx={"field": "block count", "raw": raw},
        )
    return count


def _check_temperature_header(line: str) -> None:
    cols = line.rstrip("\r\n").split("\t")
    if len(cols) < 2:
        raise M5FormatError(
            FormatErrorType.unsupported_unit,
            "Missing temperature column header",
            ctx={"found": line.strip()},
        )
    if not any(h in cols[1] for h in TEMPERATURE_HEADERS):
        raise M5FormatError(
            FormatErrorType.unsupported_unit,
            f"Unknown or unsupported temperature unit: {cols[1].strip()!r}",
            ctx={"expected": TEMPERATURE_HEADERS[0], "found": cols[1].strip()},
        )


def parse_block(reader: LineReader, *, strict: bool | None = None) -> PlateBlock:
    """Decode one block: settings row, column header, reads and `~End` sentinel.

    Parameters
    ----------
    reader : LineReader
        Source of lines, positioned at the block's settings row.
    strict : bool | None
        Enable strict checks (see `parse_m5`).

    Raises
    ------
    M5FormatError
        Located at `settings`, `header`, `read.<i>` or `end` within the block.
    """
    strict = resolve_strict(strict)

    line = reader.next_line("settings row")
    with error_loc("settings", line=reader.lineno):
        settings = parse_settings(line, strict=strict)

    line = reader.next_line("temperature header")
    with error_loc("header", line=reader.lineno):
        _check_temperature_header(line)

    reads = []
    for i in range(settings.layout.read_count):
        with error_loc("read", i):
            reads.append(parse_read(reader, settings, strict=strict))

    line = reader.next_line(f"{END_SENTINEL!r} sentinel")
    if line.strip() != END_SENTINEL:
        raise M5FormatError(
            FormatErrorType.missing_sentinel,
            f"Expected {END_SENTINEL!r} at end of block, found {line.strip()!r}",
            loc=("end",),
            ctx={"expected": END_SENTINEL, "found": line.strip(), "line": reader.lineno},
        )

    try:
        return PlateBlock(settings=settings, reads=tuple(reads))
    except ValidationError as e:  # pragma: no cover
        raise M5FormatError(
            FormatErrorType.field_parse_failure, "Invalid block", ctx={"error": e}
        ) from e


def parse_m5(source: TextIO | LineReader, *, strict: bool | None = None) -> Document:
    """Decode a complete M5 export from an open text stream.

    The whole file is decoded before anything is returned.  If any block fails the
    whole parse fails; there is no partial result.  Lines after the last declared
    block are ignored.

    Parameters
    ----------
    source : TextIO | LineReader
        An open text stream (already decoded, see `open_m5_text`) or a `LineReader`.
    strict : bool | None
        If True, additionally reject non-blank spacer columns and spacer lines,
        wavelength lists whose length differs from the declared count, and grids
        that do not fit on the plate.  None (the default) defers to the
        SOFTMAX_M5_STRICT environment variable.

    Returns
    -------
    Document
        The decoded blocks.

    Raises
    ------
    M5FormatError
        If the input is not a valid M5 export.  `errors()` gives the structured
        location (`block.<i>.read.<j>.row.<r>...`) of the failure.
    """
    strict = resolve_strict(strict)
    reader = source if isinstance(source, LineReader) else LineReader(source)

    line = reader.next_line("block count header")
    with error_loc("header", line=reader.lineno):
        block_count = parse_block_count(line)

    blocks = []
    for i in range(block_count):
        with error_loc("block", i):
            blocks.append(parse_block(reader, strict=strict))
    return Document(blocks=tuple(blocks))


def parse_m5_text(text: str, *, strict: bool | None = None) -> Document:
    """Decode an M5 export held in memory as a string.

    Any of `\\n`, `\\r\\n` or `\\r` ends a line, as when reading from a file.
    """
    return parse_m5(io.StringIO(text, newline=None), strict=strict)


def read_m5(
    uri: str | os.PathLike,
    *,
    encoding: str | None = None,
    strict: bool | None = None,
) -> Document:
    """Open and decode an M5 export from a local path or fsspec URI.

    Parameters
    ----------
    uri : str | os.PathLike
        Path or URI of the export (anything `fsspec.open` understands).
    encoding : str | None
        Text encoding, by default SOFTMAX_M5_ENCODING or Mac Roman.
    strict : bool | None
        Enable strict checks (see `parse_m5`).
    """
    from softmax_m5._io import open_m5_text

    with open_m5_text(uri, encoding=encoding) as f:
        return parse_m5(f, strict=strict)
