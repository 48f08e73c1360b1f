from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pydantic import ValidationError

from softmax_m5._errors import FormatErrorType, M5FormatError, error_loc, warn_format
from softmax_m5._models import Read, ReadInfo, ReadType, WellValue
from softmax_m5._util import resolve_strict

if TYPE_CHECKING:
    from collections.abc import Sequence

    from softmax_m5._lines import LineReader
    from softmax_m5._models import PlateLayout, PlateSettings, Wavelength

__all__ = ["PLATE_SHAPES", "parse_elapsed_time", "parse_read", "plate_shape"]

PLATE_SHAPES: dict[int, tuple[int, int]] = {
    96: (8, 12),
    384: (16, 24),
}
"""Physical (rows, columns) for each supported plate size."""

TIME_COL = 0
TEMPERATURE_COL = 1
FIRST_DATA_COL = 2


def plate_shape(layout: PlateLayout) -> tuple[int, int]:
    """Return the physical (rows, columns) of the plate described by `layout`."""
    try:
        return PLATE_SHAPES[layout.plate_size]
    except KeyError:
        raise M5FormatError(
            FormatErrorType.unsupported_plate_size,
            f"Unsupported plate size: {layout.plate_size} wells",
            ctx={"found": layout.plate_size, "expected": sorted(PLATE_SHAPES)},
        ) from None


def parse_elapsed_time(raw: str) -> float:
    """Convert an `H:MM` or `H:MM:SS` timestamp into fractional hours.

    >>> parse_elapsed_time("1:30")
    1.5
    >>> parse_elapsed_time("0:00:36")
    0.01
    """
    parts = raw.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"expected H:MM or H:MM:SS, got {raw!r}")
    hours, minutes, *rest = (float(p) for p in parts)
    seconds = rest[0] if rest else 0.0
    value = hours + minutes / 60 + seconds / 3600
    if not math.isfinite(value):
        raise ValueError(f"time is not finite: {raw!r}")
    return value


def _parse_temperature(raw: str) -> float:
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError(f"temperature is not finite: {raw!r}")
    return value


def _field_error(field: str, raw: str, col: int | None = None) -> M5FormatError:
    loc: tuple[int | str, ...] = (field,) if col is None else ("col", col)
    return M5FormatError(
        FormatErrorType.field_parse_failure,
        f"Could not parse {field}: {raw!r}",
        loc=loc,
        ctx={"field": field, "raw": raw},
    )


def _check_grid_fits(layout: PlateLayout, *, strict: bool) -> None:
    rows, cols = plate_shape(layout)
    last_row = layout.row_start - 1 + layout.row_span
    last_col = layout.col_start - 1 + layout.col_span
    if last_row <= rows and last_col <= cols:
        return
    msg = (
        f"Exported grid (rows {layout.row_start}-{last_row}, columns "
        f"{layout.col_start}-{last_col}) does not fit a {layout.plate_size}-well plate"
    )
    ctx = {"expected": (rows, cols), "found": (last_row, last_col)}
    if strict:
        raise M5FormatError(FormatErrorType.grid_exceeds_plate, msg, ctx=ctx)
    warn_format(FormatErrorType.grid_exceeds_plate, msg, ctx=ctx, stacklevel=3)


def _parse_row(
    row: int,
    cells: Sequence[str],
    layout: PlateLayout,
    out: list[WellValue],
    *,
    strict: bool,
) -> None:
    window = layout.col_span + 1
    chunks = (cells[i : i + window] for i in range(0, len(cells), window))
    for chunk, wavelength in zip(chunks, layout.wavelengths):
        data, spacer = chunk[: layout.col_span], chunk[layout.col_span :]
        if strict and any(s.strip() for s in spacer):
            raise M5FormatError(
                FormatErrorType.nonblank_spacer,
                f"Spacer column after {wavelength.label} holds {spacer[0].strip()!r}",
                loc=("col", layout.col_span),
                ctx={"found": spacer[0].strip(), "wavelength": wavelength.label},
            )
        _parse_cells(row, data, wavelength, out)


def _parse_cells(
    row: int, data: Sequence[str], wavelength: Wavelength, out: list[WellValue]
) -> None:
    for col, cell in enumerate(data):
        raw = cell.strip()
        if not raw:
            continue
        try:
            value = float(raw)
        except ValueError:
            raise _field_error("well value", raw, col) from None
        out.append(WellValue(wavelength=wavelength, well=(row, col), value=value))


def parse_read(
    reader: LineReader, settings: PlateSettings, *, strict: bool | None = None
) -> Read:
    """Decode the grid of a single read (timepoint).

    Consumes `row_span` grid lines plus the blank line the instrument writes after
    every read.  Each grid line holds the elapsed time and temperature in its first
    two columns, followed by one window of `col_span` values and one spacer column
    per wavelength.  Blank cells are dropped.

    Parameters
    ----------
    reader : LineReader
        Source of lines, positioned at the first grid row.
    settings : PlateSettings
        Settings of the enclosing block.
    strict : bool | None
        If True, spacer columns and the trailing spacer line must be blank, and the
        grid must fit the physical plate.  None defers to SOFTMAX_M5_STRICT.

    Raises
    ------
    M5FormatError
        Located at `row.<r>` (and `col.<c>` for cell errors) within the read.
    """
    strict = resolve_strict(strict)
    layout = settings.layout
    _check_grid_fits(layout, strict=strict)

    want_time = settings.read_type is ReadType.WELL_SCAN
    temperature: float | None = None
    elapsed_time: float | None = None
    values: list[WellValue] = []

    for row in range(layout.row_span):
        line = reader.next_line(f"grid row {row}")
        with error_loc("row", row, line=reader.lineno):
            cells = line.rstrip("\r\n").split("\t")
            if len(cells) < FIRST_DATA_COL:
                raise M5FormatError(
                    FormatErrorType.field_parse_failure,
                    "Grid row is missing its time and temperature columns",
                    ctx={"expected": FIRST_DATA_COL, "found": len(cells)},
                )
            if temperature is None and (raw := cells[TEMPERATURE_COL].strip()):
                try:
                    temperature = _parse_temperature(raw)
                except ValueError:
                    raise _field_error("temperature", raw) from None
            if want_time and elapsed_time is None and (raw := cells[TIME_COL].strip()):
                try:
                    elapsed_time = parse_elapsed_time(raw)
                except ValueError:
                    raise _field_error("time", raw) from None
            _parse_row(row, cells[FIRST_DATA_COL:], layout, values, strict=strict)

    if temperature is None:
        raise M5FormatError(
            FormatErrorType.field_parse_failure,
            "No temperature reported for read",
            loc=("temperature",),
            ctx={"field": "temperature"},
        )
    if want_time and elapsed_time is None:
        raise M5FormatError(
            FormatErrorType.field_parse_failure,
            f"No elapsed time reported for {settings.read_type} read",
            loc=("time",),
            ctx={"field": "time"},
        )

    spacer = reader.next_line("spacer line after read")
    if strict and spacer.strip():
        raise M5FormatError(
            FormatErrorType.nonblank_spacer_row,
            f"Expected a blank line after the read, found {spacer.strip()!r}",
            ctx={"found": spacer.strip(), "line": reader.lineno},
        )

    try:
        info = ReadInfo(temperature=temperature, elapsed_time=elapsed_time)
    except ValidationError as e:  # pragma: no cover
        raise M5FormatError(
            FormatErrorType.field_parse_failure,
            "Invalid read metadata",
            ctx={"error": e},
        ) from e
    return Read(info=info, values=tuple(values))
