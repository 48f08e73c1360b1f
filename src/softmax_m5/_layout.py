"""Settings-row decoding.

The settings row of a block is a flat list of tab-separated tokens whose meaning
shifts with the read type and read mode.  `LAYOUT_TABLE` records, for every
supported combination, where each field lives.  Supporting a new instrument variant
means adding a row to the table, not changing `parse_settings`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from pydantic import ValidationError

from softmax_m5._errors import FormatErrorType, M5FormatError, error_loc
from softmax_m5._models import (
    AbsorbanceWavelength,
    FluorescenceWavelength,
    PlateLayout,
    PlateSettings,
    ReadMode,
    ReadType,
)
from softmax_m5._util import resolve_strict

if TYPE_CHECKING:
    from collections.abc import Sequence

    from softmax_m5._models import Wavelength

__all__ = ["LAYOUT_TABLE", "FieldLayout", "parse_settings"]

MIN_SETTINGS_TOKENS = 6
"""Tokens that every settings row carries before the variant-specific fields."""

NAME_IDX = 1
READ_TYPE_IDX = 4
READ_MODE_IDX = 5


def _absorbance(nm: int) -> Wavelength:
    return AbsorbanceWavelength(nm=nm)


def _fluorescence(excitation: int, emission: int) -> Wavelength:
    return FluorescenceWavelength(excitation=excitation, emission=emission)


@dataclass(frozen=True, slots=True)
class FieldLayout:
    """Token positions of the variant-specific settings fields.

    Indices are relative to the first token after the read mode (absolute index 6).
    `wavelength_lists` maps each whitespace-separated list to the name it is
    reported under; the lists are zipped position-wise and each tuple is passed
    to `make_wavelength`.
    """

    read_count: int
    row_start: int
    row_span: int
    col_start: int
    col_span: int
    plate_size: int
    wave_count: int
    wavelength_lists: tuple[tuple[str, int], ...]
    make_wavelength: Callable[..., Wavelength]


_ABSORBANCE_LAYOUT = FieldLayout(
    read_count=2,
    row_start=13,
    row_span=14,
    col_start=10,
    col_span=11,
    plate_size=12,
    wave_count=8,
    wavelength_lists=(("wavelengths", 9),),
    make_wavelength=_absorbance,
)

_FLUORESCENCE_LAYOUT = FieldLayout(
    read_count=3,
    row_start=23,
    row_span=24,
    col_start=11,
    col_span=12,
    plate_size=13,
    wave_count=9,
    wavelength_lists=(("excitation wavelengths", 14), ("emission wavelengths", 10)),
    make_wavelength=_fluorescence,
)

LAYOUT_TABLE: dict[tuple[ReadType, ReadMode], FieldLayout] = {
    (ReadType.ENDPOINT, ReadMode.ABSORBANCE): _ABSORBANCE_LAYOUT,
    (ReadType.ENDPOINT, ReadMode.FLUORESCENCE): _FLUORESCENCE_LAYOUT,
    (ReadType.WELL_SCAN, ReadMode.FLUORESCENCE): _FLUORESCENCE_LAYOUT,
}


def _split_settings(line: str) -> list[str]:
    """Split a settings row on tabs and trim every token."""
    return [token.strip() for token in line.split("\t")]


def parse_settings(line: str, *, strict: bool | None = None) -> PlateSettings:
    """Decode the settings row that opens a block.

    Parameters
    ----------
    line : str
        The raw settings line, line terminator included or not.
    strict : bool | None
        If True, wavelength lists must hold exactly the declared number of
        wavelengths.  None defers to the SOFTMAX_M5_STRICT environment variable.

    Raises
    ------
    M5FormatError
        If the row is truncated, declares an unknown or unsupported read type/mode,
        or any field fails to parse.
    """
    tokens = _split_settings(line)
    if len(tokens) < MIN_SETTINGS_TOKENS:
        raise M5FormatError(
            FormatErrorType.truncated_settings,
            f"Settings row has {len(tokens)} fields, expected at least "
            f"{MIN_SETTINGS_TOKENS}",
            ctx={"expected": MIN_SETTINGS_TOKENS, "found": len(tokens)},
        )

    read_type = _parse_enum(ReadType, "read type", tokens[READ_TYPE_IDX])
    read_mode = _parse_enum(ReadMode, "read mode", tokens[READ_MODE_IDX])
    try:
        field_layout = LAYOUT_TABLE[(read_type, read_mode)]
    except KeyError:
        raise M5FormatError(
            FormatErrorType.unsupported_variant,
            f"Unsupported combination of read type {str(read_type)!r} and read "
            f"mode {str(read_mode)!r}",
            ctx={"read_type": str(read_type), "read_mode": str(read_mode)},
        ) from None

    layout = _resolve_layout(
        tokens[MIN_SETTINGS_TOKENS:], field_layout, strict=resolve_strict(strict)
    )
    try:
        return PlateSettings(
            name=tokens[NAME_IDX],
            read_type=read_type,
            read_mode=read_mode,
            layout=layout,
        )
    except ValidationError as e:
        raise M5FormatError(
            FormatErrorType.field_parse_failure,
            "Settings row describes an invalid plate",
            ctx={"error": e},
        ) from e


def _parse_enum(cls: type[ReadType] | type[ReadMode], kind: str, raw: str) -> Any:
    try:
        return cls(raw)
    except ValueError:
        raise M5FormatError(
            FormatErrorType.unknown_enum,
            f"Unknown {kind}: {raw!r}",
            loc=(kind,),
            ctx={"kind": kind, "value": raw},
        ) from None


def _field(tokens: Sequence[str], idx: int, name: str) -> str:
    try:
        return tokens[idx]
    except IndexError:
        raise M5FormatError(
            FormatErrorType.truncated_settings,
            f"Settings row ends before the {name} field",
            loc=(name,),
            ctx={"field": name, "index": idx + MIN_SETTINGS_TOKENS},
        ) from None


def _int_field(tokens: Sequence[str], idx: int, name: str) -> int:
    raw = _field(tokens, idx, name)
    try:
        return int(raw)
    except ValueError:
        raise M5FormatError(
            FormatErrorType.field_parse_failure,
            f"Could not parse {name}: {raw!r}",
            loc=(name,),
            ctx={"field": name, "raw": raw},
        ) from None


def _resolve_layout(
    tokens: Sequence[str], fields: FieldLayout, *, strict: bool
) -> PlateLayout:
    wave_count = _int_field(tokens, fields.wave_count, "wavelength count")
    if wave_count < 0:
        raise M5FormatError(
            FormatErrorType.field_parse_failure,
            f"Invalid wavelength count: {wave_count}",
            loc=("wavelength count",),
            ctx={"field": "wavelength count", "raw": tokens[fields.wave_count]},
        )

    lists: list[list[str]] = []
    for name, idx in fields.wavelength_lists:
        values = _field(tokens, idx, name).split()
        if strict and len(values) != wave_count:
            raise M5FormatError(
                FormatErrorType.wavelength_count_mismatch,
                f"Expected {wave_count} {name}, found {len(values)}",
                loc=(name,),
                ctx={"field": name, "expected": wave_count, "found": len(values)},
            )
        lists.append(values[:wave_count])

    wavelengths: list[Wavelength] = []
    for i, raw_values in enumerate(zip(*lists)):
        with error_loc("wavelength", i):
            nms = [
                _int_field(raw_values, j, name)
                for j, (name, _) in enumerate(fields.wavelength_lists)
            ]
        try:
            wavelengths.append(fields.make_wavelength(*nms))
        except ValidationError as e:
            raise M5FormatError(
                FormatErrorType.field_parse_failure,
                f"Invalid wavelength: {' / '.join(raw_values)}",
                loc=("wavelength", i),
                ctx={"field": "wavelength", "raw": raw_values, "error": e},
            ) from e

    try:
        return PlateLayout(
            plate_size=_int_field(tokens, fields.plate_size, "plate size"),
            row_start=_int_field(tokens, fields.row_start, "row start"),
            row_span=_int_field(tokens, fields.row_span, "row span"),
            col_start=_int_field(tokens, fields.col_start, "column start"),
            col_span=_int_field(tokens, fields.col_span, "column span"),
            read_count=_int_field(tokens, fields.read_count, "read count"),
            wavelengths=tuple(wavelengths),
        )
    except ValidationError as e:
        raise M5FormatError(
            FormatErrorType.field_parse_failure,
            "Settings row describes an invalid plate layout",
            ctx={"error": e},
        ) from e
