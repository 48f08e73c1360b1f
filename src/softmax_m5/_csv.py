from __future__ import annotations

import csv
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, TypeVar

from softmax_m5._models import AbsorbanceWavelength
from softmax_m5._util import row_label, well_name

if TYPE_CHECKING:
    from collections.abc import Hashable
    from typing import TextIO

    from softmax_m5._models import Document, Wavelength

__all__ = ["CSV_HEADER", "write_csv"]

K = TypeVar("K", bound="Hashable")
V = TypeVar("V")

CSV_HEADER = (
    "Plate",
    "Well",
    "Row",
    "Col",
    "Time [hr]",
    "Temperature [C]",
    "Read Mode",
    "Excitation [nm]",
    "Emission [nm]",
    "Wavelength",
    "Value",
)


def _wave_strings(wl: Wavelength) -> tuple[str, str, str, str]:
    """(read mode, excitation, emission, label) columns for a wavelength."""
    if isinstance(wl, AbsorbanceWavelength):
        return ("Absorbance", "", "", wl.label)
    return ("Fluorescence", str(wl.excitation), str(wl.emission), wl.label)


def _well_strings(well: tuple[int, int]) -> tuple[str, str, str]:
    row, col = well
    return (well_name(row, col), row_label(row), str(col + 1))


def _format_number(x: float) -> str:
    """Shortest round-trip decimal, never in exponent form, without a trailing `.0`."""
    if not math.isfinite(x):
        return str(x)
    s = format(Decimal(repr(x)), "f")
    return s[:-2] if s.endswith(".0") else s


@dataclass(slots=True)
class _StringCache:
    """Formatted strings for values that repeat throughout one output pass."""

    wells: dict[tuple[int, int], tuple[str, str, str]] = field(default_factory=dict)
    numbers: dict[float, str] = field(default_factory=dict)
    wavelengths: dict[Wavelength, tuple[str, str, str, str]] = field(
        default_factory=dict
    )


def _get(cache: dict[K, V], key: K, fmt: Callable[[K], V]) -> V:
    try:
        return cache[key]
    except KeyError:
        cache[key] = value = fmt(key)
        return value


def write_csv(document: Document, stream: TextIO) -> int:
    """Write one CSV row per well value in `document`.

    Parameters
    ----------
    document : Document
        A fully decoded export.  Callers should only invoke this after parsing has
        succeeded so no partial output is ever produced.
    stream : TextIO
        Destination, opened with `newline=""` if it is a file.

    Returns
    -------
    int
        Number of data rows written (excluding the header).
    """
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    cache = _StringCache()

    n = 0
    for block, read, wv in document.iter_values():
        wellname, row, col = _get(cache.wells, wv.well, _well_strings)
        temp = _get(cache.numbers, read.info.temperature, _format_number)
        time = read.info.elapsed_time
        time_str = "" if time is None else _get(cache.numbers, time, _format_number)
        mode, ex, em, desc = _get(cache.wavelengths, wv.wavelength, _wave_strings)
        writer.writerow(
            (
                block.settings.name,
                wellname,
                row,
                col,
                time_str,
                temp,
                mode,
                ex,
                em,
                desc,
                _format_number(wv.value),
            )
        )
        n += 1
    return n
