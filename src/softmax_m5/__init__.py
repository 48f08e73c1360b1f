"""Decoder for SoftMax Pro M5/M5e tab-delimited plate reader exports."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("softmax-m5")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "uninstalled"

from ._csv import CSV_HEADER, write_csv
from ._errors import ErrorDetails, FormatErrorType, M5FormatError, M5FormatWarning
from ._grid import parse_read
from ._io import open_m5_text
from ._layout import LAYOUT_TABLE, parse_settings
from ._lines import LineReader
from ._models import (
    AbsorbanceWavelength,
    Document,
    FluorescenceWavelength,
    PlateBlock,
    PlateLayout,
    PlateSettings,
    Read,
    ReadInfo,
    ReadMode,
    ReadType,
    Wavelength,
    WellValue,
)
from ._reader import parse_block, parse_block_count, parse_m5, parse_m5_text, read_m5

__all__ = [
    "CSV_HEADER",
    "LAYOUT_TABLE",
    "AbsorbanceWavelength",
    "Document",
    "ErrorDetails",
    "FluorescenceWavelength",
    "FormatErrorType",
    "LineReader",
    "M5FormatError",
    "M5FormatWarning",
    "PlateBlock",
    "PlateLayout",
    "PlateSettings",
    "Read",
    "ReadInfo",
    "ReadMode",
    "ReadType",
    "Wavelength",
    "WellValue",
    "open_m5_text",
    "parse_block",
    "parse_block_count",
    "parse_m5",
    "parse_m5_text",
    "parse_read",
    "parse_settings",
    "read_m5",
    "write_csv",
]
