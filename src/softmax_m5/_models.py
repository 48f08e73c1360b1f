from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Annotated, Literal, TypeAlias

from annotated_types import Len
from pydantic import (
    Field,
    FiniteFloat,
    NonNegativeInt,
    PositiveInt,
    model_validator,
)
from typing_extensions import Self

from softmax_m5._base import _BaseModel
from softmax_m5._util import well_name

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = [  # noqa: RUF022  (don't resort, this is used for docs ordering)
    "Document",
    "PlateBlock",
    "Read",
    "PlateSettings",
    "PlateLayout",
    "ReadInfo",
    "WellValue",
    "ReadType",
    "ReadMode",
    "Wavelength",
    "AbsorbanceWavelength",
    "FluorescenceWavelength",
]

# ------------------------------------------------------------------------------
# Enumerations
# ------------------------------------------------------------------------------


class ReadType(str, Enum):
    """How the instrument read the plate. Values are the literal export tokens."""

    ENDPOINT = "Endpoint"
    WELL_SCAN = "Well Scan"

    def __str__(self) -> str:
        return self.value


class ReadMode(str, Enum):
    """The measurement mode. Values are the literal export tokens."""

    FLUORESCENCE = "Fluorescence"
    ABSORBANCE = "Absorbance"

    def __str__(self) -> str:
        return self.value


# ------------------------------------------------------------------------------
# Wavelengths
# ------------------------------------------------------------------------------


class AbsorbanceWavelength(_BaseModel):
    """A single absorbance measurement channel."""

    mode: Literal["absorbance"] = "absorbance"
    nm: PositiveInt = Field(description="Absorbance wavelength in nanometers")

    @property
    def label(self) -> str:
        return str(self.nm)


class FluorescenceWavelength(_BaseModel):
    """An excitation/emission pair used for a fluorescence read."""

    mode: Literal["fluorescence"] = "fluorescence"
    excitation: PositiveInt = Field(description="Excitation wavelength in nanometers")
    emission: PositiveInt = Field(description="Emission wavelength in nanometers")

    @property
    def label(self) -> str:
        return f"ex {self.excitation}/em {self.emission}"


Wavelength: TypeAlias = Annotated[
    AbsorbanceWavelength | FluorescenceWavelength, Field(discriminator="mode")
]

# ------------------------------------------------------------------------------
# Settings
# ------------------------------------------------------------------------------


class PlateLayout(_BaseModel):
    """Plate geometry and read plan declared by a block's settings row.

    `row_start` and `col_start` are 1-based positions on the physical plate; the
    spans give the size of the grid the instrument exports for every read.
    """

    plate_size: PositiveInt = Field(description="Number of wells on the plate")
    row_start: PositiveInt = Field(description="First exported plate row (1-based)")
    row_span: PositiveInt = Field(description="Number of exported rows per read")
    col_start: PositiveInt = Field(description="First exported column (1-based)")
    col_span: PositiveInt = Field(description="Number of exported columns per read")
    read_count: NonNegativeInt = Field(
        description="Number of reads (timepoints) in the block"
    )
    wavelengths: tuple[Wavelength, ...] = Field(
        description="Measurement channels, in the order their grids appear"
    )

    @property
    def values_per_read(self) -> int:
        """Upper bound on the number of well values in a single read."""
        return self.row_span * self.col_span * len(self.wavelengths)


class PlateSettings(_BaseModel):
    """The decoded settings row that opens every block."""

    name: str = Field(description="Plate name as entered in SoftMax Pro")
    read_type: ReadType
    read_mode: ReadMode
    layout: PlateLayout

    @model_validator(mode="after")
    def _validate_wavelength_modes(self) -> Self:
        expected = (
            AbsorbanceWavelength
            if self.read_mode is ReadMode.ABSORBANCE
            else FluorescenceWavelength
        )
        for wl in self.layout.wavelengths:
            if not isinstance(wl, expected):
                raise ValueError(
                    f"{self.read_mode} settings cannot hold wavelength {wl!r}"
                )
        return self


# ------------------------------------------------------------------------------
# Read data
# ------------------------------------------------------------------------------


class ReadInfo(_BaseModel):
    """Metadata shared by every well of one read."""

    temperature: FiniteFloat = Field(description="Plate temperature in °C")
    elapsed_time: FiniteFloat | None = Field(
        default=None,
        description="Hours since the start of the run (Well Scan reads only)",
    )


class WellValue(_BaseModel):
    """One measured value for one well on one channel."""

    wavelength: Wavelength
    well: tuple[NonNegativeInt, NonNegativeInt] = Field(
        description="Zero-indexed (row, column) within the exported grid"
    )
    value: float

    @property
    def row(self) -> int:
        return self.well[0]

    @property
    def col(self) -> int:
        return self.well[1]

    @property
    def name(self) -> str:
        """Well name such as `'B03'`."""
        return well_name(*self.well)


class Read(_BaseModel):
    """A single timepoint: its metadata plus every non-blank well value."""

    info: ReadInfo
    values: tuple[WellValue, ...] = ()


class PlateBlock(_BaseModel):
    """One independent plate run in the export."""

    settings: PlateSettings
    reads: tuple[Read, ...] = ()

    @model_validator(mode="after")
    def _validate_read_count(self) -> Self:
        if len(self.reads) != self.settings.layout.read_count:
            raise ValueError(
                f"Block declares {self.settings.layout.read_count} reads but holds "
                f"{len(self.reads)}"
            )
        return self


class Document(_BaseModel):
    """A fully decoded M5 export."""

    blocks: Annotated[tuple[PlateBlock, ...], Len(max_length=0xFFFF)] = ()

    def iter_values(self) -> Iterator[tuple[PlateBlock, Read, WellValue]]:
        """Yield every well value along with the block and read it belongs to."""
        for block in self.blocks:
            for read in block.reads:
                for value in read.values:
                    yield block, read, value

