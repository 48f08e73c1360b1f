from __future__ import annotations

import textwrap
import warnings
from contextlib import contextmanager
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from typing_extensions import NotRequired, TypedDict

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = [
    "ErrorDetails",
    "FormatErrorType",
    "M5FormatError",
    "M5FormatWarning",
    "error_loc",
    "warn_format",
]


class FormatErrorType(Enum):
    missing_magic = auto()
    malformed_count = auto()
    truncated_settings = auto()
    unknown_enum = auto()
    unsupported_variant = auto()
    unsupported_plate_size = auto()
    unsupported_unit = auto()
    missing_sentinel = auto()
    field_parse_failure = auto()
    premature_eof = auto()
    # only raised in strict mode
    wavelength_count_mismatch = auto()
    nonblank_spacer = auto()
    nonblank_spacer_row = auto()
    grid_exceeds_plate = auto()

    def __str__(self) -> str:
        return self.name


class ErrorDetails(TypedDict):
    type: str
    """
    The type of error that occurred, one of the `FormatErrorType` names.

    `type` is an identifier designed for programmatic use that will change rarely
    or never.
    """
    loc: tuple[int | str, ...]
    """Tuple of str and ints identifying where in the file the error occurred.

    e.g. `("block", 0, "read", 2, "row", 5, "col", 3)`
    """
    msg: str
    """A human readable error message."""
    ctx: NotRequired[dict[str, Any]]
    """
    Additional context about the error.

    Common context fields:
    - line: 1-based line number in the input
    - field: semantic name of the settings/grid field being parsed
    - raw: the raw token that failed to parse
    - expected/found: what was expected and what was actually found
    - error: the underlying exception object
    """


class _FormatMessageMixin:
    """Mixin for formatting parse errors and warnings."""

    _details: list[ErrorDetails]

    def _format_message(self) -> str:
        """Generate a readable message from all details.

        Format matches Pydantic's ValidationError style:
        - First line: count and title
        - Each item: location (dot-notation) on one line, message with context on next
        """
        if not self._details:  # pragma: no cover
            return f"No parse {self._details_noun}"

        count = len(self._details)
        lines = [f"{count} parse {self._details_noun} for {self.title}"]

        for detail in self._details:
            if detail["loc"]:
                lines.append(".".join(str(x) for x in detail["loc"]))

            ctx_parts = [f"type={detail['type']}"]
            ctx = detail.get("ctx", {})
            for key in ("field", "raw", "expected", "found"):
                if key in ctx:
                    ctx_parts.append(f"{key}={ctx[key]!r}")
            for key, val in ctx.items():
                if key not in ("field", "raw", "expected", "found", "error"):
                    ctx_parts.append(f"{key}={val!r}")

            msg_with_context = f"{detail['msg']} [{', '.join(ctx_parts)}]"
            indented_msg = textwrap.indent(msg_with_context, "  ")
            if isinstance(ctx_error := ctx.get("error"), ValidationError):
                indented_msg += "\n" + textwrap.indent(str(ctx_error), "    ")
            lines.append(indented_msg)

        return "\n".join(lines)

    @property
    def title(self) -> str:
        """The title used in the heading of the formatted message."""
        return type(self).__qualname__

    @property
    def _details_noun(self) -> str:
        raise NotImplementedError

    def get_details(self, *, include_context: bool = True) -> list[ErrorDetails]:
        """
        Details about each issue.

        Parameters
        ----------
        include_context: bool
            Whether to include the context of each item.

        Returns
        -------
            A list of `ErrorDetails` for each issue.
        """
        filtered_details: list[ErrorDetails] = []
        for detail in self._details:
            filtered_detail: ErrorDetails = {
                "type": detail["type"],
                "loc": detail["loc"],
                "msg": detail["msg"],
            }
            if include_context and "ctx" in detail:
                filtered_detail["ctx"] = detail["ctx"]
            filtered_details.append(filtered_detail)
        return filtered_details


class M5FormatError(_FormatMessageMixin, ValueError):
    """`M5FormatError` is raised when an M5 export cannot be decoded.

    Parsing stops at the first problem, so there is exactly one detail. Its `loc`
    grows as the error travels up through the read, block and file parsers, and the
    message is only rendered when the exception is converted to text.
    """

    def __init__(
        self,
        error_type: FormatErrorType,
        msg: str,
        *,
        loc: tuple[int | str, ...] = (),
        ctx: dict[str, Any] | None = None,
    ) -> None:
        detail: ErrorDetails = {"type": str(error_type), "loc": loc, "msg": msg}
        if ctx:
            detail["ctx"] = dict(ctx)
        self._details = [detail]
        self.error_type = error_type
        super().__init__(msg)

    def __str__(self) -> str:
        return self._format_message()

    @property
    def _details_noun(self) -> str:
        return "error(s)"

    @property
    def loc(self) -> tuple[int | str, ...]:
        return self._details[0]["loc"]

    @property
    def ctx(self) -> dict[str, Any]:
        return self._details[0].setdefault("ctx", {})

    def prepend_loc(self, *loc: int | str) -> None:
        """Add outer location tags in front of the current location."""
        self._details[0]["loc"] = (*loc, *self._details[0]["loc"])

    def errors(self, *, include_context: bool = True) -> list[ErrorDetails]:
        """
        Details about the error, in the same shape as `pydantic.ValidationError`.

        Parameters
        ----------
        include_context: bool
            Whether to include the context of each error.

        Returns
        -------
            A list of `ErrorDetails`.
        """
        return self.get_details(include_context=include_context)


class M5FormatWarning(_FormatMessageMixin, UserWarning):
    """Emitted for format irregularities that are tolerated outside strict mode."""

    def __init__(self, details: list[ErrorDetails]) -> None:
        self._details = details
        super().__init__(self._format_message())

    @property
    def _details_noun(self) -> str:
        return "warning(s)"

    def warnings(self, *, include_context: bool = True) -> list[ErrorDetails]:
        return self.get_details(include_context=include_context)


def warn_format(
    error_type: FormatErrorType,
    msg: str,
    *,
    loc: tuple[int | str, ...] = (),
    ctx: dict[str, Any] | None = None,
    stacklevel: int = 2,
) -> None:
    detail: ErrorDetails = {"type": str(error_type), "loc": loc, "msg": msg}
    if ctx:
        detail["ctx"] = ctx
    warnings.warn(M5FormatWarning([detail]), stacklevel=stacklevel + 1)


@contextmanager
def error_loc(*loc: int | str, line: int | None = None) -> Iterator[None]:
    """Prefix the location of any `M5FormatError` raised inside the block.

    Parameters
    ----------
    *loc : int | str
        Location tags to put in front of the error's own location, e.g.
        `("block", 2)`.
    line : int | None
        Input line number to record in the error context, unless the error
        already carries a more precise one.
    """
    try:
        yield
    except M5FormatError as e:
        e.prepend_loc(*loc)
        if line is not None:
            e.ctx.setdefault("line", line)
        raise
