from __future__ import annotations

from typing import TYPE_CHECKING

from softmax_m5._errors import FormatErrorType, M5FormatError

if TYPE_CHECKING:
    from typing import TextIO

__all__ = ["LineReader"]


class LineReader:
    """Sequential, one-line-at-a-time view over a text stream.

    Lines are handed out exactly as read, including the line terminator; trimming
    is up to the caller.  A line is never handed out twice.

    Parameters
    ----------
    stream : TextIO
        Any object with a `readline()` method returning `str` (an open text file,
        `io.StringIO`, or an fsspec text file).
    """

    __slots__ = ("_lineno", "_stream")

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._lineno = 0

    @property
    def lineno(self) -> int:
        """Number of lines consumed so far (the 1-based number of the last line)."""
        return self._lineno

    def next_line(self, expected: str) -> str:
        """Read the next line.

        Parameters
        ----------
        expected : str
            Short description of what the caller is about to read, used in the
            error message if the input ends early.

        Raises
        ------
        M5FormatError
            With type `premature_eof` if the stream is exhausted.
        """
        line = self._stream.readline()
        if not line:
            raise M5FormatError(
                FormatErrorType.premature_eof,
                f"Input ended while reading {expected}",
                ctx={"expected": expected, "line": self._lineno + 1},
            )
        self._lineno += 1
        return line
