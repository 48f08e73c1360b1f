import os
from typing import TYPE_CHECKING, Any, cast

import fsspec

from softmax_m5._util import resolve_encoding

if TYPE_CHECKING:
    from contextlib import AbstractContextManager
    from typing import TextIO


def open_m5_text(
    uri: str | os.PathLike, encoding: str | None = None
) -> "AbstractContextManager[TextIO]":
    """Open an M5 export (local or remote) for reading as text.

    Parameters
    ----------
    uri : str or os.PathLike
        The URI to read from.  This can be a local file path, or a remote URL
        (e.g. s3://bucket/plates/run1.txt) for any protocol fsspec supports.
    encoding : str, optional
        Text encoding.  Defaults to the SOFTMAX_M5_ENCODING environment variable,
        or Mac Roman, which is what SoftMax Pro writes.

    Returns
    -------
    AbstractContextManager[TextIO]
        A context manager yielding the open text stream.

    Raises
    ------
    FileNotFoundError
        If nothing exists at `uri`.
    """
    uri_str = os.fspath(uri)
    open_file: Any = fsspec.open(
        uri_str, mode="rt", encoding=resolve_encoding(encoding), newline=None
    )
    fs = open_file.fs
    if not fs.exists(open_file.path):
        raise FileNotFoundError(f"Could not find M5 export at: {uri_str}")
    return cast("AbstractContextManager[TextIO]", open_file)
