import os

DEFAULT_ENCODING = "mac_roman"
"""SoftMax Pro writes its text exports in Mac Roman.

Only the degree sign in the temperature header is outside ASCII, but it must be
decoded with the right codec for the unit check to pass.
"""


def resolve_strict(strict: bool | None) -> bool:
    """Return the effective strict-mode flag.

    An explicit `strict` argument wins.  Otherwise strict mode is on when the
    SOFTMAX_M5_STRICT environment variable is set to a truthy value.
    """
    if strict is not None:
        return strict
    return os.getenv("SOFTMAX_M5_STRICT", "").strip().lower() in ("1", "true", "yes")


def resolve_encoding(encoding: str | None) -> str:
    """Return `encoding`, else SOFTMAX_M5_ENCODING, else Mac Roman."""
    return encoding or os.getenv("SOFTMAX_M5_ENCODING") or DEFAULT_ENCODING


def row_label(row: int) -> str:
    """Convert a zero-indexed row to a letter label: 0->'A', 15->'P'."""
    return chr(ord("A") + row)


def well_name(row: int, col: int) -> str:
    """Format a zero-indexed well as e.g. 'A01' or 'P24'."""
    return f"{row_label(row)}{col + 1:02}"
