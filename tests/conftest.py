from __future__ import annotations

from typing import TYPE_CHECKING, Callable

import pytest
from m5_samples import m5_text, simple_absorbance_block

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SOFTMAX_M5_STRICT", raising=False)
    monkeypatch.delenv("SOFTMAX_M5_ENCODING", raising=False)


@pytest.fixture
def write_m5(tmp_path: Path) -> Callable[..., Path]:
    """Write M5 text to a file, encoded the way SoftMax Pro writes it."""

    def _write(text: str, name: str = "export.txt", encoding: str = "mac_roman") -> Path:
        path = tmp_path / name
        path.write_bytes(text.encode(encoding))
        return path

    return _write


@pytest.fixture
def simple_export(write_m5: Callable[..., Path]) -> Path:
    return write_m5(m5_text(simple_absorbance_block()))
