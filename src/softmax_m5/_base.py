from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict

__all__ = ["_BaseModel"]


class _BaseModel(BaseModel):
    # decoded records never change after parsing, and frozen models are
    # hashable, which lets wavelengths key the CSV writer caches
    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="forbid",
        frozen=True,
        validate_default=True,
    )
