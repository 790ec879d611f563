from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ParseOptions:
    file: str | None = None  # reported in error messages only
    max_depth: int = 64
    strict: bool = False  # raise on unsupported constructs instead of skipping
