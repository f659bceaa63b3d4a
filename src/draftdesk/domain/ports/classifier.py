"""Field-to-block classification port."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class BlockClassifier(Protocol):
    """Pure function mapping a field name to its block key, or ``None``."""

    def __call__(self, field: str) -> str | None: ...


__all__ = ["BlockClassifier"]
