"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the given environment variables or raise if any are missing/blank."""

    missing: list[str] = []
    values: dict[str, str] = {}
    for name in names:
        value = os.getenv(name)
        if value is None or not value.strip():
            missing.append(name)
            continue
        values[name] = value

    if missing:
        missing_list = ", ".join(sorted(missing))
        raise MissingConfigurationError(
            f"Missing configuration for: {missing_list}",
            variables=tuple(sorted(missing)),
        )

    return values


def optional_env_var(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def optional_float_env_var(name: str, *, default: float, minimum: float = 0.0) -> float:
    """Parse a float from the environment, falling back to ``default`` when unset."""

    raw = optional_env_var(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} must be a number, got {raw!r}", variables=(name,)
        ) from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}", variables=(name,))
    return value
