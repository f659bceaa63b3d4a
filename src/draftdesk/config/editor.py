"""Working-draft editor settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from draftdesk.domain.editor import DEFAULT_AUTOSAVE_DELAY_SECONDS

from .env import optional_float_env_var
from .errors import ConfigurationError

AUTOSAVE_DELAY_VAR = "DRAFTDESK_AUTOSAVE_DELAY"
AUTOSAVE_ENABLED_VAR = "DRAFTDESK_AUTOSAVE"

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class EditorConfig:
    autosave: bool = True
    autosave_delay_seconds: float = DEFAULT_AUTOSAVE_DELAY_SECONDS

    @property
    def effective_autosave_delay(self) -> float | None:
        """Quiet period before an autosave, or ``None`` when autosave is off."""
        return self.autosave_delay_seconds if self.autosave else None


def get_editor_config() -> EditorConfig:
    raw_enabled = os.getenv(AUTOSAVE_ENABLED_VAR)
    autosave = True
    if raw_enabled is not None and raw_enabled.strip():
        lowered = raw_enabled.strip().lower()
        if lowered in _TRUTHY:
            autosave = True
        elif lowered in _FALSY:
            autosave = False
        else:
            raise ConfigurationError(
                f"{AUTOSAVE_ENABLED_VAR} must be a boolean flag, got {raw_enabled!r}",
                variables=(AUTOSAVE_ENABLED_VAR,),
            )
    delay = optional_float_env_var(AUTOSAVE_DELAY_VAR, default=DEFAULT_AUTOSAVE_DELAY_SECONDS)
    return EditorConfig(autosave=autosave, autosave_delay_seconds=delay)
