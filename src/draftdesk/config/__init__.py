"""Application configuration helpers."""

from __future__ import annotations

from .editor import EditorConfig, get_editor_config
from .env import optional_env_var, optional_float_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .proposals_api import ProposalsApiConfig, get_proposals_api_config

__all__ = [
    "ConfigurationError",
    "EditorConfig",
    "MissingConfigurationError",
    "ProposalsApiConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "configure_logging",
    "get_editor_config",
    "get_proposals_api_config",
    "optional_env_var",
    "optional_float_env_var",
    "require_env_vars",
]
