from __future__ import annotations

import logging

import pytest

from draftdesk.config import (
    ConfigurationError,
    EditorConfig,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
    configure_logging,
    get_editor_config,
    get_proposals_api_config,
)
from draftdesk.domain.editor import DEFAULT_AUTOSAVE_DELAY_SECONDS


def test_editor_config_defaults() -> None:
    config = get_editor_config()

    assert config == EditorConfig()
    assert config.effective_autosave_delay == 2.0
    assert config.autosave_delay_seconds == DEFAULT_AUTOSAVE_DELAY_SECONDS


def test_editor_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DRAFTDESK_AUTOSAVE", "off")
    monkeypatch.setenv("DRAFTDESK_AUTOSAVE_DELAY", "5")

    config = get_editor_config()

    assert config == EditorConfig(autosave=False, autosave_delay_seconds=5.0)
    assert config.effective_autosave_delay is None


def test_editor_config_rejects_unknown_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DRAFTDESK_AUTOSAVE", "sometimes")

    with pytest.raises(ConfigurationError) as exc:
        get_editor_config()

    assert exc.value.variables == ("DRAFTDESK_AUTOSAVE",)


def test_proposals_api_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DRAFTDESK_API_URL", " https://api.example/v1/ ")
    monkeypatch.setenv("DRAFTDESK_API_TIMEOUT", "3")

    config = get_proposals_api_config()

    assert config.base_url == "https://api.example/v1"
    assert config.token is None
    assert config.resilience.timeout_seconds == 3.0
    assert config.resilience.ratelimit == RateLimit(max_calls=10, per_seconds=1.0)
    assert config.resilience.default_headers == {"Accept": "application/json"}


def test_proposals_api_config_accepts_custom_resilience(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DRAFTDESK_API_URL", "https://api.example")
    resilience = ResilienceConfig(name="custom")

    assert get_proposals_api_config(resilience=resilience).resilience is resilience


def test_retry_policy_never_retries_posts() -> None:
    policy = RetryPolicy()

    assert "PUT" in policy.allowed_methods
    assert "POST" not in policy.allowed_methods
    assert policy.build().total == 3


def test_configure_logging_quiets_http_libraries() -> None:
    configure_logging(level=logging.DEBUG, force=True)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING
