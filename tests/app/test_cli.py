from __future__ import annotations

import logging

import pytest

from draftdesk.app import ComparisonResult, DraftSummary
from draftdesk.domain.model import ConsolidationMode, FieldDiff
from draftdesk.ui import cli as cli_module


def _summary() -> DraftSummary:
    return DraftSummary(
        primary_proposal_id="proposal-ffa",
        read_only=False,
        fields=(),
        races=(),
        approved_blocks={},
        sources=(),
    )


def test_show_command(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_show(proposal_ids: list[str], **kwargs: object) -> DraftSummary:
        captured["ids"] = proposal_ids
        captured.update(kwargs)
        return _summary()

    monkeypatch.setattr(cli_module, "show_draft", fake_show)

    cli_module.main(["show", "a", "b"])

    assert captured["ids"] == ["a", "b"]
    assert captured["mode"] is ConsolidationMode.PRIMARY_ONLY


def test_show_command_merge_all(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_show(_: list[str], **kwargs: object) -> DraftSummary:
        captured.update(kwargs)
        return _summary()

    monkeypatch.setattr(cli_module, "show_draft", fake_show)

    cli_module.main(["show", "a", "--merge-all"])

    assert captured["mode"] is ConsolidationMode.MERGE_ALL


def test_compare_command_logs_differences(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    def fake_compare(_: list[str], **kwargs: object) -> ComparisonResult:
        assert kwargs["source_id"] == "b"
        return ComparisonResult(
            source_id="b",
            field_diffs=(FieldDiff(field="city", source_value="Lyon", is_different=True),),
            race_diffs=(),
        )

    monkeypatch.setattr(cli_module, "compare_sources", fake_compare)

    with caplog.at_level(logging.INFO):
        cli_module.main(["compare", "a", "b", "--source", "b"])

    assert "city: draft=<absent> source='Lyon'" in caplog.text


def test_copy_all_command(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_copy_all(_: list[str], **kwargs: object) -> dict[str, object]:
        captured.update(kwargs)
        return {}

    monkeypatch.setattr(cli_module, "copy_all_from_source", fake_copy_all)

    cli_module.main(["copy-all", "a", "b", "--source", "b", "--dry-run"])

    assert captured == {"source_id": "b", "dry_run": True}


def test_validate_command(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_validate(_: list[str], **kwargs: object) -> tuple[str, ...]:
        captured.update(kwargs)
        return ("event",)

    monkeypatch.setattr(cli_module, "validate_blocks", fake_validate)

    cli_module.main(["validate", "a", "--block", "event", "--block", "races"])

    assert captured["blocks"] == ["event", "races"]


def test_validate_command_rejects_unknown_block() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["validate", "a", "--block", "weather"])

    assert excinfo.value.code == 2


def test_failures_exit_with_status_one(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_show(*_: object, **__: object) -> DraftSummary:
        raise RuntimeError("backend down")

    monkeypatch.setattr(cli_module, "show_draft", failing_show)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["show", "a"])

    assert excinfo.value.code == 1
