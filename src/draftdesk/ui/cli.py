from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from draftdesk.app import compare_sources, copy_all_from_source, show_draft, validate_blocks
from draftdesk.config import configure_logging
from draftdesk.domain.model import UNSET, BlockKey, ConsolidationMode

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from draftdesk.app import ComparisonResult, DraftSummary

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Review and consolidate agent proposals")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show", help="Show the working draft for a proposal group")
    show.add_argument("proposal_ids", nargs="+", help="Proposal ids of one group")
    show.add_argument(
        "--merge-all",
        action="store_true",
        help="Fuse every proposal into the draft instead of seeding from the primary only",
    )

    compare = subparsers.add_parser("compare", help="Compare the draft with an alternate source")
    compare.add_argument("proposal_ids", nargs="+", help="Proposal ids of one group")
    compare.add_argument(
        "--source",
        type=str,
        help="Proposal id to compare against (defaults to the first alternate)",
    )

    copy_all = subparsers.add_parser(
        "copy-all",
        help="Copy every difference from an alternate source into the draft and save",
    )
    copy_all.add_argument("proposal_ids", nargs="+", help="Proposal ids of one group")
    copy_all.add_argument("--source", type=str, help="Proposal id to copy from")
    copy_all.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute the resulting diff without saving it",
    )

    validate = subparsers.add_parser("validate", help="Validate blocks on the primary proposal")
    validate.add_argument("proposal_ids", nargs="+", help="Proposal ids of one group")
    validate.add_argument(
        "--block",
        dest="blocks",
        action="append",
        choices=[block.value for block in BlockKey],
        help="Block to validate (repeatable; defaults to every pending block)",
    )

    return parser.parse_args(list(argv))


def _format_value(value: object) -> str:
    return "<absent>" if value is UNSET else repr(value)


def _log_summary(summary: DraftSummary) -> None:
    log.info(
        "Primary proposal %s%s",
        summary.primary_proposal_id,
        " (read-only)" if summary.read_only else "",
    )
    for source in summary.sources:
        log.info(
            "  source %s: %s (priority %s)",
            source.proposal_id,
            source.agent_name,
            source.priority,
        )
    for consolidated in summary.fields:
        marker = "*" if consolidated.is_overridden else " "
        log.info(
            " %s %s = %s",
            marker,
            consolidated.field,
            _format_value(consolidated.effective_value),
        )
    for race in summary.races:
        state = "deleted" if race.is_deleted else "added" if race.is_added else "race"
        log.info("  %s %s %s: %s", state, race.id, race.name or "", dict(race.fields))
    approved = sorted(block for block, done in summary.approved_blocks.items() if done)
    log.info("Approved blocks: %s", ", ".join(approved) or "none")


def _log_comparison(result: ComparisonResult) -> None:
    log.info("Comparing with source %s", result.source_id)
    for diff in result.field_diffs:
        if diff.is_different:
            log.info(
                "  %s: draft=%s source=%s",
                diff.field,
                _format_value(diff.working_value),
                _format_value(diff.source_value),
            )
    for race_diff in result.race_diffs:
        if not race_diff.is_different:
            continue
        log.info(
            "  race %s (draft=%s, source=%s)",
            race_diff.race_name,
            race_diff.working_race_id,
            race_diff.source_race_id,
        )
        for diff in race_diff.field_diffs:
            if diff.is_different:
                log.info(
                    "    %s: draft=%s source=%s",
                    diff.field,
                    _format_value(diff.working_value),
                    _format_value(diff.source_value),
                )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "show":
            mode = (
                ConsolidationMode.MERGE_ALL
                if parsed_args.merge_all
                else ConsolidationMode.PRIMARY_ONLY
            )
            _log_summary(show_draft(parsed_args.proposal_ids, mode=mode))
        elif parsed_args.command == "compare":
            result = compare_sources(parsed_args.proposal_ids, source_id=parsed_args.source)
            _log_comparison(result)
        elif parsed_args.command == "copy-all":
            diff = copy_all_from_source(
                parsed_args.proposal_ids,
                source_id=parsed_args.source,
                dry_run=parsed_args.dry_run,
            )
            log.info("Draft changes after copy: %s", diff)
        elif parsed_args.command == "validate":
            validated = validate_blocks(parsed_args.proposal_ids, blocks=parsed_args.blocks)
            log.info("Validated blocks: %s", ", ".join(validated) or "none")
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error while reviewing proposals")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
