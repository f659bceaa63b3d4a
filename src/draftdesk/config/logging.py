"""Shared logging helpers for draftdesk."""

from __future__ import annotations

import logging

_CHATTY_LIBRARIES = ("httpx", "httpcore")


def configure_logging(
    *,
    level: int = logging.INFO,
    force: bool = False,
    quiet_http: bool = True,
) -> None:
    """Initialise the root logger once with a terse CLI format.

    ``httpx`` logs every request at INFO; with ``quiet_http`` those loggers are held
    at WARNING so autosave traffic does not drown the draft's own messages. Pass
    ``force=True`` to reconfigure during tests.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    if quiet_http:
        for name in _CHATTY_LIBRARIES:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))
