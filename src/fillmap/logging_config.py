# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge for fillmap hosts and the CLI.

Leaf module — no fillmap imports. Safe to call early in startup.
Library modules log through ``logging.getLogger(__name__)`` with %-style
arguments; ``configure`` renders those records together with structlog
context such as ``visit_id``.  Console output for terminals, JSON lines
for log shippers.
"""

from __future__ import annotations

import logging
import sys
from contextlib import AbstractContextManager
from typing import TextIO

import structlog

# Noisy third-party loggers and the minimum level they are allowed to emit.
_QUIET_LOGGERS: dict[str, int] = {"aiosqlite": logging.INFO}


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure(*, json_output: bool = False, level: str = "INFO", stream: TextIO | None = None) -> None:
    """Route stdlib and structlog records through one handler.

    Calling again replaces the previous handler.

    Args:
        json_output: JSON lines when True, plain console lines otherwise.
        level: Root logger level name; unknown names fall back to INFO.
        stream: Destination, default ``sys.stderr`` (stdout stays free for command output).
    """
    shared = _shared_processors()
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name, floor in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(root.level, floor))


def visit_context(visit_id: str, **fields: object) -> AbstractContextManager[object]:
    """Bind ``visit_id`` (plus ``fields``) to every record emitted inside the block."""
    return structlog.contextvars.bound_contextvars(visit_id=visit_id, **fields)
