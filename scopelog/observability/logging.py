from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from scopelog.config import get_settings
from scopelog.context.store import current_stack
from scopelog.logger import LABEL_SEPARATOR, flatten_stack


_CONFIGURED = False


def merge_scope_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add the active scope chain and merged frame data to a structlog event.

    Keys passed at the call site win over frame data.
    """

    labels, merged = flatten_stack(current_stack())
    if labels:
        event_dict.setdefault("scope", LABEL_SEPARATOR.join(labels))
    for key, value in merged.items():
        event_dict.setdefault(key, value)
    return event_dict


def configure_logging(level: int | None = None, renderer: str | None = None) -> None:
    """Configure structlog + stdlib logging with scope context merged in.

    Safe to call multiple times (no-op after first call).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    settings = get_settings()
    if level is None:
        level = settings.log_level_value
    renderer = renderer or settings.renderer

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        merge_scope_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            # Let ProcessorFormatter render stdlib log records too.
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if renderer == "console":
        final: Any = structlog.dev.ConsoleRenderer(colors=False)
    elif renderer == "json":
        final = structlog.processors.JSONRenderer()
    else:
        raise ValueError(f"Unknown renderer: {renderer}")

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=final,
        foreign_pre_chain=pre_chain,
    )

    stream = sys.stdout if settings.output == "stdout" else sys.stderr
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # Keep uvicorn's own loggers consistent with our handler.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers = [handler]
        logger.propagate = False
        logger.setLevel(level)

    _CONFIGURED = True


def reset_logging() -> None:
    """Forget the configured state so the next configure_logging() reapplies (used by tests)."""

    global _CONFIGURED
    _CONFIGURED = False
    structlog.reset_defaults()
