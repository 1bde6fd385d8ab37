from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


_CONFIGURED = False


def configure_logging(level: int = logging.INFO, json_logs: bool = True) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Request-scoped fields bound via contextvars (request_id, path, method)
    are merged into every line. Safe to call multiple times.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    render_chain: list[Any]
    if json_logs:
        render_chain = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        render_chain = [structlog.dev.ConsoleRenderer(colors=False)]

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *render_chain],
        foreign_pre_chain=pre_chain,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # uvicorn and the New Relic agent install their own handlers; use ours instead.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "newrelic"):
        logger = logging.getLogger(name)
        logger.handlers = [handler]
        logger.propagate = False
        logger.setLevel(level)

    _CONFIGURED = True
