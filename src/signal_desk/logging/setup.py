"""structlog over stdlib logging, with a per-request context for the API."""

from __future__ import annotations

import logging
import sys
import uuid

import structlog

# Chatty at INFO: one line per HTTP call or websocket frame.
_NOISY_LOGGERS = ("httpx", "httpcore", "websockets", "uvicorn.access")

_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "console":
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def setup_logging(level: str = "INFO", log_format: str = "json") -> None:
    """Route structlog and stdlib records through one stderr handler.

    *log_format* is ``"json"`` (one object per line) or ``"console"``.
    Unknown level names fall back to INFO.
    """
    structlog.configure(
        processors=[*_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.WARNING))


def get_logger(name: str | None = None, **initial_context) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger(name)
    return logger.bind(**initial_context) if initial_context else logger


def bind_request_context(request_id: str | None = None, **context) -> str:
    """Start a fresh per-request logging context and return its request id.

    Everything logged from the current task (and tasks it spawns afterwards)
    carries ``request_id`` plus any extra *context*.
    """
    rid = request_id or uuid.uuid4().hex[:12]
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=rid, **context)
    return rid
