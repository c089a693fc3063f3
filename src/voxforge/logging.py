"""Structured logging: structlog rendering over stdlib loggers, plus run context."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

RUN_CONTEXT_KEYS = ("run_id", "outcome_id", "profile_id")

# Per-request chatter from the HTTP stack; kept at WARNING unless DEBUG is asked for.
_CHATTY_LOGGERS = ("httpx", "httpcore")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(level: str, json_output: bool | None = None) -> None:
    """Route every stdlib logger through one structlog formatter on stderr.

    ``json_output`` defaults to JSON lines when APP_ENV is prod and the
    console renderer otherwise.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    if json_output is None:
        from voxforge.config import get_settings

        json_output = get_settings().app_env == "prod"

    shared = _shared_processors()
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    chatty_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)


@contextmanager
def run_context(run_id: str, outcome_id: str, profile_id: str) -> Iterator[None]:
    """Tag every log line emitted inside the block with the pipeline run identity."""
    structlog.contextvars.bind_contextvars(
        run_id=run_id, outcome_id=outcome_id, profile_id=profile_id
    )
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*RUN_CONTEXT_KEYS)
