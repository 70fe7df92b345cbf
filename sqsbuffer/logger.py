"""Logging configuration for SQSBuffer."""

import json
import logging
import os
import sys
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, cast

# Attributes every LogRecord carries; anything else on a record came from 'extra'.
RECORD_ATTRIBUTES = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class ContextStore:
    """Logging context of the running task.

    Tasks spawned by a receiver copy the context of their parent, so every log
    written while handling a queue carries its ``queue_url``.
    """

    def __init__(self) -> None:
        self._context: ContextVar[dict[str, Any]] = ContextVar("sqsbuffer_log_context")

    def push(self, **fields: Any) -> Token[dict[str, Any]]:
        return self._context.set({**self.get(), **fields})

    def pop(self, token: Token[dict[str, Any]]) -> None:
        self._context.reset(token)

    def get(self) -> dict[str, Any]:
        return self._context.get({})


_context_store = ContextStore()


def queue_name(queue_url: str) -> str:
    """The last segment of a queue URL, e.g. ``orders`` for ``https://.../123/orders``."""
    return queue_url.rstrip("/").rsplit("/", 1)[-1]


class ContextFilter(logging.Filter):
    """Adds the task context and the per-call ``extra`` fields to ``record.context``.

    Per-call fields win over the task context. When the context holds a
    ``queue_url``, the record also gets a short ``queue`` name.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = _context_store.get().copy()
        context.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in RECORD_ATTRIBUTES and key != "context"
        )

        queue_url = context.get("queue_url")
        if queue_url:
            context.setdefault("queue", queue_name(queue_url))

        record.context = context
        return True


class SQSBufferLogger(logging.Logger):
    @contextmanager
    def contextualize(self, **fields: Any) -> Generator[None]:
        """Adds ``fields`` to every log written inside the block.

        Nested blocks extend the outer context and restore it on exit::

            with logger.contextualize(queue_url=queue_url):
                with logger.contextualize(message_count=10):
                    logger.info("Delivering messages.")
        """
        token = _context_store.push(**fields)
        try:
            yield
        finally:
            _context_store.pop(token)


class TextFormatter(logging.Formatter):
    """Human-readable lines, with the queue name and the other context fields appended.

    The full ``queue_url`` is left out of text logs, ``queue`` already names it.
    """

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)

        context = dict(getattr(record, "context", {}))
        context.pop("queue_url", None)
        fields = [f"{key}={value}" for key, value in context.items() if value is not None]
        if fields:
            line += " | " + " ".join(fields)

        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line; the context fields are top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        log_object: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
            "process": record.process,
            **getattr(record, "context", {}),
        }

        if record.exc_info:
            log_object["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_object, separators=(",", ":"), default=str)


def _log_level_from_env() -> int:
    level = os.getenv("SQSBUFFER_LOG_LEVEL", str(logging.INFO))
    if level.isdigit():
        return int(level)
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def setup_logger() -> SQSBufferLogger:
    """Builds the ``sqsbuffer`` logger from the environment.

    ``SQSBUFFER_LOG_LEVEL`` takes a level number or name, and
    ``SQSBUFFER_ENABLE_LOG_SERIALIZE=1`` switches to JSON lines.
    """
    serialize = bool(int(os.getenv("SQSBUFFER_ENABLE_LOG_SERIALIZE", 0)))

    logging.setLoggerClass(SQSBufferLogger)
    logger = logging.getLogger("sqsbuffer")
    logging.setLoggerClass(logging.Logger)

    if logger.hasHandlers():
        logger.handlers.clear()

    logger.setLevel(_log_level_from_env())
    logger.propagate = False

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())

    formatter: logging.Formatter
    if serialize:
        formatter = JsonFormatter()
    else:
        formatter = TextFormatter(
            "%(asctime)s | %(levelname)-8s | %(module)s:%(funcName)s:%(lineno)d | %(message)s"
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return cast(SQSBufferLogger, logger)


logger: SQSBufferLogger = setup_logger()
