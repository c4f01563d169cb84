"""Structured JSON logging with request and payment context fields.

Records are handed to a queue and written by a background listener, so
request handlers never block on the log file. Each record is one JSON line.
"""

import atexit
import logging
import sys
from contextvars import ContextVar
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import SimpleQueue

from pythonjsonlogger.json import JsonFormatter

from payrelay.common.config import settings


request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
order_id_ctx: ContextVar[str] = ContextVar("order_id", default="")
payment_id_ctx: ContextVar[str] = ContextVar("payment_id", default="")

_listener: QueueListener | None = None


class ContextFilter(logging.Filter):
    """Inject service and correlation identifiers into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = settings.service_name
        record.request_id = request_id_ctx.get()
        record.order_id = order_id_ctx.get()
        record.payment_id = payment_id_ctx.get()
        return True


def configure_logging(log_level: str | None = None, log_file: str | None = None) -> None:
    """Configure root logger once per process.

    `log_file` defaults to the configured path; an empty string keeps output on
    stdout only.
    """

    global _listener

    formatter = JsonFormatter(
        "%(asctime)s %(levelname)s %(service_name)s %(request_id)s %(order_id)s %(payment_id)s %(message)s"
    )
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    sinks: list[logging.Handler] = [stream_handler]

    path = settings.log_file if log_file is None else log_file
    if path:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setFormatter(formatter)
        sinks.append(file_handler)

    shutdown_logging()
    queue: SimpleQueue = SimpleQueue()
    queue_handler = QueueHandler(queue)
    # Context is captured on the calling task, before the record crosses threads.
    queue_handler.addFilter(ContextFilter())
    _listener = QueueListener(queue, *sinks, respect_handler_level=True)
    _listener.start()
    atexit.register(shutdown_logging)

    root = logging.getLogger()
    root.handlers = [queue_handler]
    root.setLevel(log_level or settings.log_level)


def shutdown_logging() -> None:
    """Flush queued records and close sinks."""

    global _listener

    if _listener is None:
        return
    _listener.stop()
    for handler in _listener.handlers:
        handler.close()
    _listener = None


logger = logging.getLogger("payrelay")
