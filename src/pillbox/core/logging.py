"""Log setup for the pillbox service.

Modules log through ``logging.getLogger(__name__)`` with %-style arguments.
:func:`configure_logging` routes those records through structlog so each line
is rendered as console text or a JSON object carrying the service name, the
fields bound for the request being served and the active OpenTelemetry span.

The API binds ``method`` and ``route`` for every request and the routers add
``medication_id`` or the requested dates, so a line logged deep inside
:mod:`pillbox.service` still says which request caused it::

    {"event": "Resolving 2024-01-15..2024-01-21 for 3 medication(s)",
     "route": "/api/schedule/weekly", "date": "2024-01-17", ...}
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import structlog
from opentelemetry import trace

LOG_FORMATS = ("text", "json")

REQUEST_FIELDS = frozenset(
    {"method", "route", "medication_id", "date", "start_date", "end_date", "days"}
)

# Per-request access lines come from the API middleware instead.
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def bind_request(**fields: Any) -> None:
    """Attach request fields to every line logged for the current request.

    ``None`` values are dropped so optional query parameters can be passed
    straight through.
    """
    unknown = set(fields) - REQUEST_FIELDS
    if unknown:
        raise ValueError(f"Unknown request log field(s): {', '.join(sorted(unknown))}")
    structlog.contextvars.bind_contextvars(
        **{name: value for name, value in fields.items() if value is not None}
    )


@contextmanager
def request_context(method: str, route: str) -> Iterator[None]:
    """Scope request fields to one request, discarding leftovers from earlier ones."""
    structlog.contextvars.clear_contextvars()
    with structlog.contextvars.bound_contextvars(method=method, route=route):
        yield


class ServiceName:
    """Processor stamping every event with the configured service name."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __call__(self, logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", self.name)
        return event_dict


def add_otel_context(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Add ``trace_id``/``span_id`` when a span is recording; leave them out otherwise."""
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def _pre_chain(service_name: str, time_fmt: str) -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt=time_fmt),
        ServiceName(service_name),
        add_otel_context,
        structlog.stdlib.ExtraAdder(),
    ]


def _formatter(
    renderer: structlog.types.Processor, pre_chain: list[structlog.types.Processor]
) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=pre_chain,
    )


def configure_logging(
    level: str = "INFO",
    fmt: str = "text",
    log_root: Path | str | None = None,
    service_name: str = "pillbox",
) -> None:
    """Install pillbox's handlers on the root logger.

    *fmt* picks the console renderer: ``text`` for a coloured developer view,
    ``json`` for one object per line.  With *log_root* set, every record is
    also appended as JSON to ``{log_root}/{service_name}.log``.  Calling it
    again replaces the previous handlers.

    Uvicorn must be started with ``log_config=None`` so its loggers propagate
    here instead of installing their own handlers.
    """
    if fmt not in LOG_FORMATS:
        raise ValueError(f"Unknown log format {fmt!r}; expected one of {LOG_FORMATS}")

    console_chain = _pre_chain(service_name, "iso" if fmt == "json" else "%H:%M:%S")
    renderer = (
        structlog.processors.JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer()
    )
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_formatter(renderer, console_chain))

    root = logging.getLogger()
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.addHandler(console)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_root is not None:
        directory = Path(log_root)
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(directory / f"{service_name}.log")
        file_handler.setFormatter(
            _formatter(structlog.processors.JSONRenderer(), _pre_chain(service_name, "iso"))
        )
        root.addHandler(file_handler)

    structlog.configure(
        processors=[*console_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
