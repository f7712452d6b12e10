from __future__ import annotations

import logging
import re

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider

DEFAULT_QUIET_PATHS = ("/healthz", "/readyz", "/metrics")

# uvicorn access lines look like: 127.0.0.1:5000 - "GET /healthz HTTP/1.1" 200
_ACCESS_LINE = re.compile(r'"[A-Z]+ (?P<path>[^ ?"]+)[^"]*" (?P<status>\d{3})')

_otel_configured = False
_quiet_filter_installed = False


class QuietPathAccessLogFilter(logging.Filter):
    """Drops successful uvicorn access lines for probe and scrape endpoints."""

    def __init__(self, quiet_paths: tuple[str, ...] = DEFAULT_QUIET_PATHS) -> None:
        super().__init__()
        self._quiet_paths = frozenset(path.rstrip("/") or "/" for path in quiet_paths)

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            line = record.getMessage()
        except (TypeError, ValueError):
            return True
        match = _ACCESS_LINE.search(line)
        if match is None:
            return True
        path = match.group("path").rstrip("/") or "/"
        return not (match.group("status").startswith("2") and path in self._quiet_paths)


def configure_otel(service_name: str) -> None:
    global _otel_configured
    if _otel_configured:
        return
    trace.set_tracer_provider(TracerProvider(resource=Resource.create({"service.name": service_name})))
    _otel_configured = True


def configure_quiet_access_log(quiet_paths: tuple[str, ...] = DEFAULT_QUIET_PATHS) -> None:
    global _quiet_filter_installed
    if _quiet_filter_installed:
        return
    logging.getLogger("uvicorn.access").addFilter(QuietPathAccessLogFilter(quiet_paths))
    _quiet_filter_installed = True
