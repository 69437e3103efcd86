"""
Logging setup for the lead monitor.

configure_logging() is called from create_app(). LOG_FORMAT picks between
human-readable lines (text, the default) and one JSON object per line (json).
LOG_LEVEL defaults to INFO; an unknown level name also means INFO.

Fetch logs carry the queried resource and result source as `extra` fields;
the JSON formatter lifts those, plus the request path when one is active,
into top-level keys so a log search can filter on them.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import has_request_context, request

# Attributes set through logger.*(..., extra={...}) that are worth keeping
CONTEXT_FIELDS = ('resource', 'source', 'page', 'monitor_id')

# Per-request access lines and connection pool churn
_NOISY_LOGGERS = [
    'urllib3',
    'requests',
    'werkzeug',
]

TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'


class JSONFormatter(logging.Formatter):
    """Single-line JSON records for log aggregators."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if has_request_context():
            entry['method'] = request.method
            entry['path'] = request.path
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _resolve_level(name):
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(app=None):
    """
    Install a single stderr handler on the root logger.

    Environment variables (read on every call):
        LOG_LEVEL  - level name, default INFO
        LOG_FORMAT - "text" (default) or "json"

    When an app is given its own handlers are dropped so Flask messages go
    through the root handler like everything else.
    """
    level = _resolve_level(os.getenv('LOG_LEVEL', 'INFO'))
    use_json = os.getenv('LOG_FORMAT', 'text').lower() == 'json'

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if use_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        app.logger.handlers.clear()
        app.logger.propagate = True
