"""
Logging setup for the freight portal.
Call setup_logging() once at app startup; modules log through logging.getLogger(__name__).
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from freight_portal.config import settings

EXTRA_FIELDS = ('entity', 'records', 'request_id', 'destination_id', 'quote_id', 'issues')


class JSONFormatter(logging.Formatter):
    """One JSON object per line for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'ts': datetime.now(tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'msg': record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            entry['exception'] = self.formatException(record.exc_info)
        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now(tz=timezone.utc).strftime('%H:%M:%S')
        line = f'{ts} [{record.levelname[0]}] {record.name}: {record.getMessage()}'
        if record.exc_info and record.exc_info[0]:
            line = f'{line}\n{self.formatException(record.exc_info)}'
        return line


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    if level is None:
        level = settings.log_level
    if json_logs is None:
        json_logs = settings.log_json

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(JSONFormatter() if json_logs else HumanFormatter())
    root.addHandler(console)
