"""
Structured logging.

JSON log lines with the current workflow ID attached to every record.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

from shared.config import settings

_workflow_id: ContextVar[Optional[str]] = ContextVar("workflow_id", default=None)

# Attributes present on every LogRecord; anything else came in through extra=
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

_configured = False


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        workflow_id = _workflow_id.get()
        if workflow_id:
            payload["workflow_id"] = workflow_id

        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def _configure() -> None:
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger("clipflow")
    root.addHandler(handler)
    root.setLevel(settings.log_level)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the application namespace.

    Args:
        name: Module or component name

    Returns:
        Configured logger
    """
    _configure()
    return logging.getLogger(f"clipflow.{name}")


def set_workflow_id(workflow_id: Optional[str]) -> None:
    """
    Bind a workflow ID to the current context for logging.

    Args:
        workflow_id: Workflow ID (None clears it)
    """
    _workflow_id.set(str(workflow_id) if workflow_id else None)


def get_workflow_id() -> Optional[str]:
    """Return the workflow ID bound to the current context."""
    return _workflow_id.get()
