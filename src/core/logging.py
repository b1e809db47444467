"""
Structured logging configuration for the stock dashboard core.
JSON lines for log collectors, colored single lines for development.
Every record carries the service name and a component, which defaults to
the emitting module; bind ``component=...`` to override it.
"""

import json
import os
import sys
from typing import Any, Optional

from loguru import logger

SERVICE_NAME = "stock-dashboard"


def _component(record: dict[str, Any]) -> str:
    return record["extra"].get("component") or (record["name"] or "app").rsplit(".", 1)[-1]


def json_formatter(record: dict[str, Any]) -> str:
    """
    One JSON object per line with service, component and source location.
    """
    extra = dict(record["extra"])
    log_entry = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "service": extra.pop("service", SERVICE_NAME),
        "component": _component(record),
        "message": record["message"],
        "location": f"{record['name']}:{record['function']}:{record['line']}",
    }
    extra.pop("component", None)
    for key, value in extra.items():
        log_entry.setdefault(key, value)
    if record["exception"] is not None:
        log_entry["exception"] = repr(record["exception"].value)

    # loguru treats the returned string as a format template
    return json.dumps(log_entry, default=str).replace("{", "{{").replace("}", "}}") + "\n"


def human_formatter(record: dict[str, Any]) -> str:
    component = _component(record).replace("{", "{{").replace("}", "}}")
    return (
        "<green>{time:HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        f"<cyan>{component}</cyan> | "
        "<level>{message}</level>\n{exception}"
    )


def configure_logging(
    level: str = "INFO",
    json_output: Optional[bool] = None,
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Force JSON output. If None, LOG_FORMAT=json selects it.
    """
    logger.remove()
    logger.configure(extra={"service": SERVICE_NAME})

    if json_output is None:
        json_output = os.environ.get("LOG_FORMAT", "").lower() == "json"

    if json_output:
        logger.add(sys.stderr, format=json_formatter, level=level, colorize=False)
    else:
        logger.add(sys.stderr, format=human_formatter, level=level, colorize=True)

    logger.bind(component="logging").debug(f"Logging configured: level={level}, json={json_output}")
