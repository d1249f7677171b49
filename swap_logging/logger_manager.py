"""
Logging for the swap aggregator router.

Each component gets its own file under the log directory, grouped in
module folders (``Aggregator_Logs``, ``Router_Logs``, ``Performance_Logs``).
Ranked quote batches are appended to a JSON-lines performance log.

Usage:
    from swap_logging.logger_manager import setup_module_logger

    logger = setup_module_logger("swap_router", "swap_router.log", module_folder="Router_Logs")
    logger.warning("Aggregator failed", extra={"aggregator_id": "LIFI", "http_status": 502})
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from config.loader import get_config
from shared.serialization_utils import DecimalEncoder

if TYPE_CHECKING:
    from shared.types import QuotePerformance

_PROJECT_ROOT = Path(__file__).parent.parent

_logging_cfg = get_config().get_app_config().get("logging", {})

# SWAP_LOG_DIR wins over app.json (tests point it at a temp dir)
_LOG_DIR = os.environ.get("SWAP_LOG_DIR") or str(_PROJECT_ROOT / _logging_cfg.get("log_dir", "logs"))
_MODULE_FOLDERS: dict[str, str] = {
    "aggregator": "Aggregator_Logs",
    "router": "Router_Logs",
    "performance": "Performance_Logs",
    **_logging_cfg.get("module_folders", {}),
}

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}


# ============================================================================
# FORMATTERS
# ============================================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per record, including any ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update({k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS})
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, cls=DecimalEncoder, default=str)


class HumanReadableFormatter(logging.Formatter):
    FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self) -> None:
        super().__init__(fmt=self.FORMAT, datefmt=self.DATE_FORMAT)


class RawMessageFormatter(logging.Formatter):
    """Writes the message as-is; used for pre-serialized JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


_FORMATTERS: dict[str, type[logging.Formatter]] = {
    "human": HumanReadableFormatter,
    "json": JSONFormatter,
    "raw": RawMessageFormatter,
}


# ============================================================================
# LOGGER FACTORY
# ============================================================================

_logger_cache: dict[str, logging.Logger] = {}


def create_module_log_directories() -> dict[str, str]:
    """Create every module folder up front; returns folder key to path."""
    created = {}
    for key, folder_name in _MODULE_FOLDERS.items():
        path = Path(_LOG_DIR) / folder_name
        path.mkdir(parents=True, exist_ok=True)
        created[key] = str(path)
    return created


def setup_module_logger(
    name: str,
    log_file: str,
    level: int = logging.INFO,
    module_folder: str | None = None,
    formatter: str = "human",
) -> logging.Logger:
    """
    Return a file logger for one component.

    Args:
        name: Logger name, unique per component.
        log_file: File name, placed inside ``module_folder`` when given.
        level: Logging level.
        module_folder: Subfolder of the log directory (e.g. ``"Router_Logs"``).
        formatter: ``"human"``, ``"json"`` or ``"raw"``.

    Loggers are cached per (name, folder, file) and never propagate to
    the root logger.
    """
    cache_key = f"{name}:{module_folder}:{log_file}"
    cached = _logger_cache.get(cache_key)
    if cached is not None:
        return cached

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        log_dir = Path(_LOG_DIR) / module_folder if module_folder else Path(_LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)

        handler = logging.FileHandler(log_dir / log_file, mode="a", encoding="utf-8")
        handler.setLevel(level)
        handler.setFormatter(_FORMATTERS[formatter]())
        logger.addHandler(handler)
        logger.propagate = False

    _logger_cache[cache_key] = logger
    return logger


# ============================================================================
# ROUTE PERFORMANCE LOG
# ============================================================================


def log_route_performance(
    rank: Sequence[QuotePerformance],
    log_file: str = "route_performance.jsonl",
) -> None:
    """
    Append ``{timestamp: {"rank": [...], "best": {...}}}`` as one line.

    ``rank`` comes from ``core.ranking.get_performance_rank``; ``best`` is
    its first row, or ``{}`` for an empty batch.
    """
    logger = setup_module_logger(
        "route_performance",
        log_file,
        module_folder=_MODULE_FOLDERS["performance"],
        formatter="raw",
    )
    rows = list(rank)
    batch = {"rank": rows, "best": rows[0] if rows else {}}
    logger.info(json.dumps({datetime.now(timezone.utc).isoformat(): batch}, cls=DecimalEncoder))
