"""Structured logging configuration: structlog over stdlib logging.

Events are emitted as ``log.info("asset.download", asset=..., size=...)``. The
reporting mode decides how they surface:

    cargo_build -- ``[llvmup] :: download: <asset> [<size>]`` lines on stdout,
                   warnings prefixed with ``cargo:warning=`` so Cargo shows them
    console     -- structlog's console renderer on stderr
    log_file    -- the cargo_build lines, written to a file
    silent      -- nothing
"""

from __future__ import annotations

import logging
import logging.config
from enum import StrEnum
from pathlib import Path
from typing import Any

import structlog

LOGGER_NAME = "llvmup"
PREFIX = "[llvmup]"


class LogMode(StrEnum):
    CARGO_BUILD = "cargo_build"
    CONSOLE = "console"
    LOG_FILE = "log_file"
    SILENT = "silent"


def render_line(event_dict: dict[str, Any]) -> str:
    event = str(event_dict.pop("event", ""))
    _, _, verb = event.rpartition(".")
    asset = event_dict.pop("asset", None)
    size = event_dict.pop("size", None)
    line = f"{PREFIX} :: {verb or event}"
    if asset is not None:
        line += f": {asset}"
        if size is not None:
            line += f" [{size}]"
    extra = " ".join(f"{key}={value}" for key, value in sorted(event_dict.items()) if not key.startswith("_"))
    if extra:
        line += f" {extra}"
    return line


class CargoRenderer:
    """Render events as plain lines; warnings optionally become ``cargo:warning=`` directives."""

    def __init__(self, cargo_warnings: bool) -> None:
        self.cargo_warnings = cargo_warnings

    def __call__(self, _logger: Any, _method: str, event_dict: dict[str, Any]) -> str:
        level = str(event_dict.pop("level", "info"))
        for key in ("logger", "timestamp"):
            event_dict.pop(key, None)
        line = render_line(event_dict)
        if self.cargo_warnings and level in {"warning", "error", "critical"}:
            return f"cargo:warning={line}"
        return line


def setup_logging(mode: LogMode | str = LogMode.SILENT, level: str = "INFO", log_file: Path | None = None) -> None:
    mode = LogMode(mode)
    level = level.upper()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    if mode is LogMode.CONSOLE:
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        renderer = CargoRenderer(cargo_warnings=mode is LogMode.CARGO_BUILD)

    handlers: dict[str, dict[str, Any]] = {}
    if mode is LogMode.CARGO_BUILD:
        handlers["default"] = {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "structlog",
        }
    elif mode is LogMode.CONSOLE:
        handlers["default"] = {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
            "formatter": "structlog",
        }
    elif mode is LogMode.LOG_FILE:
        path = Path(log_file) if log_file is not None else Path("llvmup.log")
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers["default"] = {
            "class": "logging.FileHandler",
            "filename": str(path),
            "mode": "w",
            "encoding": "utf-8",
            "formatter": "structlog",
        }
    else:
        handlers["default"] = {"class": "logging.NullHandler"}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared_processors,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                },
            },
            "handlers": handlers,
            "loggers": {
                LOGGER_NAME: {
                    "handlers": ["default"],
                    "level": level,
                    "propagate": False,
                },
                "httpx": {"level": "WARNING"},
            },
        }
    )
