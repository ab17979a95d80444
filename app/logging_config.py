# app/logging_config.py
from __future__ import annotations
import os, logging.config
from pathlib import Path
from typing import Any, Dict

# One logger per collaborator, so a noisy dependency can be turned down alone
APP_LOGGERS = ("api", "llm", "stores", "billing", "writer", "scout", "librarian", "cache")

# HTTP clients under supabase/openai log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "postgrest")

def build_logging_config(level: str, log_file: Path, max_bytes: int, backups: int) -> Dict[str, Any]:
    both = ["console", "file"]
    loggers: Dict[str, Any] = {
        name: {"handlers": both, "level": level, "propagate": False}
        for name in APP_LOGGERS + ("uvicorn.error", "uvicorn.access")
    }
    loggers.update({name: {"level": "WARNING"} for name in QUIET_LOGGERS})

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": "%(name)s | %(message)s", "datefmt": "[%X]"},
            "file": {
                "format": "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "rich.logging.RichHandler",
                "level": level,
                "formatter": "console",
                "rich_tracebacks": True,
                "show_path": False,
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "DEBUG",
                "formatter": "file",
                "filename": str(log_file),
                "maxBytes": max_bytes,
                "backupCount": backups,
                "encoding": "utf-8",
            },
        },
        "loggers": loggers,
        "root": {"handlers": both, "level": level},
    }

def setup_logging() -> None:
    """
    Rich console output plus a rotating log file.
    Env: LOG_LEVEL (INFO), LOG_FILE (logs/investormatch.log),
    LOG_MAX_BYTES (5MB), LOG_BACKUPS (3)
    """
    log_file = Path(os.getenv("LOG_FILE", "logs/investormatch.log"))
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=log_file,
        max_bytes=int(os.getenv("LOG_MAX_BYTES", str(5 * 1024 * 1024))),
        backups=int(os.getenv("LOG_BACKUPS", "3")),
    ))
