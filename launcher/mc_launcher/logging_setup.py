from __future__ import annotations
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional
from .settings import Settings

# server console lines are echoed through this logger at DEBUG
CONSOLE_LOGGER = "mc.server.console"

class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

def setup_logging(settings: Settings, log_file: Optional[Path] = None) -> None:
    """
    Configure root logging for the launcher.

    Console output always goes to stderr; launcher records additionally go to a
    rotating file (default: <mc_dir>/logs/launcher.log).
    """
    if log_file is None:
        log_file = settings.mc_dir / "logs" / "launcher.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    level = settings.log_level.upper()
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    fmt = _JsonFormatter() if settings.log_json else logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    root.addHandler(ch)

    launcher_fh = RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    launcher_fh.setFormatter(fmt)
    launcher_fh.setLevel(level)
    logging.getLogger("mc.launcher").addHandler(launcher_fh)
    logging.getLogger("mc.launcher").propagate = True

    # the server keeps its own console log; don't flood the launcher log with it
    logging.getLogger(CONSOLE_LOGGER).propagate = level == "DEBUG"

def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
