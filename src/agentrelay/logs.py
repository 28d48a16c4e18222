"""Process-level logging setup shared by the server, worker and tool server."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logging(name: str, log_dir: Path | None = None, level: int = logging.INFO,
                  stream=None) -> logging.Logger:
    """Configure root logging once per process and return the named logger.

    Logs go to ``stream`` (stderr by default) and, when ``log_dir`` is given,
    to a rotating ``<name>.log`` file in it.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            log_dir / f"{name}.log",
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
        ))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logging.getLogger(name)
