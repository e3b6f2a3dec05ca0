"""
Logging setup.

Console output always; a rotating log file alongside it so the desktop UI
and `GET /config` can point users at the log.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    log_file: Optional[Path] = None,
    debug: bool = False,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3
) -> None:
    """
    Configure the root logger.

    Args:
        log_file: Path of the rotating log file (None = console only)
        debug: Log at DEBUG instead of INFO
        max_bytes: Rotate after this many bytes
        backup_count: Rotated files to keep
    """
    level = logging.DEBUG if debug else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                RotatingFileHandler(
                    log_file,
                    maxBytes=max_bytes,
                    backupCount=backup_count,
                    encoding="utf-8"
                )
            )
        except OSError as e:
            logging.getLogger(__name__).warning(f"File logging disabled ({log_file}): {e}")

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
