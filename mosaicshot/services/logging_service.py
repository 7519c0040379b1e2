"""
Logging service for MosaicShot.

Logging is configured once at startup, before the config file is read,
so config loading is logged too. The level from the config is applied
afterwards with set_log_level().

Output goes to the console and to a dated file under
~/.local/share/mosaicshot/logs/.
"""

import logging
from datetime import date
from pathlib import Path
from typing import List, Optional, Union

DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "mosaicshot" / "logs"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LogLevel = Union[int, str, None]

# Handlers installed by setup_logging(); empty until it has run
_handlers: List[logging.Handler] = []


def parse_log_level(level: LogLevel, default: int = logging.INFO) -> int:
    """
    Turn a config value like "debug" or 10 into a logging level.

    Unknown names fall back to default.
    """
    if level is None:
        return default
    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else default


def log_file_path(log_dir: Path, day: Optional[date] = None) -> Path:
    """One log file per day: mosaicshot_YYYYMMDD.log"""
    day = day or date.today()
    return log_dir / f"mosaicshot_{day:%Y%m%d}.log"


def _open_file_handler(log_dir: Path) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(log_file_path(log_dir), encoding="utf-8")


def is_configured() -> bool:
    return bool(_handlers)


def setup_logging(
    log_level: LogLevel = logging.INFO,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Install the MosaicShot handlers on the root logger.

    Args:
        log_level: Initial level, as a number or a level name.
        log_to_file: Also write to the dated log file.
        log_dir: Directory for log files. Defaults to ~/.local/share/mosaicshot/logs/

    Later calls are ignored; use set_log_level() to change the level.
    """
    if is_configured():
        return

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler()]

    file_error: Optional[OSError] = None
    if log_to_file:
        try:
            handlers.append(_open_file_handler(log_dir or DEFAULT_LOG_DIR))
        except OSError as e:
            file_error = e

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    _handlers.extend(handlers)

    set_log_level(log_level)

    if file_error is not None:
        root_logger.warning(f"Could not create log file: {file_error}. Logging to console only.")


def set_log_level(log_level: LogLevel) -> int:
    """
    Apply a level to the root logger and the MosaicShot handlers.

    Returns:
        The numeric level that was applied.
    """
    level = parse_log_level(log_level)
    logging.getLogger().setLevel(level)
    for handler in _handlers:
        handler.setLevel(level)
    return level


def reset_logging() -> None:
    """Remove and close the handlers installed by setup_logging()."""
    root_logger = logging.getLogger()
    for handler in _handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _handlers.clear()


def get_logger(name: str) -> logging.Logger:
    """Logger for a module; pass __name__."""
    return logging.getLogger(name)
