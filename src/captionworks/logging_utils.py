"""Log file setup shared by CaptionWorks command line tools.

Progress for a batch run is echoed to stdout, so logging defaults to a file
only. A console handler on stderr is opt-in (``--verbose``), which keeps the
stdout report clean when it is piped or captured.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

__all__ = ["configure_logging", "resolve_log_directory", "parse_level"]

_MANAGED_HANDLER_FLAG = "_captionworks_managed_handler"
_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
# httpx logs every request at INFO; one line per image adds nothing to a run log.
_CHATTY_LOGGERS = ("httpx", "httpcore")


def resolve_log_directory(log_dir: Optional[Path] = None) -> Path:
    """Pick the log directory: explicit value, ``CAPTIONWORKS_LOG_DIR``, project root."""

    if log_dir:
        return Path(log_dir).expanduser()

    env_override = os.environ.get("CAPTIONWORKS_LOG_DIR")
    if env_override:
        return Path(env_override).expanduser()

    for candidate in Path(__file__).resolve().parents:
        if (candidate / "pyproject.toml").exists():
            return candidate / "logs"
    return Path.cwd() / "logs"


def parse_level(level: Union[int, str]) -> int:
    """Accept ``logging`` constants or names such as ``"debug"``."""

    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def configure_logging(
    log_name: str,
    *,
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[Path] = None,
    console: bool = False,
) -> Path:
    """Route root logging into ``<log_dir>/<log_name>.log`` and return that path.

    Handlers from an earlier call are replaced, so repeated CLI invocations in
    one process (tests, notebooks) never write into a stale file.
    """

    numeric_level = parse_level(level)
    target_directory = resolve_log_directory(log_dir)
    target_directory.mkdir(parents=True, exist_ok=True)
    log_path = target_directory / f"{log_name}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in list(root_logger.handlers):
        if getattr(handler, _MANAGED_HANDLER_FLAG, False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.FileHandler(log_path, encoding="utf-8")]
    if console:
        handlers.append(logging.StreamHandler())  # stderr
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        setattr(handler, _MANAGED_HANDLER_FLAG, True)
        root_logger.addHandler(handler)

    quiet_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    return log_path
