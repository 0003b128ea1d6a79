"""Logging configuration for the AS3 agent.

The agent usually runs as a long-lived process under a supervisor that
collects stderr, so console logging is always on and a rotating log file is
added only when one is asked for.

Environment Variables:
    AS3_AGENT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    AS3_AGENT_LOG_FILE: Path to a rotating log file (default: none)
    AS3_AGENT_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    AS3_AGENT_LOG_BACKUPS: Number of backup files to keep (default: 5)
"""
import functools
import logging
import os
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Callable, Any

# Post timings go here so they can be filtered apart from agent logs
perf_logger = logging.getLogger("as3_agent.perf")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("AS3_AGENT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Optional[Path]:
    path_str = os.environ.get("AS3_AGENT_LOG_FILE")
    return Path(path_str).expanduser() if path_str else None


def setup_logging(level: Optional[int] = None) -> None:
    """Configure the ``as3_agent`` logger.

    Args:
        level: Console level override (e.g. from --verbose)
    """
    log_level = level if level is not None else get_log_level()
    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-30s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    root_logger = logging.getLogger("as3_agent")
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    log_file = get_log_file()
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=int(os.environ.get("AS3_AGENT_LOG_MAX_SIZE", "10")) * 1024 * 1024,
            backupCount=int(os.environ.get("AS3_AGENT_LOG_BACKUPS", "5")),
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(main_format)
        root_logger.addHandler(file_handler)

    root_logger.info(
        f"Logging initialized: level={logging.getLevelName(log_level)}, "
        f"file={log_file or 'none'}"
    )


def timed(operation: str):
    """Log how long a BIG-IP call took, keyed by the client's ``url``.

    Usage:
        @timed("post_declaration")
        async def post_config(self, document, tenant):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs) -> Any:
            target = getattr(self, "url", "N/A")
            start = time.perf_counter()
            try:
                result = await func(self, *args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(f"{operation} {target} {elapsed:.1f}ms FAIL: {e}")
                raise
            elapsed = (time.perf_counter() - start) * 1000  # ms
            perf_logger.info(f"{operation} {target} {elapsed:.1f}ms OK")
            return result

        return wrapper

    return decorator
