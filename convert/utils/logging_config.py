"""
Logging setup shared by the proxy (app.py) and the upload client (uploader/).

Configuration happens once, on the first get_logger() call, from:
    LOG_LEVEL / LOGLEVEL   DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_FORMAT             standard | dev | json
    LOG_TO_FILE, LOG_FILE  rotating file output (logs/jfif2jpg.log by default)

setup_logging() re-applies it with explicit overrides, e.g. from the CLI's
--log-level.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Dict, Optional, Union

DEFAULT_LOG_FILE = Path("logs") / "jfif2jpg.log"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

# Client libraries that log every request at INFO/DEBUG
CHATTY_LOGGERS = ("httpx", "httpcore", "multipart", "python_multipart")

_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARN': logging.WARNING,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'FATAL': logging.CRITICAL,
    'CRITICAL': logging.CRITICAL,
}


class LogLevel:
    @staticmethod
    def from_string(level_str: str) -> int:
        """Level constant for a name; unknown names fall back to INFO."""
        return _LEVELS.get(level_str.strip().upper(), logging.INFO)


class LogConfig:
    """Reads logging settings from the environment."""

    DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    DEV_FORMAT = '%(asctime)s [%(levelname)8s] %(name)s:%(lineno)d - %(message)s'
    JSON_FORMAT = ('{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
                   '"logger": "%(name)s", "message": "%(message)s"}')

    @classmethod
    def format_for(cls, format_type: Optional[str]) -> str:
        return {
            'dev': cls.DEV_FORMAT,
            'development': cls.DEV_FORMAT,
            'json': cls.JSON_FORMAT,
        }.get((format_type or '').lower(), cls.DEFAULT_FORMAT)

    @staticmethod
    def get_log_level() -> int:
        """LOG_LEVEL if set; otherwise WARNING under pytest and INFO elsewhere."""
        level_str = os.getenv('LOG_LEVEL') or os.getenv('LOGLEVEL')
        if level_str:
            return LogLevel.from_string(level_str)
        if LogConfig._is_test_environment():
            return logging.WARNING
        return logging.INFO

    @staticmethod
    def _is_test_environment() -> bool:
        return 'pytest' in sys.modules or 'PYTEST_CURRENT_TEST' in os.environ

    @classmethod
    def get_log_format(cls) -> str:
        return cls.format_for(os.getenv('LOG_FORMAT', 'standard'))

    @staticmethod
    def should_log_to_file() -> bool:
        return os.getenv('LOG_TO_FILE', 'false').lower() in ('true', '1', 'yes')

    @staticmethod
    def get_log_file_path() -> Path:
        log_file = os.getenv('LOG_FILE')
        return Path(log_file) if log_file else DEFAULT_LOG_FILE


def _rotating_file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS)


class LoggerFactory:
    """Applies the root configuration once and caches named loggers."""

    _loggers: Dict[str, logging.Logger] = {}
    _configured = False

    @classmethod
    def configure_logging(cls, level: Optional[int] = None,
                          format_str: Optional[str] = None,
                          log_to_file: bool = False,
                          log_file: Optional[Union[str, Path]] = None) -> None:
        if cls._configured:
            return

        log_level = level or LogConfig.get_log_level()
        formatter = logging.Formatter(format_str or LogConfig.get_log_format())

        handlers = [logging.StreamHandler(sys.stdout)]
        if log_to_file or LogConfig.should_log_to_file():
            handlers.append(_rotating_file_handler(Path(log_file) if log_file else LogConfig.get_log_file_path()))

        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        for handler in handlers:
            handler.setLevel(log_level)
            handler.setFormatter(formatter)
            root_logger.addHandler(handler)
        root_logger.setLevel(log_level)

        # Per-request lines from the HTTP stack only show up when debugging
        chatty_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
        for name in CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(chatty_level)

        cls._configured = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if name not in cls._loggers:
            cls.configure_logging()
            cls._loggers[name] = logging.getLogger(name)
        return cls._loggers[name]

    @classmethod
    def reset(cls) -> None:
        cls._configured = False
        cls._loggers.clear()


def get_logger(name: str = "jfif2jpg") -> logging.Logger:
    return LoggerFactory.get_logger(name)


def setup_logging(level: Optional[Union[str, int]] = None,
                  format_type: Optional[str] = None,
                  log_to_file: bool = False,
                  log_file: Optional[Union[str, Path]] = None) -> None:
    """Reconfigure logging, overriding the environment where arguments are given."""
    if isinstance(level, str):
        level = LogLevel.from_string(level)

    LoggerFactory.reset()
    LoggerFactory.configure_logging(
        level=level,
        format_str=LogConfig.format_for(format_type) if format_type else None,
        log_to_file=log_to_file,
        log_file=log_file
    )
