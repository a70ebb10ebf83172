# actuator_sysid/logger/logger.py
from __future__ import annotations

import logging
import os
import threading
import time
from logging.handlers import RotatingFileHandler
from typing import Dict, List, Optional, Tuple

# Parent of every module logger in the package.
ROOT_LOGGER_NAME = "actuator_sysid"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class DedupFilter(logging.Filter):
    """
    Drop a record whose text repeats the previous one from the same logger at
    the same level.

    Re-running prepare_data() with unchanged settings logs the same lines
    again; only the first copy reaches the handler. With a positive
    cooldown_s the repeat is let through again once that many seconds passed.
    """
    def __init__(self, cooldown_s: float = 0.0) -> None:
        super().__init__()
        self.cooldown_s = float(cooldown_s)
        self._lock = threading.Lock()
        self._seen: Dict[Tuple[str, int], Tuple[str, float]] = {}

    def _is_repeat(self, key: Tuple[str, int], msg: str, now: float) -> bool:
        previous = self._seen.get(key)
        if previous is None or previous[0] != msg:
            return False
        return self.cooldown_s <= 0.0 or now - previous[1] < self.cooldown_s

    def filter(self, record: logging.LogRecord) -> bool:
        key = (record.name, record.levelno)
        msg = record.getMessage()
        now = time.time()

        with self._lock:
            if self._is_repeat(key, msg, now):
                return False
            self._seen[key] = (msg, now)
        return True


def _handler(
    handler: logging.Handler,
    level: int,
    fmt: logging.Formatter,
    dedup_cooldown_s: float,
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(fmt)
    handler.addFilter(DedupFilter(cooldown_s=dedup_cooldown_s))
    return handler


class Logger:
    """
    Session log for an analysis run.

    Attaches a rotating file handler (and optionally a console handler) to
    the package logger, so messages from every actuator_sysid module end up
    in one file. A second Logger for the same file reuses the handler already
    attached, and other handlers on the logger are left alone.

    Example:
        session = Logger("arm.log", log_dir="logs", console=True)
        manager = AnalysisManager(document, logger=session.get_logger())
        ...
        session.close()
    """
    def __init__(
        self,
        log_file: str,
        logger_name: str = ROOT_LOGGER_NAME,
        log_dir: str = "logs",
        level: int = logging.INFO,
        timestamp_format: str = "%Y-%m-%d %H:%M:%S",
        propagate: bool = False,
        max_bytes: int = 5_000_000,
        backup_count: int = 5,
        console: bool = False,
        dedup_cooldown_s: float = 0.0,
    ) -> None:
        os.makedirs(log_dir, exist_ok=True)
        self.path = os.path.join(log_dir, log_file)

        self._logger = logging.getLogger(logger_name)
        self._logger.setLevel(level)
        self._logger.propagate = propagate

        self._handlers: List[logging.Handler] = []

        # pytest and notebooks construct sessions repeatedly
        if self._file_handler() is None:
            fmt = logging.Formatter(LOG_FORMAT, datefmt=timestamp_format)
            file_handler = RotatingFileHandler(
                self.path, maxBytes=int(max_bytes), backupCount=int(backup_count)
            )
            self._handlers.append(file_handler)
            if console:
                self._handlers.append(logging.StreamHandler())
            for handler in self._handlers:
                self._logger.addHandler(_handler(handler, level, fmt, dedup_cooldown_s))

        self._logger.debug("Session log for '%s' at %s", logger_name, self.path)

    def _file_handler(self) -> Optional[RotatingFileHandler]:
        """The rotating handler already writing to this session's file, if any."""
        path = os.path.abspath(self.path)
        for handler in self._logger.handlers:
            if isinstance(handler, RotatingFileHandler) and handler.baseFilename == path:
                return handler
        return None

    def get_logger(self) -> logging.Logger:
        return self._logger

    def close(self) -> None:
        """Detach and close the handlers this session attached."""
        while self._handlers:
            handler = self._handlers.pop()
            self._logger.removeHandler(handler)
            handler.close()

    def debug(self, msg: str, *args, **kwargs) -> None: self._logger.debug(msg, *args, **kwargs)
    def info(self, msg: str, *args, **kwargs) -> None: self._logger.info(msg, *args, **kwargs)
    def warning(self, msg: str, *args, **kwargs) -> None: self._logger.warning(msg, *args, **kwargs)
    def error(self, msg: str, *args, **kwargs) -> None: self._logger.error(msg, *args, **kwargs)
    def critical(self, msg: str, *args, **kwargs) -> None: self._logger.critical(msg, *args, **kwargs)
