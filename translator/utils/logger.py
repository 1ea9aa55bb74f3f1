"""
Logging utilities for the translator service.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Dict, Any, List
import time

import colorama
from colorama import Fore, Style

from .memory import get_memory_stats


colorama.init(autoreset=True)

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name on console output."""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{Style.RESET_ALL}"

        message = super().format(record)

        # Reset levelname for other handlers
        record.levelname = levelname

        return message


class PerformanceLogger:
    """Tracks named timings, such as model loads, and memory after them."""

    def __init__(self, logger: logging.Logger, clock=time.perf_counter):
        """Initialize performance logger.

        Args:
            logger: Base logger instance
            clock: Time source for durations
        """
        self.logger = logger
        self._clock = clock
        self.start_times: Dict[str, float] = {}
        self.metrics: Dict[str, List[float]] = {}

    def start_timer(self, name: str) -> None:
        self.start_times[name] = self._clock()
        self.logger.debug(f"Started timer for: {name}")

    def stop_timer(self, name: str) -> float:
        """Stop a timer and log the duration.

        Returns:
            Duration in seconds, 0.0 if the timer was never started
        """
        if name not in self.start_times:
            self.logger.warning(f"Timer '{name}' was not started")
            return 0.0

        duration = self._clock() - self.start_times.pop(name)
        self.metrics.setdefault(name, []).append(duration)

        self.logger.info(f"Completed {name} in {duration:.2f} seconds")
        return duration

    def log_memory_usage(self) -> None:
        stats = get_memory_stats()
        message = (
            f"Memory usage: {stats.process_memory_mb:.1f} MB "
            f"(System: {stats.memory_percent:.1f}%)"
        )
        if stats.gpu_memory_mb is not None:
            message += f" GPU: {stats.gpu_memory_mb:.1f} MB"
        self.logger.info(message)

    def get_summary(self) -> Dict[str, Any]:
        summary = {}
        for name, times in self.metrics.items():
            summary[name] = {
                'count': len(times),
                'total': sum(times),
                'average': sum(times) / len(times) if times else 0,
                'min': min(times) if times else 0,
                'max': max(times) if times else 0
            }
        return summary


def setup_logger(
    name: str,
    level: str = "INFO",
    log_file: Optional[Path] = None,
    log_to_console: bool = True,
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    use_colors: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5
) -> logging.Logger:
    """Set up a logger with console and optional rotating file output.

    Args:
        name: Logger name
        level: Logging level
        log_file: Optional log file path
        log_to_console: Whether to log to console
        log_format: Log message format
        date_format: Date format for log messages
        use_colors: Whether to use colored console output
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    logger.handlers.clear()

    log_format = log_format or DEFAULT_FORMAT
    date_format = date_format or DEFAULT_DATE_FORMAT

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, level.upper()))

        if use_colors:
            console_formatter = ColoredFormatter(log_format, datefmt=date_format)
        else:
            console_formatter = logging.Formatter(log_format, datefmt=date_format)

        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        file_handler.setLevel(getattr(logging, level.upper()))
        file_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
        logger.addHandler(file_handler)

    return logger


def log_exception(logger: logging.Logger, exception: Exception, context: Optional[str] = None) -> None:
    """Log an exception with context.

    Args:
        logger: Logger instance
        exception: Exception to log
        context: Optional context information
    """
    error_msg = f"Exception occurred: {type(exception).__name__}: {str(exception)}"

    if context:
        error_msg = f"{context} - {error_msg}"

    logger.error(error_msg, exc_info=exception)
