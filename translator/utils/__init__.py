"""
Logging and memory helpers.
"""

from .logger import setup_logger, log_exception, PerformanceLogger, ColoredFormatter
from .memory import get_optimal_device, free_accelerator_memory, release_handle, get_memory_stats

__all__ = [
    'setup_logger',
    'log_exception',
    'PerformanceLogger',
    'ColoredFormatter',
    'get_optimal_device',
    'free_accelerator_memory',
    'release_handle',
    'get_memory_stats'
]
