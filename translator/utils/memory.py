"""
Device selection and memory release helpers for loaded models.
"""

import gc
import psutil
import torch
from typing import Any, Optional
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


@dataclass
class MemoryStats:
    """Memory usage statistics."""

    total_memory_gb: float
    available_memory_gb: float
    process_memory_mb: float
    memory_percent: float
    gpu_memory_mb: Optional[float] = None


def get_memory_stats() -> MemoryStats:
    """Get current memory usage statistics."""
    memory = psutil.virtual_memory()
    process_memory = psutil.Process().memory_info()

    stats = MemoryStats(
        total_memory_gb=memory.total / (1024**3),
        available_memory_gb=memory.available / (1024**3),
        process_memory_mb=process_memory.rss / (1024**2),
        memory_percent=memory.percent
    )

    if torch.cuda.is_available():
        try:
            stats.gpu_memory_mb = torch.cuda.memory_allocated(0) / (1024**2)
        except Exception as e:
            logger.warning(f"Could not get GPU memory stats: {e}")

    return stats


def get_optimal_device(use_gpu: bool = True, device: Optional[str] = None) -> str:
    """Pick the device a pipeline should be loaded on.

    Args:
        use_gpu: Allow accelerators when available
        device: Explicit device that overrides detection

    Returns:
        Device name understood by ``transformers.pipeline``
    """
    if device:
        return device
    if not use_gpu:
        return "cpu"
    if torch.cuda.is_available():
        return "cuda"
    elif hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
        return "mps"  # Apple Silicon
    return "cpu"


def free_accelerator_memory() -> None:
    """Run garbage collection and return cached GPU blocks to the driver."""
    gc.collect()
    if torch.cuda.is_available():
        torch.cuda.empty_cache()


def release_handle(handle: Any) -> None:
    """Close a pipeline handle if it supports it."""
    close = getattr(handle, 'close', None)
    if callable(close):
        try:
            close()
        except Exception as e:
            logger.warning(f"Failed to release pipeline handle: {e}")
