"""Processing engine."""

from .processor import Processor, ProcessResult
from .rotation import RotationCandidate, rotate, select_best_rotation
from .watcher import FileWatcher

__all__ = [
    "FileWatcher",
    "ProcessResult",
    "Processor",
    "RotationCandidate",
    "rotate",
    "select_best_rotation",
]
