"""Graph analyses that consume a finished signal graph."""

from .unused import UnusedSignalDetector

__all__ = ["UnusedSignalDetector"]
