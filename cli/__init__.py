"""
VideoForge CLI Tools

Command-line tools for interacting with the video generation API.

Tools:
- progress_monitor: Real-time progress for one generation job
"""

from .progress_monitor import ProgressMonitor

__all__ = ["ProgressMonitor"]
