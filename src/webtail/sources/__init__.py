"""Line source implementations."""

from .base import Line, LineSource
from .file import TailSource, TailState, TailStats

__all__ = ["Line", "LineSource", "TailSource", "TailState", "TailStats"]
