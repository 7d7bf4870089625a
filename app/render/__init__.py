"""
Render pipeline and the sequential queue in front of it.
"""

from .pipeline import PageProfile, RenderPipeline
from .queue import QueueFullError, RenderQueue
from .result import ErrorCode, RenderResult

__all__ = [
    "ErrorCode",
    "PageProfile",
    "QueueFullError",
    "RenderPipeline",
    "RenderQueue",
    "RenderResult",
]
