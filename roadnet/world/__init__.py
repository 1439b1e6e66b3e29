"""
World streaming around a moving observer
"""

from .chunk_manager import ChunkManager, Chunk, ChunkState
from .renderer import ChunkRenderer, MarkerRenderer

__all__ = [
    "ChunkManager",
    "Chunk",
    "ChunkState",
    "ChunkRenderer",
    "MarkerRenderer",
]
