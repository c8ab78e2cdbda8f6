"""
Engines that drive Chukrum rounds through platform adapters.
"""

from chukrum.engine.base import ChukrumEngine
from chukrum.engine.solo import SoloEngine

__all__ = ["ChukrumEngine", "SoloEngine"]
