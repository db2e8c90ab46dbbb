"""
Background reclamation of abandoned upload data.
"""

from .sweeper import TempSweeper

__all__ = [
    "TempSweeper",
]
