"""
Maintenance module.

Provides the background sweeper that ages out downloaded and rendered temp files.
"""

from .sweeper import TempSweeper

__all__ = ["TempSweeper"]
