"""
Routers package for FastAPI endpoints.

Organized by domain:
- rateconf: Rate confirmation parsing
- loads: Load management
"""

from . import loads, rateconf

__all__ = ["loads", "rateconf"]
