"""
Services package for the TMS backend.

Contains:
- extraction: Rate confirmation extraction pipeline (OpenAI)
- storage: Load persistence (SQLAlchemy)
- identity: External identity provider client
"""

from .extraction import RateConfExtractor
from .extraction.documents import DocumentService
from .identity import IdentityProvider
from .storage import LoadStore

__all__ = ["RateConfExtractor", "DocumentService", "IdentityProvider", "LoadStore"]
