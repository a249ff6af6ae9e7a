"""
Repository implementations over the document store.

Repositories translate between domain models and stored documents.
"""

from .availability import DocumentAvailabilityRepository
from .sessions import DocumentSessionRepository

__all__ = ["DocumentAvailabilityRepository", "DocumentSessionRepository"]
