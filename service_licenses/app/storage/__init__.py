"""
Storage package for the License Provider service.
"""

from .lookaside_store import InvalidStorageKeyError, LookasideStore

__all__ = ["InvalidStorageKeyError", "LookasideStore"]
