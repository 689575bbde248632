"""
Persistence Layer

Artifact storage for rendered reports.
"""

from .storage import StorageBackend, FileStorage, create_storage

__all__ = [
    "StorageBackend",
    "FileStorage",
    "create_storage",
]
