"""Storage layer - Firestore and in-memory implementations."""

from neowhat.storage.base import StorageBackend
from neowhat.storage.firestore import FirestoreStorage
from neowhat.storage.memory import InMemoryStorage

__all__ = ["StorageBackend", "FirestoreStorage", "InMemoryStorage"]
