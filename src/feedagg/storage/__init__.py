"""Storage backends.

Example:
    >>> from feedagg.storage import MemoryStorage
    >>> storage = MemoryStorage()
"""

from feedagg.storage.memory import MemoryStorage
from feedagg.storage.sqlalchemy_storage import SQLAlchemyStorage, StorageConfig

__all__ = [
    "MemoryStorage",
    "SQLAlchemyStorage",
    "StorageConfig",
]
