"""
Storage factory
Maps a backend name from the command line or config to an adapter class
"""

import logging
from typing import Any, Dict, Optional

from .base_storage import StorageInterface
from ..config_loader import ConfigurationError


def _sqlite_storage():
    from .sqlite_storage import SQLiteStorage
    return SQLiteStorage


def _mongo_storage():
    from .mongodb_storage import MongoStorage
    return MongoStorage


# Adapter modules are imported on first use
STORAGE_BACKENDS = {
    "sqlite": _sqlite_storage,
    "mongodb": _mongo_storage,
}


def create_storage(backend: str, properties: Optional[Dict[str, Any]] = None) -> StorageInterface:
    """
    Create a storage adapter instance.

    Args:
        backend: Backend name ('sqlite', 'mongodb')
        properties: Full property set; each adapter reads its own keys

    Returns:
        An adapter whose init() has not been called yet
    """
    logger = logging.getLogger("StorageFactory")
    loader = STORAGE_BACKENDS.get(backend)
    if loader is None:
        raise ConfigurationError(
            f"Unsupported storage backend: {backend} (expected one of: {', '.join(sorted(STORAGE_BACKENDS))})")
    storage_cls = loader()
    logger.debug(f"Creating {storage_cls.__name__} for backend '{backend}'")
    return storage_cls(properties)
