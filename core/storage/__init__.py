"""Core storage - JSON artifacts, change tracking and the order archive."""

from core.storage.artifacts import (
    put_json,
    get_json,
    read_json,
    ArtifactStore,
)
from core.storage.tracking import ChangeTrackingStore
from core.storage.order_archive import OrderArchive

__all__ = [
    "put_json",
    "get_json",
    "read_json",
    "ArtifactStore",
    "ChangeTrackingStore",
    "OrderArchive",
]
