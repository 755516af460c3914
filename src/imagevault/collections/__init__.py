"""Collection lifecycle, image ingestion, and collection-scoped image operations."""

from .manager import Collection, CollectionManager, StoreFactory
from .results import BatchItemResult, BatchResult, ImageContent

__all__ = [
    "Collection",
    "CollectionManager",
    "StoreFactory",
    "BatchItemResult",
    "BatchResult",
    "ImageContent",
]
