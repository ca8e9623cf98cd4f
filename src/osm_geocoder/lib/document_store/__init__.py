"""Document store library — key/value access to place documents.

Public API:
    - DocumentStore: Abstract store interface (scan, get, bulk upsert/delete)
    - DocumentStoreError: Whole-store failure
    - InMemoryDocumentStore: Dict-backed implementation
    - Document / DocumentBatch: Type aliases
"""

from osm_geocoder.lib.document_store.base import (
    Document,
    DocumentBatch,
    DocumentStore,
    DocumentStoreError,
    matches_filter,
)
from osm_geocoder.lib.document_store.memory import InMemoryDocumentStore

__all__ = [
    "Document",
    "DocumentBatch",
    "DocumentStore",
    "DocumentStoreError",
    "InMemoryDocumentStore",
    "matches_filter",
]
