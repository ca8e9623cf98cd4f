"""Abstract document store interface for place documents."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable, Mapping
from typing import Any

Document = dict[str, Any]
DocumentBatch = list[tuple[str, Document]]


class DocumentStoreError(Exception):
    """Raised when the backing store fails as a whole (not per document).

    Args:
        store_name: Name of the failing store.
        message: Human-readable error description.
    """

    def __init__(self, store_name: str, message: str) -> None:
        self.store_name = store_name
        self.message = message
        super().__init__(f"{store_name}: {message}")


def matches_filter(document: Document, *, has_boundary: bool | None, missing_is_in: bool) -> bool:
    """Shared scan filter semantics for store implementations."""
    if has_boundary is not None and bool(document.get("has_boundary")) != has_boundary:
        return False
    return not (missing_is_in and document.get("is_in"))


class DocumentStore(ABC):
    """Key/value store of place documents. All stores implement this."""

    @property
    @abstractmethod
    def store_name(self) -> str:
        """Unique name identifying this store."""

    @abstractmethod
    def scan(
        self,
        *,
        has_boundary: bool | None = None,
        missing_is_in: bool = False,
        batch_size: int = 1000,
    ) -> AsyncIterator[DocumentBatch]:
        """Iterate over matching documents in id order, one batch at a time.

        Iteration ends at the first empty batch.  Documents written while a
        scan is running may or may not be seen by it.

        Args:
            has_boundary: Only documents with this ``has_boundary`` flag
                (None = all).
            missing_is_in: Only documents without an ``is_in`` list.
            batch_size: Maximum documents per batch.
        """

    @abstractmethod
    async def get(self, doc_id: str) -> Document | None:
        """Return a copy of one document, or None when it does not exist."""

    async def get_many(self, doc_ids: Iterable[str]) -> dict[str, Document]:
        """Return the existing documents among ``doc_ids``.

        Default implementation calls get() sequentially.
        """
        found: dict[str, Document] = {}
        for doc_id in doc_ids:
            doc = await self.get(doc_id)
            if doc is not None:
                found[doc_id] = doc
        return found

    @abstractmethod
    async def bulk_upsert(self, documents: Mapping[str, Document]) -> list[str]:
        """Insert or replace documents by id.

        Returns:
            Ids of the documents that could not be written.  A partial
            failure does not raise.
        """

    @abstractmethod
    async def bulk_delete(self, doc_ids: Iterable[str]) -> list[str]:
        """Delete documents by id. Missing ids are not failures.

        Returns:
            Ids that could not be deleted.
        """

    @abstractmethod
    async def count(self) -> int:
        """Total number of stored documents."""
