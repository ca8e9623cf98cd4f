"""In-memory document store for tests and dry runs."""

import copy
from collections.abc import AsyncIterator, Iterable, Mapping

from osm_geocoder.lib.document_store.base import Document, DocumentBatch, DocumentStore, matches_filter


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store. Documents are deep-copied on the way in and out.

    Args:
        documents: Initial documents keyed by id.
        fail_ids: Ids whose writes always fail, to exercise partial-failure
            handling.
    """

    def __init__(
        self,
        documents: Mapping[str, Document] | None = None,
        *,
        fail_ids: Iterable[str] = (),
    ) -> None:
        self._docs: dict[str, Document] = copy.deepcopy(dict(documents or {}))
        self.fail_ids: set[str] = set(fail_ids)
        self.upsert_calls = 0

    @property
    def store_name(self) -> str:
        return "memory"

    async def scan(
        self,
        *,
        has_boundary: bool | None = None,
        missing_is_in: bool = False,
        batch_size: int = 1000,
    ) -> AsyncIterator[DocumentBatch]:
        last_id = ""
        while True:
            batch: DocumentBatch = []
            for doc_id in sorted(k for k in self._docs if k > last_id):
                doc = self._docs[doc_id]
                if not matches_filter(doc, has_boundary=has_boundary, missing_is_in=missing_is_in):
                    continue
                batch.append((doc_id, copy.deepcopy(doc)))
                if len(batch) >= batch_size:
                    break
            if not batch:
                return
            last_id = batch[-1][0]
            yield batch

    async def get(self, doc_id: str) -> Document | None:
        doc = self._docs.get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def bulk_upsert(self, documents: Mapping[str, Document]) -> list[str]:
        self.upsert_calls += 1
        failed: list[str] = []
        for doc_id, doc in documents.items():
            if doc_id in self.fail_ids:
                failed.append(doc_id)
                continue
            self._docs[doc_id] = copy.deepcopy(doc)
        return failed

    async def bulk_delete(self, doc_ids: Iterable[str]) -> list[str]:
        failed: list[str] = []
        for doc_id in doc_ids:
            if doc_id in self.fail_ids:
                failed.append(doc_id)
                continue
            self._docs.pop(doc_id, None)
        return failed

    async def count(self) -> int:
        return len(self._docs)
