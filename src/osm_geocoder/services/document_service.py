"""Document service — SQLAlchemy-backed place document store."""

from collections.abc import AsyncIterator, Iterable, Mapping
from typing import Any

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from osm_geocoder.lib.document_store import Document, DocumentBatch, DocumentStore, DocumentStoreError
from osm_geocoder.models.place_document import PlaceDocument


def _row_values(doc_id: str, document: Document) -> dict[str, Any]:
    return {
        "id": doc_id,
        "document": document,
        "has_boundary": bool(document.get("has_boundary")),
        "has_is_in": bool(document.get("is_in")),
    }


class SqlDocumentStore(DocumentStore):
    """Place documents in the ``place_documents`` table.

    Upserts use the dialect's ``INSERT .. ON CONFLICT DO UPDATE``.  When a
    whole batch fails it is rolled back and retried row by row inside
    savepoints so only the offending documents are reported as failed.

    Args:
        session: Async session; the store commits after each write.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @property
    def store_name(self) -> str:
        return "sql"

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(PlaceDocument)
        if dialect == "sqlite":
            return sqlite_insert(PlaceDocument)
        msg = f"Unsupported database dialect for upserts: {dialect}"
        raise DocumentStoreError(self.store_name, msg)

    def _upsert_statement(self, rows: list[dict[str, Any]]):
        stmt = self._insert().values(rows)
        return stmt.on_conflict_do_update(
            index_elements=[PlaceDocument.id],
            set_={
                "document": stmt.excluded.document,
                "has_boundary": stmt.excluded.has_boundary,
                "has_is_in": stmt.excluded.has_is_in,
                "updated_at": func.now(),
            },
        )

    async def scan(
        self,
        *,
        has_boundary: bool | None = None,
        missing_is_in: bool = False,
        batch_size: int = 1000,
    ) -> AsyncIterator[DocumentBatch]:
        last_id = ""
        while True:
            query = select(PlaceDocument.id, PlaceDocument.document).where(PlaceDocument.id > last_id)
            if has_boundary is not None:
                query = query.where(PlaceDocument.has_boundary.is_(has_boundary))
            if missing_is_in:
                query = query.where(PlaceDocument.has_is_in.is_(False))
            query = query.order_by(PlaceDocument.id).limit(batch_size)

            try:
                result = await self.session.execute(query)
            except SQLAlchemyError as e:
                raise DocumentStoreError(self.store_name, f"scan failed after {last_id!r}: {e}") from e

            batch: DocumentBatch = [(row.id, dict(row.document)) for row in result]
            if not batch:
                return
            last_id = batch[-1][0]
            yield batch

    async def get(self, doc_id: str) -> Document | None:
        result = await self.session.execute(select(PlaceDocument.document).where(PlaceDocument.id == doc_id))
        document = result.scalar_one_or_none()
        return dict(document) if document is not None else None

    async def get_many(self, doc_ids: Iterable[str]) -> dict[str, Document]:
        ids = list(doc_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(PlaceDocument.id, PlaceDocument.document).where(PlaceDocument.id.in_(ids))
        )
        return {row.id: dict(row.document) for row in result}

    async def bulk_upsert(self, documents: Mapping[str, Document]) -> list[str]:
        if not documents:
            return []
        rows = [_row_values(doc_id, doc) for doc_id, doc in documents.items()]

        try:
            await self.session.execute(self._upsert_statement(rows))
            await self.session.commit()
            return []
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning(f"Bulk upsert of {len(rows)} documents failed, retrying row by row: {e}")

        failed: list[str] = []
        for row in rows:
            try:
                async with self.session.begin_nested():
                    await self.session.execute(self._upsert_statement([row]))
            except SQLAlchemyError as e:
                logger.warning(f"Cannot store document {row['id']}: {e}")
                failed.append(row["id"])
        await self.session.commit()
        return failed

    async def bulk_delete(self, doc_ids: Iterable[str]) -> list[str]:
        ids = list(doc_ids)
        if not ids:
            return []
        try:
            await self.session.execute(delete(PlaceDocument).where(PlaceDocument.id.in_(ids)))
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning(f"Bulk delete of {len(ids)} documents failed: {e}")
            return ids
        return []

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(PlaceDocument))
        return int(result.scalar_one())
