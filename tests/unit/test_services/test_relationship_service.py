"""Unit tests for the relationship service."""

from collections.abc import AsyncIterator, Iterable, Mapping
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from osm_geocoder.core.config import Settings
from osm_geocoder.lib.document_store import Document, DocumentBatch, DocumentStoreError, InMemoryDocumentStore
from osm_geocoder.lib.geometry import GeoPoint
from osm_geocoder.services.document_service import SqlDocumentStore
from osm_geocoder.services.relationship_service import (
    RelationshipFixer,
    ScanProgress,
    center_of,
    compose_name,
    outer_rings_from_bounds,
)


class FlakyStore(InMemoryDocumentStore):
    """Raises DocumentStoreError for the first ``failures`` upserts."""

    def __init__(self, documents: Mapping[str, Document], failures: int) -> None:
        super().__init__(documents)
        self.failures = failures

    async def bulk_upsert(self, documents: Mapping[str, Document]) -> list[str]:
        if self.failures > 0:
            self.failures -= 1
            self.upsert_calls += 1
            raise DocumentStoreError(self.store_name, "connection reset")
        return await super().bulk_upsert(documents)


class BatchTrackingStore(InMemoryDocumentStore):
    """Records how many entry batches had been read when each document was written."""

    def __init__(self, documents: Mapping[str, Document]) -> None:
        super().__init__(documents)
        self.entry_batches = 0
        self.written_at: dict[str, int] = {}

    async def scan(
        self,
        *,
        has_boundary: bool | None = None,
        missing_is_in: bool = False,
        batch_size: int = 1000,
    ) -> AsyncIterator[DocumentBatch]:
        async for batch in super().scan(
            has_boundary=has_boundary, missing_is_in=missing_is_in, batch_size=batch_size
        ):
            if missing_is_in:
                self.entry_batches += 1
            yield batch

    async def bulk_upsert(self, documents: Mapping[str, Document]) -> list[str]:
        for doc_id in documents:
            self.written_at.setdefault(doc_id, self.entry_batches)
        return await super().bulk_upsert(documents)


class BrokenDeleteStore(InMemoryDocumentStore):
    """Raises DocumentStoreError on every bulk delete."""

    async def bulk_delete(self, doc_ids: Iterable[str]) -> list[str]:
        raise DocumentStoreError(self.store_name, "delete not permitted")


class TestComposeName:
    """Tests for display name composition."""

    def test_appends_chain(self) -> None:
        """Ancestors are appended comma-separated."""
        assert compose_name("Hauptstraße", ["Dresden", "Sachsen"]) == "Hauptstraße, Dresden, Sachsen"

    def test_skips_repeated_neighbour(self) -> None:
        """An ancestor equal to the previous part is skipped, ignoring case."""
        assert compose_name("Dresden", ["dresden", "Sachsen", "SACHSEN", "Deutschland"]) == (
            "Dresden, Sachsen, Deutschland"
        )

    def test_trims_and_skips_blank(self) -> None:
        """Whitespace is trimmed and blank ancestors ignored."""
        assert compose_name("  Weg ", [" ", " Ort "]) == "Weg, Ort"

    def test_without_name(self) -> None:
        """A missing name starts from the first ancestor."""
        assert compose_name(None, ["Ort", "Land"]) == "Ort, Land"
        assert compose_name("", []) == ""


class TestHelpers:
    """Tests for bounds and center parsing."""

    def test_outer_rings_multipolygon(self) -> None:
        """Only the outer ring of each polygon is used."""
        outer = [[0, 0], [1, 0], [1, 1], [0, 0]]
        hole = [[0.2, 0.1], [0.3, 0.1], [0.3, 0.2], [0.2, 0.1]]
        rings = outer_rings_from_bounds({"type": "MultiPolygon", "coordinates": [[outer, hole], [outer]]})
        assert len(rings) == 2
        assert rings[0][1] == GeoPoint(0, 1)

    def test_outer_rings_polygon(self) -> None:
        """Plain polygons are accepted too."""
        rings = outer_rings_from_bounds({"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]})
        assert len(rings) == 1

    def test_outer_rings_unsupported(self) -> None:
        """Other geometry types raise ValueError."""
        with pytest.raises(ValueError, match="Unsupported bounds type"):
            outer_rings_from_bounds({"type": "Point", "coordinates": [0, 0]})

    def test_center_of(self) -> None:
        """Centers must be [lon, lat] number pairs."""
        assert center_of({"center": [9.1, 48.7]}) == GeoPoint(48.7, 9.1)
        assert center_of({"center": "9.1,48.7"}) is None
        assert center_of({"center": [9.1]}) is None
        assert center_of({"center": ["9.1", "48.7"]}) is None
        assert center_of({}) is None

    def test_scan_progress(self) -> None:
        """Progress accumulates processed counts."""
        progress = ScanProgress("Entries", total=10)
        progress.advance(4)
        progress.advance(6)
        assert progress.processed == 10
        ScanProgress("Empty", total=0).advance(0)


class TestRelationshipFixer:
    """Tests for the full boundary assignment run."""

    async def test_run_assigns_hierarchy(
        self, settings: Settings, place_documents: dict[str, dict[str, Any]]
    ) -> None:
        """Boundaries are merged into parents and entries get the most specific chain."""
        store = InMemoryDocumentStore(place_documents)
        result = await RelationshipFixer(store, settings).run()

        assert result.boundaries_seen == 2
        assert result.boundaries_indexed == 2
        assert result.parents_updated == 2
        assert result.assigned == 2
        assert result.assigned_closest == 1
        assert result.unassigned == 2
        assert result.entries_skipped == 1
        assert result.ambiguous == 1
        assert result.failed_ids == []

        street = await store.get("osmway/100")
        assert street is not None
        assert street["is_in"] == ["Stuttgart", "Baden-Württemberg"]
        assert street["name"] == "Königstraße, Stuttgart, Baden-Württemberg"
        assert street["orig_name"] == "Königstraße"
        assert street["is_in_source"] == "boundary"

        rural = await store.get("osmway/101")
        assert rural is not None
        assert rural["is_in"] == ["Baden-Württemberg", "Deutschland"]

        border = await store.get("osmway/105")
        assert border is not None
        assert border["is_in_source"] == "closest"
        assert border["name"] == "Grenzweg, Baden-Württemberg, Deutschland"

        assert "is_in" not in (await store.get("osmway/102") or {})
        assert "is_in" not in (await store.get("osmway/103") or {})

    async def test_parent_receives_boundary(
        self, settings: Settings, place_documents: dict[str, dict[str, Any]]
    ) -> None:
        """The admin centre gets the bounds and missing metadata of its boundary."""
        store = InMemoryDocumentStore(place_documents)
        await RelationshipFixer(store, settings).run()

        parent = await store.get("osmnode/1")
        assert parent is not None
        assert parent["bounds"] == place_documents["osmrelation/10"]["bounds"]
        assert parent["admin_level"] == 6
        assert parent["wikipedia"] == "de:Stuttgart"
        assert parent["has_fixed_boundary"] is True
        assert parent["is_in"] == ["Baden-Württemberg"]
        assert await store.get("osmrelation/10") is not None

    async def test_existing_parent_bounds_kept(
        self, settings: Settings, place_documents: dict[str, dict[str, Any]]
    ) -> None:
        """A parent that already has bounds keeps them."""
        own_bounds = {"type": "MultiPolygon", "coordinates": [[[[9.1, 48.7], [9.2, 48.7], [9.2, 48.8], [9.1, 48.7]]]]}
        place_documents["osmnode/1"]["bounds"] = own_bounds
        store = InMemoryDocumentStore(place_documents)
        result = await RelationshipFixer(store, settings).run()

        assert result.parents_updated == 1
        parent = await store.get("osmnode/1")
        assert parent is not None
        assert parent["bounds"] == own_bounds

    async def test_skipped_boundaries(self, settings: Settings, place_documents: dict[str, dict[str, Any]]) -> None:
        """Boundaries without bounds, center node, parent or valid rings are skipped."""
        place_documents["osmrelation/30"] = {"name": "No bounds", "center_node": "1", "has_boundary": True}
        place_documents["osmrelation/31"] = {
            "name": "No center node",
            "has_boundary": True,
            "bounds": place_documents["osmrelation/10"]["bounds"],
        }
        place_documents["osmrelation/32"] = {
            "name": "Missing parent",
            "center_node": "404",
            "has_boundary": True,
            "bounds": place_documents["osmrelation/10"]["bounds"],
        }
        place_documents["osmnode/3"] = {"name": "Esslingen", "center": [9.3, 48.74], "is_in": ["BW"]}
        place_documents["osmrelation/33"] = {
            "name": "Unclosed",
            "center_node": "3",
            "has_boundary": True,
            "bounds": {"type": "MultiPolygon", "coordinates": [[[[9.3, 48.7], [9.4, 48.7], [9.4, 48.8], [9.3, 48.8]]]]},
        }
        store = InMemoryDocumentStore(place_documents)
        result = await RelationshipFixer(store, settings).run()

        assert result.boundaries_seen == 6
        assert result.boundaries_skipped == 4
        assert result.boundaries_indexed == 2

    async def test_document_not_assigned_to_own_boundary(self, settings: Settings) -> None:
        """A place without is_in is not placed inside its own boundary."""
        documents = {
            "osmnode/1": {"name": "Esslingen", "center": [9.3, 48.74], "has_boundary": False},
            "osmrelation/1": {
                "name": "Esslingen",
                "center_node": "1",
                "has_boundary": True,
                "bounds": {
                    "type": "Polygon",
                    "coordinates": [[[9.25, 48.7], [9.35, 48.7], [9.35, 48.8], [9.25, 48.8], [9.25, 48.7]]],
                },
            },
            "osmway/1": {"name": "Marktplatz", "center": [9.31, 48.74], "has_boundary": False},
        }
        store = InMemoryDocumentStore(documents)
        result = await RelationshipFixer(store, settings).run()

        assert result.boundaries_indexed == 1
        assert result.assigned == 1
        square = await store.get("osmway/1")
        assert square is not None
        assert square["name"] == "Marktplatz, Esslingen"
        town = await store.get("osmnode/1")
        assert town is not None
        assert "is_in" not in town

    async def test_dry_run_writes_nothing(
        self, settings: Settings, place_documents: dict[str, dict[str, Any]]
    ) -> None:
        """Dry runs count assignments without touching the store."""
        store = InMemoryDocumentStore(place_documents)
        dry = settings.model_copy(update={"dry_run": True, "relations_delete_boundaries": True})
        result = await RelationshipFixer(store, dry).run()

        assert result.assigned == 2
        assert store.upsert_calls == 0
        assert result.boundaries_deleted == 0
        assert await store.get("osmway/100") == place_documents["osmway/100"]
        assert await store.count() == len(place_documents)

    async def test_delete_boundaries(self, settings: Settings, place_documents: dict[str, dict[str, Any]]) -> None:
        """Merged boundaries are deleted when enabled."""
        store = InMemoryDocumentStore(place_documents)
        enabled = settings.model_copy(update={"relations_delete_boundaries": True})
        result = await RelationshipFixer(store, enabled).run()

        assert result.boundaries_deleted == 2
        assert await store.get("osmrelation/10") is None
        assert await store.get("osmrelation/20") is None

    async def test_failed_writes_are_retried_and_reported(
        self, settings: Settings, place_documents: dict[str, dict[str, Any]]
    ) -> None:
        """Documents that keep failing are retried, then reported without aborting."""
        store = InMemoryDocumentStore(place_documents, fail_ids=["osmway/100"])
        result = await RelationshipFixer(store, settings).run()

        assert result.failed_ids == ["osmway/100"]
        assert result.assigned == 2
        rural = await store.get("osmway/101")
        assert rural is not None
        assert rural["is_in_source"] == "boundary"

    async def test_store_errors_are_retried(
        self, settings: Settings, place_documents: dict[str, dict[str, Any]]
    ) -> None:
        """A transient store error is retried with the same documents."""
        store = FlakyStore(place_documents, failures=1)
        result = await RelationshipFixer(store, settings).run()

        assert result.failed_ids == []
        parent = await store.get("osmnode/1")
        assert parent is not None
        assert parent["has_fixed_boundary"] is True

    async def test_closest_fallback_runs_per_batch(
        self, settings: Settings, place_documents: dict[str, dict[str, Any]]
    ) -> None:
        """Entries outside every boundary are assigned and written with their own batch."""
        place_documents["osmway/106"] = {"name": "Ackerweg", "center": [9.06, 48.59], "has_boundary": False}
        place_documents["osmway/107"] = {"name": "Waldweg", "center": [9.04, 48.585], "has_boundary": False}
        place_documents["osmway/108"] = {"name": "Wiesenweg", "center": [9.05, 48.59], "has_boundary": False}
        store = BatchTrackingStore(place_documents)
        result = await RelationshipFixer(store, settings).run()

        assert store.entry_batches == 5
        assert result.assigned == 2
        assert result.assigned_closest == 4
        assert result.unassigned == 2
        assert store.written_at["osmway/105"] == 3
        assert store.written_at["osmway/108"] == 5
        for doc_id in ("osmway/105", "osmway/106", "osmway/107", "osmway/108"):
            doc = await store.get(doc_id)
            assert doc is not None
            assert doc["is_in_source"] == "closest"
            assert doc["is_in"] == ["Baden-Württemberg", "Deutschland"]

    async def test_delete_errors_do_not_abort(
        self, settings: Settings, place_documents: dict[str, dict[str, Any]]
    ) -> None:
        """A store error while deleting boundaries is logged and the run continues."""
        store = BrokenDeleteStore(place_documents)
        enabled = settings.model_copy(update={"relations_delete_boundaries": True})
        result = await RelationshipFixer(store, enabled).run()

        assert result.boundaries_deleted == 0
        assert result.assigned == 2
        assert await store.get("osmrelation/10") is not None

    async def test_no_boundaries(self, settings: Settings) -> None:
        """Without boundaries nothing is assigned."""
        store = InMemoryDocumentStore({"osmway/1": {"name": "Weg", "center": [9.0, 48.0]}})
        result = await RelationshipFixer(store, settings).run()

        assert result.boundaries_indexed == 0
        assert result.entries_seen == 0
        assert store.upsert_calls == 0

    async def test_configured_bbox(self, settings: Settings, place_documents: dict[str, dict[str, Any]]) -> None:
        """An explicit index bbox is used instead of the derived one."""
        configured = settings.model_copy(update={"index_bbox": "8.9,48.5,9.4,49.0"})
        fixer = RelationshipFixer(InMemoryDocumentStore(place_documents), configured)
        index = fixer.build_index(await fixer.assign_boundaries_to_parents())

        assert index is not None
        assert index.bbox.min_lon == 8.9
        assert index.bbox.max_lat == 49.0

    async def test_sql_store(
        self, settings: Settings, async_session: AsyncSession, place_documents: dict[str, dict[str, Any]]
    ) -> None:
        """The run works against the SQL store as well."""
        store = SqlDocumentStore(async_session)
        await store.bulk_upsert(place_documents)
        result = await RelationshipFixer(store, settings).run()

        assert result.assigned == 2
        assert result.assigned_closest == 1
        street = await store.get("osmway/100")
        assert street is not None
        assert street["is_in"] == ["Stuttgart", "Baden-Württemberg"]
