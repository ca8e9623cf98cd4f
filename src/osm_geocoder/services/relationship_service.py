"""Relationship service — assigns is_in hierarchies from boundary polygons.

OpenStreetMap rarely links streets and POIs to the city or village they are
in.  This service merges every administrative boundary into its admin centre
document, indexes the boundaries, and writes the containing area's is_in
chain onto every document that lacks one.  Documents outside every boundary
fall back to the nearest boundary center.
"""

import asyncio
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from osm_geocoder.core.config import Settings
from osm_geocoder.lib.boundary_index import BoundaryIndex, Info, MalformedGeometryError, bbox_of_records
from osm_geocoder.lib.document_store import Document, DocumentStore, DocumentStoreError
from osm_geocoder.lib.geometry import GeoPoint, Ring, to_ring

# Fields copied from a boundary onto its admin centre when missing there.
_INHERITED_FIELDS = ("admin_level", "wikipedia", "type_rank")


@dataclass
class RelationshipFixResult:
    """Counters describing one relationship fixing run."""

    boundaries_seen: int = 0
    boundaries_indexed: int = 0
    boundaries_skipped: int = 0
    parents_updated: int = 0
    boundaries_deleted: int = 0
    entries_seen: int = 0
    entries_skipped: int = 0
    assigned: int = 0
    assigned_closest: int = 0
    ambiguous: int = 0
    unassigned: int = 0
    failed_ids: list[str] = field(default_factory=list)


@dataclass
class ScanProgress:
    """Per-batch progress logging for a document scan."""

    label: str
    total: int
    processed: int = 0
    started: float = field(default_factory=time.monotonic)

    def advance(self, count: int) -> None:
        self.processed += count
        elapsed = max(time.monotonic() - self.started, 1e-9)
        percent = self.processed * 100 / self.total if self.total else 100.0
        logger.info(f"{self.label}: {self.processed} documents ({percent:.1f}%), {self.processed / elapsed:.0f}/s")


def compose_name(name: str | None, is_in: Sequence[str]) -> str:
    """Append the is_in chain to a name, skipping repeated neighbours.

    ``compose_name("Hauptstraße", ["Dresden", "Sachsen"])`` returns
    ``"Hauptstraße, Dresden, Sachsen"``; an ancestor equal to the previous
    part (case-insensitive) is left out.
    """
    result = (name or "").strip()
    previous = result
    for ancestor in is_in:
        tmp = ancestor.strip()
        if not tmp or tmp.lower() == previous.lower():
            continue
        result = f"{result}, {tmp}" if result else tmp
        previous = tmp
    return result


def outer_rings_from_bounds(bounds: dict[str, Any]) -> list[Ring]:
    """Extract the outer rings of a GeoJSON Polygon or MultiPolygon.

    Raises:
        ValueError: If the geometry type is neither Polygon nor MultiPolygon.
    """
    geom_type = bounds.get("type")
    coordinates = bounds.get("coordinates") or []
    if geom_type == "Polygon":
        polygons = [coordinates]
    elif geom_type == "MultiPolygon":
        polygons = coordinates
    else:
        msg = f"Unsupported bounds type: {geom_type}"
        raise ValueError(msg)
    return [to_ring(polygon[0]) for polygon in polygons if polygon and polygon[0]]


def center_of(document: Document) -> GeoPoint | None:
    """Return the document's ``[lon, lat]`` center as a GeoPoint, if well-formed."""
    center = document.get("center")
    if not isinstance(center, list | tuple) or len(center) != 2:
        return None
    lon, lat = center
    if not isinstance(lat, int | float) or not isinstance(lon, int | float):
        return None
    return GeoPoint(float(lat), float(lon))


def _parent_id(info: Info) -> str:
    return info.id.split("|", 1)[0]


class RelationshipFixer:
    """Runs the boundary → is_in assignment over a document store.

    Args:
        store: Source and sink of place documents.
        settings: Batch sizes, index parameters, retry and dry-run options.
    """

    def __init__(self, store: DocumentStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings
        self.result = RelationshipFixResult()
        self._pending: dict[str, Document] = {}

    async def run(self) -> RelationshipFixResult:
        """Run all phases and return the counters."""
        logger.info(f"Fixing relationships (dry_run={self.settings.dry_run})")

        records = await self.assign_boundaries_to_parents()
        index = self.build_index(records)
        if index is None:
            logger.warning("No usable boundaries found, nothing to assign")
            return self.result

        logger.info(f"Updating entries, index size: {index.size()}")
        await self.update_entries(index)

        r = self.result
        logger.info(
            f"Relationships fixed: {r.assigned} by boundary, {r.assigned_closest} by closest center, "
            f"{r.unassigned} unassigned, {len(r.failed_ids)} failed writes"
        )
        return r

    async def assign_boundaries_to_parents(self) -> list[Info]:
        """Merge boundary documents into their admin centres and build records.

        Returns:
            One record per usable boundary, owned by the caller.
        """
        records: list[Info] = []
        merged_boundaries: list[str] = []
        progress = ScanProgress("Boundaries", await self.store.count())

        async for batch in self.store.scan(has_boundary=True, batch_size=self.settings.feed_bulk_size):
            parent_ids = {
                f"osmnode/{doc['center_node']}" for _, doc in batch if doc.get("center_node") is not None
            }
            parents = await self.store.get_many(parent_ids)
            parents.update({k: v for k, v in self._pending.items() if k in parent_ids})

            for boundary_id, boundary in batch:
                self.result.boundaries_seen += 1
                info = self._merge_boundary(boundary_id, boundary, parents)
                if info is None:
                    self.result.boundaries_skipped += 1
                    continue
                records.append(info)
                merged_boundaries.append(boundary_id)

            progress.advance(len(batch))
            await self._flush()

        if self.settings.relations_delete_boundaries and merged_boundaries:
            await self._delete(merged_boundaries)

        self.result.boundaries_indexed = len(records)
        return records

    def _merge_boundary(self, boundary_id: str, boundary: Document, parents: dict[str, Document]) -> Info | None:
        name = boundary.get("name")
        bounds = boundary.get("bounds")
        if not bounds:
            logger.error(f"Boundary {boundary_id} ({name}) has no bounds, skipping")
            return None

        center_node = boundary.get("center_node")
        if center_node is None:
            logger.warning(f"Skipping boundary {boundary_id} ({name}): no center_node")
            return None

        parent_id = f"osmnode/{center_node}"
        parent = parents.get(parent_id)
        if parent is None:
            logger.warning(f"Skipping boundary {boundary_id}: center node {parent_id} not found")
            return None

        if parent.get("bounds"):
            logger.info(f"Parent {parent_id} already has a boundary, keeping it over {boundary_id}")
        else:
            parent["bounds"] = bounds
            for key in _INHERITED_FIELDS:
                if key not in parent and boundary.get(key) is not None:
                    parent[key] = boundary[key]
            parent["has_fixed_boundary"] = True
            self._queue(parent_id, parent)
            self.result.parents_updated += 1

        chain = list(parent.get("is_in") or [])
        parent_name = parent.get("name")
        if parent_name and (not chain or chain[0].strip().lower() != str(parent_name).strip().lower()):
            chain.insert(0, str(parent_name))
        if not chain:
            logger.warning(f"No name or is_in for {parent_id}, boundary {boundary_id} not indexed")
            return None

        center = center_of(parent)
        if center is None:
            logger.warning(f"No center for {parent_id}, using boundary center for {boundary_id}")
            center = center_of(boundary)
        if center is None:
            logger.warning(f"Skipping boundary {boundary_id}: neither it nor {parent_id} has a center")
            return None

        try:
            rings = outer_rings_from_bounds(bounds)
            return Info(f"{parent_id}|{boundary_id}", center, rings, chain)
        except (MalformedGeometryError, ValueError, TypeError, IndexError) as e:
            logger.warning(f"Skipping boundary {boundary_id}: malformed bounds: {e}")
            return None

    def build_index(self, records: Sequence[Info]) -> BoundaryIndex | None:
        """Build the tiled index over the records, or None when there are none."""
        if not records:
            return None
        bbox = self.settings.index_bbox_value or bbox_of_records(records)
        if not bbox.is_valid():
            return None
        index = BoundaryIndex(bbox, self.settings.tile_width_meters, self.settings.index_neighborhood)
        for info in records:
            index.add(info)
        logger.info(
            f"Built boundary index: {index.size()} boundaries in {index.lat_tiles}x{index.lon_tiles} tiles"
        )
        return index

    def _select(self, doc_id: str, matches: Iterable[Info]) -> Info | None:
        candidates = [info for info in matches if _parent_id(info) != doc_id]
        if not candidates:
            return None
        if len(candidates) > 1:
            self.result.ambiguous += 1
            logger.debug(f"{len(candidates)} boundaries contain {doc_id}, using the smallest")
        return min(candidates, key=lambda info: info.area)

    def _assign(self, doc_id: str, document: Document, info: Info, source: str) -> None:
        name = document.get("name")
        if name is not None:
            document["orig_name"] = name
        document["name"] = compose_name(name, info.is_in)
        document["is_in"] = list(info.is_in)
        document["is_in_source"] = source
        self._queue(doc_id, document)

    async def update_entries(self, index: BoundaryIndex) -> None:
        """Assign is_in to every non-boundary document lacking one.

        Documents contained by a boundary get the smallest one's chain; the
        rest of each batch goes through the nearest-center fallback before
        the next batch is read.
        """
        progress = ScanProgress("Entries", await self.store.count())

        async for batch in self.store.scan(
            has_boundary=False, missing_is_in=True, batch_size=self.settings.feed_bulk_size
        ):
            unassigned: list[tuple[str, Document, GeoPoint]] = []
            for doc_id, document in batch:
                self.result.entries_seen += 1
                center = center_of(document)
                if center is None:
                    logger.warning(f"{doc_id} has no center or its center is not [lon, lat]: {document.get('center')}")
                    self.result.entries_skipped += 1
                    continue

                info = self._select(doc_id, index.search_containing(center.lat, center.lon))
                if info is None:
                    unassigned.append((doc_id, document, center))
                    continue
                self._assign(doc_id, document, info, "boundary")
                self.result.assigned += 1

            self.update_unassigned_entries(index, unassigned)
            progress.advance(len(batch))
            await self._flush()

    def update_unassigned_entries(
        self,
        index: BoundaryIndex,
        unassigned: Sequence[tuple[str, Document, GeoPoint]],
    ) -> None:
        """Assign the nearest boundary center's is_in within the configured distance."""
        max_distance = self.settings.closest_max_distance_meters
        for doc_id, document, center in unassigned:
            closest = index.search_closest(center.lat, center.lon, max_distance)
            if closest is None or _parent_id(closest) == doc_id:
                self.result.unassigned += 1
                continue
            self._assign(doc_id, document, closest, "closest")
            self.result.assigned_closest += 1

    def _queue(self, doc_id: str, document: Document) -> None:
        self._pending[doc_id] = document

    async def _flush(self) -> None:
        if not self._pending:
            return
        documents, self._pending = self._pending, {}
        if self.settings.dry_run:
            logger.debug(f"Dry run, not writing {len(documents)} documents")
            return
        failed = await self._upsert_with_retry(documents)
        if failed:
            logger.warning(f"{len(failed)} documents failed to store: {failed[:10]}")
            self.result.failed_ids.extend(failed)

    async def _upsert_with_retry(self, documents: dict[str, Document]) -> list[str]:
        """Bulk upsert with retries of the failed subset and exponential backoff.

        A batch is never fatal: whatever still fails after all attempts is
        returned for reporting.
        """
        attempts = self.settings.bulk_retry_attempts + 1
        remaining = documents
        for attempt in range(attempts):
            try:
                failed = await self.store.bulk_upsert(remaining)
            except DocumentStoreError as e:
                logger.warning(f"Bulk upsert error (attempt {attempt + 1}/{attempts}): {e}")
                failed = list(remaining)
            if not failed:
                return []
            remaining = {doc_id: remaining[doc_id] for doc_id in failed if doc_id in remaining}

            if attempt < attempts - 1:
                delay = self.settings.bulk_retry_delay_seconds * (2**attempt)
                logger.debug(f"Retrying {len(remaining)} documents ({attempt + 1}/{attempts - 1}) in {delay}s")
                await asyncio.sleep(delay)
        return list(remaining)

    async def _delete(self, doc_ids: list[str]) -> None:
        if self.settings.dry_run:
            logger.debug(f"Dry run, not deleting {len(doc_ids)} boundaries")
            return
        for start in range(0, len(doc_ids), self.settings.feed_bulk_size):
            chunk = doc_ids[start : start + self.settings.feed_bulk_size]
            try:
                failed = await self.store.bulk_delete(chunk)
            except DocumentStoreError as e:
                logger.warning(f"Bulk delete error for {len(chunk)} boundaries: {e}")
                failed = list(chunk)
            self.result.boundaries_deleted += len(chunk) - len(failed)
            if failed:
                logger.warning(f"{len(failed)} boundaries could not be deleted: {failed[:10]}")
