"""PlaceDocument model — one normalized OSM place stored as a JSON document."""

from typing import Any

from sqlalchemy import JSON, Boolean, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from osm_geocoder.models.base import Base, TimestampMixin


class PlaceDocument(Base, TimestampMixin):
    """A place document keyed by its OSM id (e.g. ``osmnode/123``).

    ``has_boundary`` and ``has_is_in`` mirror document fields so scans can
    filter without parsing JSON.
    """

    __tablename__ = "place_documents"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    document: Mapped[dict[str, Any]] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    has_boundary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    has_is_in: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
