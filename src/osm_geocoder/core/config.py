"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables (or a ``.env`` file)
following 12-factor principles.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from osm_geocoder.lib.geometry import BBox


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./osm_geocoder.db",
        description="Async SQLAlchemy connection string for the place document store",
    )

    # Feeding
    feed_bulk_size: int = Field(
        default=1000,
        description="Documents per scan batch and per bulk upsert",
        gt=0,
    )
    bulk_retry_attempts: int = Field(
        default=2,
        description="Retries for documents that failed a bulk upsert",
        ge=0,
    )
    bulk_retry_delay_seconds: float = Field(
        default=1.0,
        description="Base delay before retrying failed upserts, doubled on each attempt",
        ge=0,
    )
    dry_run: bool = Field(
        default=False,
        description="Compute relationships without writing any document",
    )

    # Boundary index
    tile_width_meters: float = Field(
        default=10_000.0,
        description="Target width of one index tile in meters",
        gt=0,
    )
    index_neighborhood: int = Field(
        default=1,
        description="Tiles scanned in each direction around a query tile",
        ge=0,
    )
    index_bbox: str = Field(
        default="",
        description="Index bounds as 'min_lon,min_lat,max_lon,max_lat'; empty derives them from the boundaries",
    )
    closest_max_distance_meters: float = Field(
        default=5_000.0,
        description="Maximum distance for the nearest-center fallback",
        gt=0,
    )
    relations_delete_boundaries: bool = Field(
        default=False,
        description="Delete boundary documents once merged into their parent",
    )

    @field_validator("index_bbox")
    @classmethod
    def validate_index_bbox(cls, v: str) -> str:
        if v.strip():
            BBox.parse(v)
        return v.strip()

    @property
    def index_bbox_value(self) -> BBox | None:
        """Parsed ``index_bbox`` or None when the bounds should be derived."""
        if not self.index_bbox:
            return None
        return BBox.parse(self.index_bbox)

    # Simplification
    small_boundary: int = Field(
        default=25,
        description="Rings with fewer points are stored unsimplified",
        ge=4,
    )
    spatial_key_resolution: int = Field(
        default=40,
        description="Bits of the coarse spatial key used by the simplifier",
        ge=2,
        le=62,
    )
    simplify_window: int = Field(
        default=3,
        description="Number of recently kept points compared against",
        gt=0,
    )
    simplify_method: Literal["key", "douglas_peucker", "none"] = Field(
        default="key",
        description="Boundary ring simplification method",
    )
    douglas_peucker_tolerance: float = Field(
        default=0.0001,
        description="Douglas-Peucker tolerance in degrees",
        gt=0,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
