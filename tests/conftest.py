"""Shared test fixtures for settings, async database sessions and sample places."""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from osm_geocoder.core.config import Settings
from osm_geocoder.models.base import Base


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        database_url="sqlite+aiosqlite:///:memory:",
        feed_bulk_size=2,
        bulk_retry_attempts=2,
        bulk_retry_delay_seconds=0,
        tile_width_meters=10_000,
        closest_max_distance_meters=5_000,
    )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    session_factory = async_sessionmaker(async_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


def _square(min_lon: float, min_lat: float, size: float) -> list[list[float]]:
    return [
        [min_lon, min_lat],
        [min_lon + size, min_lat],
        [min_lon + size, min_lat + size],
        [min_lon, min_lat + size],
        [min_lon, min_lat],
    ]


@pytest.fixture
def place_documents() -> dict[str, dict[str, Any]]:
    """A small region: a state containing a city, plus streets inside and outside it.

    The state boundary spans 9.0-9.3°E / 48.6-48.9°N, the city boundary
    9.1-9.2°E / 48.7-48.8°N.  Grenzweg lies just south of the state, under
    2km from its admin centre.
    """
    return {
        "osmnode/1": {
            "name": "Stuttgart",
            "center": [9.15, 48.75],
            "is_in": ["Baden-Württemberg"],
            "has_boundary": False,
        },
        "osmnode/2": {
            "name": "Baden-Württemberg",
            "center": [9.05, 48.61],
            "is_in": ["Deutschland"],
            "has_boundary": False,
        },
        "osmrelation/10": {
            "name": "Stuttgart",
            "center": [9.15, 48.75],
            "center_node": "1",
            "admin_level": 6,
            "wikipedia": "de:Stuttgart",
            "has_boundary": True,
            "bounds": {"type": "MultiPolygon", "coordinates": [[_square(9.1, 48.7, 0.1)]]},
        },
        "osmrelation/20": {
            "name": "Baden-Württemberg",
            "center": [9.15, 48.75],
            "center_node": "2",
            "admin_level": 4,
            "has_boundary": True,
            "bounds": {"type": "MultiPolygon", "coordinates": [[_square(9.0, 48.6, 0.3)]]},
        },
        "osmway/100": {"name": "Königstraße", "center": [9.15, 48.76], "has_boundary": False},
        "osmway/101": {"name": "Landstraße", "center": [9.02, 48.62], "has_boundary": False},
        "osmway/102": {"name": "Feldweg", "center": [9.33, 48.88], "has_boundary": False},
        "osmway/103": {"name": "Far Away", "center": [12.0, 52.0], "has_boundary": False},
        "osmway/104": {"name": "Broken", "center": "9.15,48.75", "has_boundary": False},
        "osmway/105": {"name": "Grenzweg", "center": [9.05, 48.595], "has_boundary": False},
    }
