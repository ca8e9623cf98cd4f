"""ORM model registry — import all models so metadata.create_all discovers them."""

from osm_geocoder.models.base import Base
from osm_geocoder.models.place_document import PlaceDocument

__all__ = [
    "Base",
    "PlaceDocument",
]
