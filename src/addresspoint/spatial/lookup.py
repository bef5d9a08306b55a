from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from addresspoint.spatial.index import DEFAULT_NODE_CAPACITY, SpatialIndex
from addresspoint.util.geo import PointRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AddressMatch:
    citycode: str
    address: str
    distance_km: float

    def to_dict(self) -> dict[str, str]:
        return {"citycode": self.citycode, "address": self.address}


class AddressLookup:
    """Read-only front of a built :class:`SpatialIndex`.

    ``lookup`` returns ``None`` when nothing is indexed; that is an expected
    outcome and never raised as an error. Coordinates are forwarded unchecked.
    """

    def __init__(self, index: SpatialIndex):
        self._index = index

    @classmethod
    def from_records(cls, records: Sequence[PointRecord], *, node_capacity: int = DEFAULT_NODE_CAPACITY) -> "AddressLookup":
        return cls(SpatialIndex.build(records, node_capacity=node_capacity))

    @property
    def index(self) -> SpatialIndex:
        return self._index

    def lookup(self, lat: float, lon: float) -> AddressMatch | None:
        hit = self._index.nearest(lat, lon)
        if hit is None:
            logger.warning("no nearest point found for lat=%s lon=%s", lat, lon)
            return None
        logger.debug("nearest point found: %r (%.3f km)", hit.record, hit.distance_km)
        return AddressMatch(citycode=hit.record.citycode, address=hit.record.address, distance_km=hit.distance_km)
