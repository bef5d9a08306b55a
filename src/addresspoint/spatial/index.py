"""Bulk-loaded R-tree over address points.

The tree is packed once with Sort-Tile-Recursive (STR) and never modified
afterwards, so one instance can be shared by any number of reader threads.

Rectangles are packed in raw (lat, lon) degree space while candidates are
ranked by haversine distance. A rectangle is pruned by its great-circle
distance to the query (see ``envelope_distance_2_many``), which never exceeds
the distance to any point inside it, so pruning cannot drop the nearest point.
STR tiles by raw degrees, so node rectangles near the poles or across the
antimeridian are loose and prune poorly; results stay correct, only slower.
"""

from __future__ import annotations

import heapq
import logging
import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

import numpy as np

from addresspoint.util.geo import (
    Envelope,
    PointRecord,
    build_latlon_matrix,
    envelope_distance_2_many,
    haversine_km_2,
    haversine_km_2_many,
)

logger = logging.getLogger(__name__)

DEFAULT_NODE_CAPACITY = 16


@dataclass(frozen=True)
class SpatialQueryResult:
    record: PointRecord
    distance_km: float
    position: int


@dataclass(frozen=True)
class _Level:
    # bounds columns: min_lat, min_lon, max_lat, max_lon
    bounds: np.ndarray
    start: np.ndarray
    stop: np.ndarray

    def __len__(self) -> int:
        return int(self.bounds.shape[0])


def _str_groups(centers: np.ndarray, capacity: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Order ``centers`` into STR tiles and cut them into contiguous groups.

    Returns ``(perm, starts, stops)`` where ``perm`` reorders the rows and each
    ``starts[i]:stops[i]`` range of the reordered rows forms one parent node.
    """
    n = int(centers.shape[0])
    rank = np.arange(n)
    node_count = math.ceil(n / capacity)
    slice_count = math.ceil(math.sqrt(node_count))
    slice_size = slice_count * capacity

    by_lat = np.lexsort((rank, centers[:, 1], centers[:, 0]))
    parts: list[np.ndarray] = []
    starts: list[int] = []
    for s in range(0, n, slice_size):
        part = by_lat[s : s + slice_size]
        parts.append(part[np.lexsort((part, centers[part, 0], centers[part, 1]))])
        starts.extend(range(s, min(s + slice_size, n), capacity))
    perm = np.concatenate(parts)
    start_arr = np.asarray(starts, dtype=np.int64)
    stop_arr = np.append(start_arr[1:], n)
    return perm, start_arr, stop_arr


def _reduce_bounds(mins: np.ndarray, maxs: np.ndarray, starts: np.ndarray) -> np.ndarray:
    return np.column_stack(
        [
            np.minimum.reduceat(mins[:, 0], starts),
            np.minimum.reduceat(mins[:, 1], starts),
            np.maximum.reduceat(maxs[:, 0], starts),
            np.maximum.reduceat(maxs[:, 1], starts),
        ]
    )


def _bulk_load(latlon: np.ndarray, capacity: int) -> tuple[np.ndarray, list[_Level]]:
    if latlon.shape[0] == 0:
        return np.zeros(0, dtype=np.int64), []

    order, starts, stops = _str_groups(latlon, capacity)
    pts = latlon[order]
    levels = [_Level(_reduce_bounds(pts, pts, starts), starts, stops)]

    while len(levels[-1]) > 1:
        child = levels[-1]
        centers = np.column_stack(
            [
                (child.bounds[:, 0] + child.bounds[:, 2]) / 2.0,
                (child.bounds[:, 1] + child.bounds[:, 3]) / 2.0,
            ]
        )
        perm, starts, stops = _str_groups(centers, capacity)
        child = _Level(child.bounds[perm], child.start[perm], child.stop[perm])
        levels[-1] = child
        levels.append(_Level(_reduce_bounds(child.bounds[:, :2], child.bounds[:, 2:], starts), starts, stops))
    return order.astype(np.int64), levels


def _pick(d2: np.ndarray, positions: np.ndarray) -> tuple[float, int]:
    # smallest distance first, lowest build position on exact ties
    i = int(np.lexsort((positions, d2))[0])
    return float(d2[i]), int(positions[i])


class SpatialIndex:
    """Immutable nearest-neighbour index over :class:`PointRecord` values."""

    def __init__(self, records: Iterable[PointRecord], *, node_capacity: int = DEFAULT_NODE_CAPACITY):
        if int(node_capacity) < 2:
            raise ValueError("node_capacity must be at least 2")
        self._records: tuple[PointRecord, ...] = tuple(records)
        self._capacity = int(node_capacity)
        self._latlon = build_latlon_matrix(list(self._records))
        self._order, self._levels = _bulk_load(self._latlon, self._capacity)
        self._latlon.setflags(write=False)
        self._order.setflags(write=False)

        if self._records:
            logger.debug("spatial index built: size=%d height=%d", self.size, self.height)
            logger.debug("first point in index: %r", self._records[0])
        else:
            logger.warning("spatial index is empty")

    @classmethod
    def build(cls, records: Sequence[PointRecord], *, node_capacity: int = DEFAULT_NODE_CAPACITY) -> "SpatialIndex":
        return cls(records, node_capacity=node_capacity)

    @property
    def size(self) -> int:
        return len(self._records)

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[PointRecord]:
        return iter(self._records)

    @property
    def records(self) -> tuple[PointRecord, ...]:
        return self._records

    @property
    def node_capacity(self) -> int:
        return self._capacity

    @property
    def height(self) -> int:
        return len(self._levels)

    @property
    def bounds(self) -> Envelope | None:
        if not self._levels:
            return None
        b = self._levels[-1].bounds[0]
        return Envelope(float(b[0]), float(b[1]), float(b[2]), float(b[3]))

    def _result(self, d2: float, position: int) -> SpatialQueryResult:
        return SpatialQueryResult(record=self._records[position], distance_km=math.sqrt(d2), position=position)

    def nearest(self, lat: float, lon: float) -> SpatialQueryResult | None:
        if not self._levels:
            return None
        lat = float(lat)
        lon = float(lon)

        top = len(self._levels) - 1
        root_bound = self.bounds.distance_2(lat, lon)
        heap: list[tuple[float, int, int]] = [(root_bound, top, 0)]
        best_d2 = math.inf
        best_pos = -1

        while heap:
            bound, level, node = heapq.heappop(heap)
            if bound > best_d2:
                break
            current = self._levels[level]
            start = int(current.start[node])
            stop = int(current.stop[node])

            if level == 0:
                positions = self._order[start:stop]
                d2 = haversine_km_2_many(lat, lon, self._latlon[positions, 0], self._latlon[positions, 1])
                cand_d2, cand_pos = _pick(d2, positions)
                if cand_d2 < best_d2 or (cand_d2 == best_d2 and cand_pos < best_pos):
                    best_d2, best_pos = cand_d2, cand_pos
                continue

            child_bounds = envelope_distance_2_many(lat, lon, self._levels[level - 1].bounds[start:stop])
            for offset, child_bound in enumerate(child_bounds.tolist()):
                # equal bounds are still visited so ties resolve by build position
                if child_bound <= best_d2:
                    heapq.heappush(heap, (child_bound, level - 1, start + offset))

        return self._result(best_d2, best_pos)

    def nearest_linear(self, lat: float, lon: float) -> SpatialQueryResult | None:
        """Exhaustive scan with the scalar metric and the same tie-break as :meth:`nearest`."""
        if not self._records:
            return None
        best_d2 = math.inf
        best_pos = -1
        for position, rec in enumerate(self._records):
            d2 = haversine_km_2(lat, lon, rec.lat, rec.lon)
            if d2 < best_d2:
                best_d2, best_pos = d2, position
        return self._result(best_d2, best_pos)
