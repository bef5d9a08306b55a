from __future__ import annotations

from dataclasses import dataclass
from math import asin, cos, radians, sin, sqrt

import numpy as np

EARTH_RADIUS_KM = 6371.0

# relative shrink applied to rectangle bounds
BOUND_SLACK = 1e-9


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    lat1r = radians(lat1)
    lon1r = radians(lon1)
    lat2r = radians(lat2)
    lon2r = radians(lon2)
    dlat = lat2r - lat1r
    dlon = lon2r - lon1r
    a = sin(dlat / 2) ** 2 + cos(lat1r) * cos(lat2r) * sin(dlon / 2) ** 2
    a = min(max(a, 0.0), 1.0)
    c = 2 * asin(sqrt(a))
    return EARTH_RADIUS_KM * c


def haversine_km_2(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Squared haversine distance (km²); the comparison value used by the index."""
    d = haversine_km(lat1, lon1, lat2, lon2)
    return d * d


def haversine_km_2_many(lat: float, lon: float, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """Vectorised :func:`haversine_km_2` from one query point to many stored points."""
    lat_r = np.radians(float(lat))
    lon_r = np.radians(float(lon))
    lats_r = np.radians(np.asarray(lats, dtype=np.float64))
    lons_r = np.radians(np.asarray(lons, dtype=np.float64))
    dlat = lats_r - lat_r
    dlon = lons_r - lon_r
    a = np.sin(dlat / 2.0) ** 2 + np.cos(lat_r) * np.cos(lats_r) * np.sin(dlon / 2.0) ** 2
    c = 2.0 * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))
    d = EARTH_RADIUS_KM * c
    return d * d


def _wrap_lon(dlon: np.ndarray) -> np.ndarray:
    return (dlon + 180.0) % 360.0 - 180.0


def envelope_distance_2_many(lat: float, lon: float, bounds: np.ndarray) -> np.ndarray:
    """Squared great-circle distance (km²) from one point to each rectangle.

    ``bounds`` rows are ``(min_lat, min_lon, max_lat, max_lon)`` in degrees and
    the result is 0 for rectangles containing the point. Inside the longitude
    band the nearest point lies on the query's own meridian. Outside it lies on
    the nearer edge meridian: at the cross-track foot when that falls between
    the rectangle's latitudes, otherwise at a corner. The value is shrunk by a
    relative ``BOUND_SLACK`` so rounding never lifts it above a stored point's
    distance.
    """
    bounds = np.asarray(bounds, dtype=np.float64).reshape(-1, 4)
    min_lat, min_lon, max_lat, max_lon = bounds[:, 0], bounds[:, 1], bounds[:, 2], bounds[:, 3]
    lat = float(lat)
    lon = float(lon)
    lat_r = np.radians(lat)

    in_band = (min_lon <= lon) & (lon <= max_lon)
    d_band = EARTH_RADIUS_KM * np.radians(np.abs(lat - np.clip(lat, min_lat, max_lat)))

    gap_lo = _wrap_lon(lon - min_lon)
    gap_hi = _wrap_lon(lon - max_lon)
    use_lo = np.abs(gap_lo) <= np.abs(gap_hi)
    edge_lon = np.where(use_lo, min_lon, max_lon)
    dlon = np.radians(np.where(use_lo, gap_lo, gap_hi))

    foot_lat = np.degrees(np.arctan2(np.sin(lat_r), np.cos(lat_r) * np.cos(dlon)))
    on_edge = (min_lat <= foot_lat) & (foot_lat <= max_lat)
    cross = EARTH_RADIUS_KM * np.arcsin(np.clip(np.cos(lat_r) * np.abs(np.sin(dlon)), 0.0, 1.0))
    corner_2 = np.minimum(
        haversine_km_2_many(lat, lon, min_lat, edge_lon),
        haversine_km_2_many(lat, lon, max_lat, edge_lon),
    )
    d_out = np.where(on_edge, cross, np.sqrt(corner_2))

    d = np.where(in_band, d_band, d_out) * (1.0 - BOUND_SLACK)
    return d * d


@dataclass(frozen=True)
class Envelope:
    """Axis-aligned rectangle in raw (lat, lon) degree space."""

    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    def distance_2(self, lat: float, lon: float) -> float:
        row = np.array([[self.min_lat, self.min_lon, self.max_lat, self.max_lon]], dtype=np.float64)
        return float(envelope_distance_2_many(lat, lon, row)[0])


@dataclass(frozen=True)
class PointRecord:
    lat: float
    lon: float
    citycode: str = ""
    address: str = ""


def build_latlon_matrix(records: list[PointRecord]) -> np.ndarray:
    rows = [(r.lat, r.lon) for r in records]
    return np.asarray(rows, dtype=np.float64) if rows else np.zeros((0, 2), dtype=np.float64)
