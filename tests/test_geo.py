from __future__ import annotations

import math

import numpy as np
import pytest

from addresspoint.util.geo import (
    EARTH_RADIUS_KM,
    Envelope,
    envelope_distance_2_many,
    haversine_km,
    haversine_km_2,
    haversine_km_2_many,
)


def test_haversine_one_degree_of_latitude():
    assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(EARTH_RADIUS_KM * math.pi / 180.0, rel=1e-12)


def test_haversine_tokyo_osaka():
    d = haversine_km(35.6812, 139.7671, 34.7025, 135.4959)
    assert d == pytest.approx(403.5, abs=1.5)
    assert haversine_km(34.7025, 135.4959, 35.6812, 139.7671) == pytest.approx(d, rel=1e-12)


def test_haversine_zero_and_squared():
    assert haversine_km(35.0, 139.0, 35.0, 139.0) == 0.0
    d = haversine_km(35.0, 139.0, 36.0, 140.0)
    assert haversine_km_2(35.0, 139.0, 36.0, 140.0) == pytest.approx(d * d, rel=1e-12)


def test_haversine_out_of_range_inputs_are_defined():
    d = haversine_km(120.0, 400.0, -95.0, -200.0)
    assert math.isfinite(d)
    assert d >= 0.0


def test_vectorised_metric_matches_scalar():
    rng = np.random.default_rng(7)
    lats = rng.uniform(-80, 80, size=200)
    lons = rng.uniform(-180, 180, size=200)
    got = haversine_km_2_many(12.5, -45.0, lats, lons)
    expected = [haversine_km_2(12.5, -45.0, la, lo) for la, lo in zip(lats, lons)]
    assert got == pytest.approx(expected, rel=1e-9)


def test_envelope_distance_inside_and_along_meridian():
    env = Envelope(35.0, 139.0, 36.0, 140.0)
    assert env.distance_2(35.5, 139.5) == 0.0
    assert env.distance_2(35.0, 139.0) == 0.0
    # due north, inside the longitude band
    assert math.sqrt(env.distance_2(37.0, 139.5)) == pytest.approx(haversine_km(37.0, 139.5, 36.0, 139.5), rel=1e-8)


def test_envelope_distance_uses_cross_track_to_edge_meridian():
    # the closest point on the 145E edge lies poleward of the query latitude
    env = Envelope(39.0, 145.0, 40.5, 145.5)
    d = math.sqrt(env.distance_2(40.0, 139.0))
    lat_r = math.radians(40.0)
    cross = EARTH_RADIUS_KM * math.asin(math.cos(lat_r) * math.sin(math.radians(6.0)))
    assert d == pytest.approx(cross, rel=1e-8)
    assert d < haversine_km(40.0, 139.0, 40.0, 145.0)
    assert d <= haversine_km(40.0, 139.0, 40.155, 145.0)


def test_envelope_distance_across_antimeridian():
    env = Envelope(-18.0, 170.0, -16.0, 179.0)
    d = math.sqrt(env.distance_2(-17.0, -179.0))
    assert d == pytest.approx(
        EARTH_RADIUS_KM * math.asin(math.cos(math.radians(-17.0)) * math.sin(math.radians(2.0))), rel=1e-8
    )
    assert d < 250.0


def test_envelope_distance_never_exceeds_points_inside():
    rng = np.random.default_rng(21)
    for _ in range(200):
        lat_a, lat_b = np.sort(rng.uniform(-80.0, 80.0, size=2))
        lon_a, lon_b = np.sort(rng.uniform(-180.0, 180.0, size=2))
        bounds = np.array([[lat_a, lon_a, lat_b, lon_b]])
        qlat = float(rng.uniform(-89.0, 89.0))
        qlon = float(rng.uniform(-180.0, 180.0))
        bound = float(envelope_distance_2_many(qlat, qlon, bounds)[0])

        inner_lat = rng.uniform(lat_a, lat_b, size=400)
        inner_lon = rng.uniform(lon_a, lon_b, size=400)
        edge_lat = np.concatenate([inner_lat, inner_lat, np.full(400, lat_a), np.full(400, lat_b)])
        edge_lon = np.concatenate([np.full(400, lon_a), np.full(400, lon_b), inner_lon, inner_lon])
        sample = haversine_km_2_many(qlat, qlon, np.concatenate([inner_lat, edge_lat]), np.concatenate([inner_lon, edge_lon]))
        assert bound <= sample.min()


def test_envelope_distance_vectorised_rows():
    bounds = np.array([[35.0, 139.0, 36.0, 140.0], [0.0, 0.0, 1.0, 1.0]])
    got = envelope_distance_2_many(35.5, 139.5, bounds)
    assert got.shape == (2,)
    assert got[0] == 0.0
    assert got[1] == pytest.approx(Envelope(0.0, 0.0, 1.0, 1.0).distance_2(35.5, 139.5))
