from __future__ import annotations

from fastapi.testclient import TestClient

from addresspoint.api.app import create_app, create_app_from_env
from addresspoint.api.smoke_test import run_smoke_test
from addresspoint.spatial.lookup import AddressLookup
from addresspoint.util.geo import PointRecord


def _lookup() -> AddressLookup:
    return AddressLookup.from_records(
        [
            PointRecord(lat=35.0, lon=139.0, citycode="13101", address="Chiyoda"),
            PointRecord(lat=36.0, lon=140.0, citycode="08201", address="Mito"),
        ]
    )


def test_api_health_and_search():
    client = TestClient(create_app(lookup=_lookup()))

    r = client.get("/healthcheck")
    assert r.status_code == 200
    assert r.json() == {"citycode": "", "address": "OK"}

    r = client.get("/search", params={"lat": 35.0001, "lon": 139.0001})
    assert r.status_code == 200
    assert r.json() == {"citycode": "13101", "address": "Chiyoda"}

    r = client.get("/search", params={"lat": 35.9, "lon": 139.9})
    assert r.json() == {"citycode": "08201", "address": "Mito"}


def test_api_empty_index_is_404():
    client = TestClient(create_app(lookup=AddressLookup.from_records([])))
    assert client.get("/healthcheck").status_code == 200
    r = client.get("/search", params={"lat": 0.0, "lon": 0.0})
    assert r.status_code == 404
    assert r.json() == {"citycode": "", "address": "Not Found"}


def test_api_rejects_bad_parameters():
    client = TestClient(create_app(lookup=_lookup()))
    assert client.get("/search", params={"lat": 35.0}).status_code == 422
    assert client.get("/search", params={"lat": "north", "lon": 139.0}).status_code == 422


def test_smoke_test_report():
    report = run_smoke_test(lookup=_lookup())
    assert report["ok"] is True
    assert report["size"] == 2
    assert [item["status_code"] for item in report["requests"]] == [200, 200, 200]

    empty = run_smoke_test(lookup=AddressLookup.from_records([]))
    assert empty["ok"] is True
    assert [item["status_code"] for item in empty["requests"]] == [200, 404]


def test_app_factory_reads_environment(tmp_path, monkeypatch):
    path = tmp_path / "points.csv"
    path.write_text("lat,lon,city_code,jusho1\n35.0,139.0,13101,Chiyoda\n", encoding="utf-8")
    monkeypatch.setenv("SHAPEFILE_PATH", str(path))
    client = TestClient(create_app_from_env())
    r = client.get("/search", params={"lat": 35.0001, "lon": 139.0001})
    assert r.status_code == 200
    assert r.json() == {"citycode": "13101", "address": "Chiyoda"}
