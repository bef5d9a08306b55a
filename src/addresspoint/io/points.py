from __future__ import annotations

import logging
import math
import numbers
from pathlib import Path
from typing import Any, Iterable

import geopandas as gpd
import pandas as pd

from addresspoint.errors import DatasetError
from addresspoint.util.geo import PointRecord

logger = logging.getLogger(__name__)


def resolve_dataset_path(path: str | Path) -> Path:
    path = Path(path)
    if not path.suffix:
        path = path.with_suffix(".shp")
    return path


def _text(value: Any, *, row_no: int, field: str) -> str | None:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        if math.isnan(value):
            return None
        # codes stored as numbers come back as floats once a null is present
        if float(value).is_integer():
            return str(int(value))
    if value is pd.NA or value is pd.NaT:
        return None
    logger.warning("row %d: %s has unsupported value %r; using empty string", row_no, field, value)
    return ""


def _column(frame: pd.DataFrame, name: str, *, path: Path) -> tuple[list[Any], bool]:
    if name not in frame.columns:
        logger.warning("attribute %r missing from %s; using empty strings", name, path, extra={"path": str(path)})
        return [None] * len(frame), False
    return frame[name].tolist(), True


def _build_records(
    rows: Iterable[tuple[int, float, float, Any, Any]],
    *,
    citycode_field: str,
    address_field: str,
    warn_citycode: bool = True,
    warn_address: bool = True,
) -> list[PointRecord]:
    records: list[PointRecord] = []
    for row_no, lat, lon, citycode_raw, address_raw in rows:
        if not (math.isfinite(lat) and math.isfinite(lon)):
            logger.warning("row %d: non-finite coordinates (%s, %s); skipped", row_no, lat, lon)
            continue
        citycode = _text(citycode_raw, row_no=row_no, field=citycode_field)
        address = _text(address_raw, row_no=row_no, field=address_field)
        if citycode is None and warn_citycode:
            logger.warning("row %d: %s is missing; using empty string", row_no, citycode_field)
        if address is None and warn_address:
            logger.warning("row %d: %s is missing; using empty string", row_no, address_field)
        records.append(PointRecord(lat=lat, lon=lon, citycode=citycode or "", address=address or ""))
    return records


def _read_csv(path: Path, *, citycode_field: str, address_field: str) -> list[PointRecord]:
    try:
        df = pd.read_csv(path, dtype={citycode_field: str, address_field: str}, encoding="utf-8")
    except (OSError, ValueError, UnicodeDecodeError) as exc:
        raise DatasetError(f"cannot read {path}: {exc}") from exc
    missing = [c for c in ("lat", "lon") if c not in df.columns]
    if missing:
        raise DatasetError(f"{path}: missing coordinate columns {missing}")
    lats = pd.to_numeric(df["lat"], errors="coerce").astype(float).tolist()
    lons = pd.to_numeric(df["lon"], errors="coerce").astype(float).tolist()
    citycodes, has_citycode = _column(df, citycode_field, path=path)
    addresses, has_address = _column(df, address_field, path=path)
    rows = zip(range(len(df)), lats, lons, citycodes, addresses)
    return _build_records(
        rows,
        citycode_field=citycode_field,
        address_field=address_field,
        warn_citycode=has_citycode,
        warn_address=has_address,
    )


def _read_vector(path: Path, *, citycode_field: str, address_field: str) -> list[PointRecord]:
    try:
        gdf = gpd.read_file(path)
    except Exception as exc:
        raise DatasetError(f"cannot read {path}: {exc}") from exc

    citycodes, has_citycode = _column(gdf, citycode_field, path=path)
    addresses, has_address = _column(gdf, address_field, path=path)

    rows: list[tuple[int, float, float, Any, Any]] = []
    skipped = 0
    for row_no, geom in enumerate(gdf.geometry):
        if geom is None or geom.is_empty or geom.geom_type != "Point":
            kind = "null" if geom is None else geom.geom_type
            logger.info("row %d: unsupported shape type %s; skipped", row_no, kind)
            skipped += 1
            continue
        rows.append((row_no, float(geom.y), float(geom.x), citycodes[row_no], addresses[row_no]))

    if skipped:
        logger.info("skipped %d non-point shapes in %s", skipped, path, extra={"path": str(path)})
    return _build_records(
        rows,
        citycode_field=citycode_field,
        address_field=address_field,
        warn_citycode=has_citycode,
        warn_address=has_address,
    )


def read_address_points(
    path: str | Path,
    *,
    citycode_field: str = "city_code",
    address_field: str = "jusho1",
) -> list[PointRecord]:
    """Load point records from a vector dataset (shapefile, GeoJSON, ...) or a lat/lon CSV.

    Attribute values that are null come back as ``""``. Geometries other than
    points are dropped. Failing to open the dataset at all raises
    :class:`DatasetError`.
    """
    path = resolve_dataset_path(path)
    if not path.exists():
        raise DatasetError(f"dataset not found: {path}")

    if path.suffix.lower() == ".csv":
        records = _read_csv(path, citycode_field=citycode_field, address_field=address_field)
    else:
        records = _read_vector(path, citycode_field=citycode_field, address_field=address_field)

    logger.debug(
        "number of points loaded from %s: %d",
        path,
        len(records),
        extra={"path": str(path), "rows_out": len(records)},
    )
    return records
