from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

from addresspoint.config import require_dataset_path
from addresspoint.io.points import read_address_points
from addresspoint.spatial.index import SpatialIndex
from addresspoint.spatial.lookup import AddressLookup

logger = logging.getLogger(__name__)


def build_lookup(config: dict[str, Any], *, dataset_path: str | Path | None = None) -> AddressLookup:
    """Load the dataset named in ``config`` and bulk-build the index.

    Raises :class:`~addresspoint.errors.AddressPointError` when the dataset
    cannot be located or read; callers must not start serving in that case.
    """
    dataset = config["dataset"]
    path = Path(dataset_path) if dataset_path else require_dataset_path(config)

    t0 = time.perf_counter()
    records = read_address_points(
        path,
        citycode_field=dataset["citycode_field"],
        address_field=dataset["address_field"],
    )
    index = SpatialIndex.build(records, node_capacity=config["index"]["node_capacity"])
    logger.info(
        "index ready: %d points in %.2fs",
        index.size,
        time.perf_counter() - t0,
        extra={"event": "index_built", "path": str(path), "rows_out": index.size},
    )
    return AddressLookup(index)
