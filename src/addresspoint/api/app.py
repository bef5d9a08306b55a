from __future__ import annotations

import logging

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from addresspoint.config import load_config
from addresspoint.log import configure_logging
from addresspoint.service import build_lookup
from addresspoint.spatial.lookup import AddressLookup

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = {"citycode": "", "address": "Not Found"}


def create_app(*, lookup: AddressLookup) -> FastAPI:
    app = FastAPI(title="addresspoint API", version="0.1.0")

    @app.get("/healthcheck")
    def healthcheck():
        return {"citycode": "", "address": "OK"}

    @app.get("/search")
    def search(lat: float = Query(...), lon: float = Query(...)):
        match = lookup.lookup(lat, lon)
        if match is None:
            return JSONResponse(status_code=404, content=dict(NOT_FOUND_BODY))
        logger.info("search lat=%s lon=%s -> %s %s", lat, lon, match.citycode, match.address)
        return match.to_dict()

    return app


def create_app_from_env() -> FastAPI:
    """App factory for ``uvicorn --factory addresspoint.api.app:create_app_from_env``."""
    config = load_config()
    configure_logging(config["logging"]["level"], json_lines=bool(config["logging"]["json"]))
    return create_app(lookup=build_lookup(config))
