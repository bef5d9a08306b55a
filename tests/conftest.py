from __future__ import annotations

import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_addresspoint_logger(monkeypatch):
    monkeypatch.delenv("SHAPEFILE_PATH", raising=False)
    monkeypatch.delenv("ADDRESSPOINT_CONFIG", raising=False)
    yield
    logger = logging.getLogger("addresspoint")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
