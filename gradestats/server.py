"""FastAPI application wiring for the statistics service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import ORJSONResponse

from . import schemas
from .data_source import ScoreRecordStore, ScoreSource
from .engine import StatsEngine
from .errors import ComputationError, DataSourceError, NotFound
from .settings import StatsSettings

logger = logging.getLogger(__name__)

DEFAULT_RECORDS_PATH = Path("data/grades.jsonl")
SERVER_ERROR_MESSAGE = "An error occurred while processing the request"


def _server_error(exc: Exception) -> HTTPException:
    return HTTPException(
        status_code=500,
        detail={"error": SERVER_ERROR_MESSAGE, "details": str(exc)},
    )


def create_app(
    records_path: Path | str | None = None,
    settings: Optional[StatsSettings] = None,
    source: Optional[ScoreSource] = None,
) -> FastAPI:
    settings = settings or StatsSettings()
    if source is None:
        path = records_path or settings.records_path or DEFAULT_RECORDS_PATH
        source = ScoreRecordStore(path)

    app = FastAPI(default_response_class=ORJSONResponse)
    engine = StatsEngine(source, settings)
    app.state.engine = engine

    @app.get("/stats", response_model=schemas.StatsResult)
    async def api_global_stats() -> schemas.StatsResult:
        try:
            return await engine.compute_global_stats()
        except (DataSourceError, ComputationError) as exc:
            logger.exception("Error in /stats route")
            raise _server_error(exc) from exc

    @app.get("/stats/{class_id}", response_model=schemas.StatsResult)
    async def api_class_stats(class_id: int) -> schemas.StatsResult:
        try:
            return await engine.compute_class_stats(class_id)
        except NotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except (DataSourceError, ComputationError) as exc:
            logger.exception("Error in /stats/%s route", class_id)
            raise _server_error(exc) from exc

    return app


__all__ = ["create_app"]
