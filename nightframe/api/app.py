"""HTTP adapter exposing ``GET /recommend``."""

import datetime
import logging
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from nightframe import __version__
from nightframe.config import Config, load_config
from nightframe.errors import ComputationError, FieldIssue, ValidationError
from nightframe.recommender import (
    EquipmentProfile,
    MountCapability,
    ObserverContext,
    RecommendationRequest,
    Recommender,
)
from nightframe.recommender.formatters import result_to_dict

logger = logging.getLogger(__name__)

CACHE_CONTROL = "s-maxage=300, stale-while-revalidate=60"


def _issues_payload(issues: list[FieldIssue]) -> list[dict]:
    return [{"field": i.field, "message": i.message} for i in issues]


def _issues_from_request_error(exc: RequestValidationError) -> list[FieldIssue]:
    issues = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("query", "body")]
        issues.append(FieldIssue(field=".".join(loc) or "request", message=err.get("msg", "invalid value")))
    return issues


def create_app(config: Config | None = None, recommender: Recommender | None = None) -> FastAPI:
    config = config or load_config()
    app = FastAPI(
        title="Nightframe",
        description="Deep-sky astrophotography target recommendations",
        version=__version__,
    )
    app.state.recommender = recommender or Recommender(config)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request: Request, exc: RequestValidationError):
        issues = _issues_from_request_error(exc)
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid query parameters", "issues": _issues_payload(issues)},
        )

    @app.exception_handler(ValidationError)
    async def _validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid query parameters", "issues": _issues_payload(exc.issues)},
        )

    @app.exception_handler(ComputationError)
    async def _computation_handler(request: Request, exc: ComputationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def _internal_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error serving %s", request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal error"})

    @app.get("/health")
    def health():
        return {"ok": True, "version": __version__}

    @app.get("/recommend")
    def recommend(
        lat: float = Query(..., ge=-90, le=90),
        lon: float = Query(..., ge=-180, le=180),
        sensor_w: float = Query(..., alias="sensorW", gt=0),
        sensor_h: float = Query(..., alias="sensorH", gt=0),
        focal_mm: float = Query(..., alias="focalMm", gt=0),
        f_num: float = Query(..., alias="fNum", gt=0),
        pixel_um: Optional[float] = Query(None, alias="pixelUm", gt=0),
        mount: MountCapability = Query(MountCapability.TRACKER),
        date: Optional[datetime.datetime] = Query(None),
        min_alt: float = Query(10.0, alias="minAlt", ge=0, le=89),
        max_mag: float = Query(12.0, alias="maxMag", ge=-10, le=20),
        limit: int = Query(200, ge=1, le=1000),
        openngc_max: int = Query(3000, alias="openNgcMax", ge=100, le=10000),
    ):
        when = date or datetime.datetime.now(datetime.timezone.utc)
        request = RecommendationRequest(
            observer=ObserverContext(latitude_deg=lat, longitude_deg=lon, when_utc=when),
            equipment=EquipmentProfile(
                sensor_width_mm=sensor_w,
                sensor_height_mm=sensor_h,
                focal_mm=focal_mm,
                f_number=f_num,
                pixel_um=pixel_um,
            ),
            mount=mount,
            min_alt_deg=min_alt,
            max_mag=max_mag,
            limit=limit,
            openngc_max=openngc_max,
        )
        result = app.state.recommender.recommend(request)
        return JSONResponse(content=result_to_dict(result), headers={"Cache-Control": CACHE_CONTROL})

    return app
