from __future__ import annotations

import asyncio
import json
from datetime import datetime
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from loguru import logger
from pydantic import BaseModel, Field

from config import Configuration
from models import Coordinate, DensityLevel, Preferences, Recommendation, Spot
from services.catalog import all_spots
from services.crowd_estimator import CrowdEstimator
from services.recommendation import RecommendationEngine
from services.report import build_report


class OriginPayload(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class PreferencesPayload(BaseModel):
    categories: List[str] = Field(default_factory=list, description="Desired spot categories")
    max_crowd_level: str = Field("medium", description="low | medium | high | very-high")
    max_travel_distance: float = Field(5.0, ge=0, description="Kilometers")
    preferred_visit_time: int = Field(120, ge=0, description="Minutes")


class RecommendRequest(BaseModel):
    origin: Optional[OriginPayload] = Field(None, description="Caller location; defaults to the configured origin")
    preferences: PreferencesPayload = Field(default_factory=PreferencesPayload)
    refresh: bool = Field(False, description="Re-estimate all crowd levels before ranking")
    open_now: bool = Field(False, description="Only include spots open at request time")


class SpotPayload(BaseModel):
    id: str
    name: str
    description: str
    category: str
    lat: float
    lng: float
    crowd_density: str
    current_crowd: Optional[str] = None
    crowd_updated_at: Optional[str] = None
    rating: float
    estimated_visit_time: int
    opening_hours: Dict[str, str]
    image_url: Optional[str] = None
    tags: List[str] = []


class RecommendationPayload(BaseModel):
    spot: SpotPayload
    score: float
    reason: str
    reasons: List[str] = []
    estimated_travel_time: int
    distance_km: float
    crowd_density: str


class RecommendResponse(BaseModel):
    recommendations: List[RecommendationPayload]
    recommendations_markdown: str
    origin: OriginPayload


class CrowdReadingPayload(BaseModel):
    spot_id: str
    density: str
    last_updated: str


class CrowdRefreshResponse(BaseModel):
    levels: Dict[str, str]
    updated_at: str


def get_config(request: Request) -> Configuration:
    return request.app.state.cfg


def get_estimator(request: Request) -> CrowdEstimator:
    return request.app.state.estimator


def get_engine(request: Request) -> RecommendationEngine:
    return request.app.state.engine


def get_spots(request: Request) -> List[Spot]:
    return request.app.state.spots


def _spot_payload(spot: Spot, estimator: CrowdEstimator) -> SpotPayload:
    reading = estimator.get_cached(spot.id)
    return SpotPayload(
        id=spot.id,
        name=spot.name,
        description=spot.description,
        category=spot.category.value,
        lat=spot.location.lat,
        lng=spot.location.lng,
        crowd_density=spot.crowd_density.value,
        current_crowd=reading.density.value if reading else None,
        crowd_updated_at=reading.last_updated.isoformat() if reading else None,
        rating=spot.rating,
        estimated_visit_time=spot.estimated_visit_time,
        opening_hours={"open": spot.opening_hours.open, "close": spot.opening_hours.close},
        image_url=spot.image_url,
        tags=list(spot.tags),
    )


def _recommendation_payload(rec: Recommendation, estimator: CrowdEstimator) -> RecommendationPayload:
    return RecommendationPayload(
        spot=_spot_payload(rec.spot, estimator),
        score=rec.score,
        reason=rec.reason,
        reasons=rec.reasons,
        estimated_travel_time=rec.estimated_travel_time,
        distance_km=round(rec.distance_km, 3),
        crowd_density=rec.crowd_density,
    )


async def crowd_events(
    estimator: CrowdEstimator,
    spots: Sequence[Spot],
    *,
    interval: Optional[float] = None,
    max_events: Optional[int] = None,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """Yield SSE ``data:`` lines for every batch of changed crowd levels.

    Ends after ``max_events`` events or once the client goes away; the
    periodic refresh is cancelled either way.
    """
    queue: asyncio.Queue[Dict[str, DensityLevel]] = asyncio.Queue()
    handle = estimator.start_periodic_updates(spots, queue.put_nowait, interval=interval)
    sent = 0
    try:
        while max_events is None or sent < max_events:
            if is_disconnected is not None and await is_disconnected():
                break
            try:
                updates = await asyncio.wait_for(queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            event = {
                "type": "crowd",
                "updates": {sid: level.value for sid, level in updates.items()},
                "updated_at": datetime.now().isoformat(),
            }
            yield f"data: {json.dumps(event)}\n\n"
            sent += 1
    finally:
        handle.cancel()


def create_app(
    cfg: Optional[Configuration] = None,
    *,
    estimator: Optional[CrowdEstimator] = None,
    engine: Optional[RecommendationEngine] = None,
    spots: Optional[Sequence[Spot]] = None,
) -> FastAPI:
    cfg = cfg or Configuration.from_env()
    app = FastAPI(title="SmartCrowd Tourist Recommender")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.cfg = cfg
    app.state.estimator = estimator or CrowdEstimator(cfg)
    app.state.engine = engine or RecommendationEngine(cfg)
    app.state.spots = list(spots) if spots is not None else all_spots()

    @app.get("/healthz")
    def healthz(cfg: Configuration = Depends(get_config)) -> dict:
        logger.info("cfg: {}", cfg.log_summary())
        return {"status": "ok"}

    @app.get("/spots", response_model=List[SpotPayload])
    def list_spots(
        spots: List[Spot] = Depends(get_spots),
        estimator: CrowdEstimator = Depends(get_estimator),
    ) -> List[SpotPayload]:
        return [_spot_payload(s, estimator) for s in spots]

    @app.post("/crowd/refresh", response_model=CrowdRefreshResponse)
    async def refresh_crowd(
        spots: List[Spot] = Depends(get_spots),
        estimator: CrowdEstimator = Depends(get_estimator),
    ) -> CrowdRefreshResponse:
        levels = await estimator.bulk_estimate(spots)
        logger.info("crowd refresh spots={}", len(levels))
        return CrowdRefreshResponse(
            levels={sid: level.value for sid, level in levels.items()},
            updated_at=datetime.now().isoformat(),
        )

    @app.get("/crowd/stream")
    async def crowd_stream(
        request: Request,
        interval: Optional[float] = None,
        max_events: Optional[int] = None,
        spots: List[Spot] = Depends(get_spots),
        estimator: CrowdEstimator = Depends(get_estimator),
    ):
        """SSE stream of crowd levels that changed since the last refresh."""
        if interval is not None and interval <= 0:
            raise HTTPException(status_code=400, detail="interval must be positive")
        if max_events is not None and max_events <= 0:
            raise HTTPException(status_code=400, detail="max_events must be positive")

        return StreamingResponse(
            crowd_events(
                estimator,
                spots,
                interval=interval,
                max_events=max_events,
                is_disconnected=request.is_disconnected,
            ),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
            },
        )

    @app.get("/crowd/{spot_id}", response_model=CrowdReadingPayload)
    def crowd_reading(spot_id: str, estimator: CrowdEstimator = Depends(get_estimator)) -> CrowdReadingPayload:
        reading = estimator.get_cached(spot_id)
        if reading is None:
            raise HTTPException(status_code=404, detail=f"no crowd reading for spot {spot_id}")
        return CrowdReadingPayload(
            spot_id=spot_id,
            density=reading.density.value,
            last_updated=reading.last_updated.isoformat(),
        )

    @app.post("/recommend", response_model=RecommendResponse)
    async def recommend(
        req: RecommendRequest,
        cfg: Configuration = Depends(get_config),
        spots: List[Spot] = Depends(get_spots),
        estimator: CrowdEstimator = Depends(get_estimator),
        engine: RecommendationEngine = Depends(get_engine),
    ) -> RecommendResponse:
        try:
            prefs = Preferences.create(
                categories=req.preferences.categories,
                max_crowd_level=req.preferences.max_crowd_level,
                max_travel_distance=req.preferences.max_travel_distance,
                preferred_visit_time=req.preferences.preferred_visit_time,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

        origin = (
            Coordinate(lat=req.origin.lat, lng=req.origin.lng)
            if req.origin
            else cfg.default_origin()
        )

        try:
            if req.refresh:
                await estimator.bulk_estimate(spots)
            overrides = estimator.snapshot()
            ranked = engine.recommend(
                origin,
                spots,
                prefs,
                overrides,
                at=datetime.now() if req.open_now else None,
            )
            md = build_report(prefs, ranked, origin)
        except Exception as exc:
            logger.exception("recommendation failed: {}", exc)
            raise HTTPException(status_code=500, detail="internal error")

        return RecommendResponse(
            recommendations=[_recommendation_payload(r, estimator) for r in ranked],
            recommendations_markdown=md,
            origin=OriginPayload(lat=origin.lat, lng=origin.lng),
        )

    return app


load_dotenv()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=app.state.cfg.host, port=app.state.cfg.port, reload=True)
