"""
FastAPI server — user metrics, score breakdown, and leaderboard.

GET /api/user/{address} refreshes stale or missing records before answering;
breakdown and leaderboard are reads over the store. Domain errors map to
400/404/503 JSON responses.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from backend_megarank.aggregation import ActivityService
from backend_megarank.api_server.schemas import (
    BreakdownResponse,
    HealthResponse,
    LeaderboardEntryModel,
    LeaderboardResponse,
    UserResponse,
)
from backend_megarank.config import Settings, get_settings
from backend_megarank.core import MegaRankError, normalize_address
from backend_megarank.megarank_logging import get_logger

logger = get_logger(__name__)


def get_service(request: Request) -> ActivityService:
    """Dependency: the app-scoped ActivityService."""
    return request.app.state.service


def create_app(service: ActivityService | None = None, settings: Settings | None = None) -> FastAPI:
    """
    Build the API. With no service, one is wired from settings at startup
    and its HTTP clients are closed on shutdown.
    """
    cfg = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = service is None
        svc = service or ActivityService.from_settings(cfg)
        svc.store.init_db()
        app.state.service = svc
        logger.info("api_started", database=svc.store.database_url.split("//")[-1])
        try:
            yield
        finally:
            if owned:
                await svc.aclose()
                svc.store.dispose()
            logger.info("api_stopped")

    app = FastAPI(title="MegaRank API", version="0.1.0", lifespan=lifespan)

    @app.exception_handler(MegaRankError)
    async def megarank_error_handler(request: Request, exc: MegaRankError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("api_request_failed", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("api_unhandled_error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/api/user/{address}", response_model=UserResponse)
    async def get_user(address: str, svc: ActivityService = Depends(get_service)) -> UserResponse:
        view = await svc.get_user_metrics(address)
        return UserResponse.from_view(view)

    @app.get("/api/user/{address}/breakdown", response_model=BreakdownResponse)
    async def get_breakdown(address: str, svc: ActivityService = Depends(get_service)) -> BreakdownResponse:
        addr = normalize_address(address)
        breakdown = await svc.get_user_score_breakdown(addr)
        return BreakdownResponse.from_domain(addr, breakdown)

    @app.get("/api/leaderboard", response_model=LeaderboardResponse)
    async def get_leaderboard(
        limit: int = Query(cfg.api.leaderboard_default_limit, ge=1),
        offset: int = Query(0, ge=0),
        search: str | None = Query(None, description="Address to locate on the leaderboard"),
        enhanced: bool = Query(False, description="Include identity/NFT enhanced scores"),
        svc: ActivityService = Depends(get_service),
    ) -> LeaderboardResponse:
        limit = min(limit, cfg.api.leaderboard_max_limit)
        if search and search.strip():
            entry, total = await svc.find_leaderboard_entry(search)
            return LeaderboardResponse(
                entries=[LeaderboardEntryModel.from_domain(entry)],
                total_count=total,
                limit=1,
                offset=max(0, (entry.rank or 1) - 1),
            )
        page = await svc.get_leaderboard_page(limit, offset, include_enhanced=enhanced)
        return LeaderboardResponse(
            entries=[LeaderboardEntryModel.from_domain(e) for e in page.entries],
            total_count=page.total_count,
            limit=page.limit,
            offset=page.offset,
        )

    return app
