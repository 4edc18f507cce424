"""API routes for the gamification engine"""
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from tutorhub.api.auth import verify_api_key
from tutorhub.api.middleware import READ_LIMIT, WRITE_LIMIT, limiter
from tutorhub.api.models import (
    StreakRequest, XPAwardRequest,
    StudentGamificationResponse, LeaderboardEntry, LeaderboardResponse,
    XPHistoryResponse, BadgesResponse, LevelsResponse, BadgeCatalogResponse,
    HealthCheckResponse
)
from tutorhub.db.postgres_store import PostgresGamificationStore
from tutorhub.gamification.achievement_system import BADGES
from tutorhub.gamification.xp_system import LEVELS, calculate_level
from tutorhub.models.gamification import StreakResult, StudentGamification, XPAwardResult
from tutorhub.monitoring.prometheus_metrics import metrics
from tutorhub.monitoring.sentry_config import set_student_context
from tutorhub.services.gamification_service import GamificationService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_service(request: Request) -> GamificationService:
    """Resolve the service from the application's container"""
    return request.app.state.container.gamification_service


def _to_response(record: StudentGamification) -> StudentGamificationResponse:
    info = calculate_level(record.xp)
    return StudentGamificationResponse(
        **record.model_dump(exclude={"level", "created_at", "updated_at"}),
        level=info.level,
        title=info.title,
        next_level_xp=info.next_level_xp,
        progress=info.progress,
    )


@router.get("/api/health", response_model=HealthCheckResponse)
async def health_check(request: Request):
    """Health check endpoint (no authentication required)"""
    store = request.app.state.container.store
    store_status = "connected"
    if isinstance(store, PostgresGamificationStore) and not await store.database.check_connection():
        store_status = "disconnected"

    return HealthCheckResponse(
        status="healthy" if store_status == "connected" else "degraded",
        store=store_status,
        timestamp=datetime.now(timezone.utc)
    )


@router.get("/metrics")
async def metrics_endpoint():
    """Prometheus metrics endpoint (404 when ENABLE_PROMETHEUS is off)"""
    if not metrics.enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Metrics disabled")
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/api/v1/levels", response_model=LevelsResponse)
@limiter.limit(READ_LIMIT)
async def list_levels(
    request: Request,
    api_key: str = Depends(verify_api_key)
):
    """Level table, lowest first"""
    return LevelsResponse(levels=LEVELS)


@router.get("/api/v1/badges", response_model=BadgeCatalogResponse)
@limiter.limit(READ_LIMIT)
async def list_badges(
    request: Request,
    api_key: str = Depends(verify_api_key)
):
    """Badge catalog"""
    return BadgeCatalogResponse(badges=BADGES)


@router.get("/api/v1/students/{student_id}/gamification", response_model=StudentGamificationResponse)
@limiter.limit(READ_LIMIT)
async def get_student_gamification(
    request: Request,
    student_id: str,
    api_key: str = Depends(verify_api_key),
    service: GamificationService = Depends(get_service)
):
    """Get a student's XP, level, streak and badges"""
    record = await service.get_student_gamification(student_id)
    return _to_response(record)


@router.post("/api/v1/students/{student_id}/streak", response_model=StreakResult)
@limiter.limit(WRITE_LIMIT)
async def update_streak(
    request: Request,
    student_id: str,
    payload: StreakRequest,
    api_key: str = Depends(verify_api_key),
    service: GamificationService = Depends(get_service)
):
    """
    Credit a daily login

    Repeat calls on the same day return xp_awarded=0 and change nothing.
    """
    set_student_context(student_id)
    return await service.update_streak(student_id, today=payload.today)


@router.post("/api/v1/students/{student_id}/xp", response_model=XPAwardResult)
@limiter.limit(WRITE_LIMIT)
async def award_xp(
    request: Request,
    student_id: str,
    payload: XPAwardRequest,
    api_key: str = Depends(verify_api_key),
    service: GamificationService = Depends(get_service)
):
    """Award XP for a completed activity"""
    set_student_context(student_id)
    return await service.award_xp(
        student_id,
        payload.reason,
        amount=payload.amount,
        description=payload.description,
        stat_increment=payload.stat_increment
    )


@router.get("/api/v1/students/{student_id}/xp/history", response_model=XPHistoryResponse)
@limiter.limit(READ_LIMIT)
async def get_xp_history(
    request: Request,
    student_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    api_key: str = Depends(verify_api_key),
    service: GamificationService = Depends(get_service)
):
    """Newest-first XP transactions"""
    transactions = await service.get_xp_history(student_id, limit=limit)
    return XPHistoryResponse(student_id=student_id, transactions=transactions)


@router.get("/api/v1/students/{student_id}/badges", response_model=BadgesResponse)
@limiter.limit(READ_LIMIT)
async def get_student_badges(
    request: Request,
    student_id: str,
    include_locked: bool = False,
    api_key: str = Depends(verify_api_key),
    service: GamificationService = Depends(get_service)
):
    """Unlocked badges, plus progress toward locked ones if requested"""
    badges = await service.get_badges(student_id, include_locked=include_locked)
    return BadgesResponse(student_id=student_id, **badges)


@router.get("/api/v1/leaderboard", response_model=LeaderboardResponse)
@limiter.limit(READ_LIMIT)
async def get_leaderboard(
    request: Request,
    limit: int = 10,
    api_key: str = Depends(verify_api_key),
    service: GamificationService = Depends(get_service)
):
    """Top students by XP"""
    records = await service.get_leaderboard(limit=limit)
    entries = []
    for rank, record in enumerate(records, start=1):
        info = calculate_level(record.xp)
        entries.append(LeaderboardEntry(
            rank=rank,
            student_id=record.student_id,
            xp=record.xp,
            level=info.level,
            title=info.title,
            streak=record.streak,
            last_active_date=record.last_active_date
        ))
    return LeaderboardResponse(entries=entries)
