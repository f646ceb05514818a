from typing import Optional

from fastapi import APIRouter, Depends, Query
import redis.asyncio as redis

from config import SQL_INT_MAX
from errors import InvalidInputError
from dependencies import get_clock, get_redis_client, get_repository, verify_admin_access
from helpers.challenge_view import challenge_out
from helpers.periods import parse_utc_date
from helpers.rotation import ChallengeRotation
from repository import RankingRepository
from routes.daily import invalidate_challenge_cache
from schemas.daily import ChallengeListResponse, DailyChallengeOut, ScheduleChallengeRequest

router = APIRouter(
    prefix="/admin/daily-challenges",
    dependencies=[Depends(verify_admin_access)],
    tags=["Admin"],
)


@router.get("/", response_model=ChallengeListResponse)
def list_daily_challenges(
    page: int = 1,
    limit: int = 30,
    upcoming: bool = False,
    repo: RankingRepository = Depends(get_repository),
    clock = Depends(get_clock),
):
    """List scheduled challenges (past and future) and the published problems to pick from."""
    today = clock().date()
    return ChallengeRotation(repo).list_scheduled(page, limit, upcoming=upcoming, today=today)


@router.post("/", response_model=DailyChallengeOut)
async def schedule_daily_challenge(
    request: ScheduleChallengeRequest,
    repo: RankingRepository = Depends(get_repository),
    redis_conn: Optional[redis.Redis] = Depends(get_redis_client),
):
    """Schedule a problem for a date, replacing whatever was there."""
    if not request.date.strip():
        raise InvalidInputError("Date and problem_id are required")
    day = parse_utc_date(request.date)
    challenge = ChallengeRotation(repo).schedule(day, request.problem_id, request.xp_bonus)
    await invalidate_challenge_cache(redis_conn, day)
    return challenge_out(challenge, repo.find_problem(challenge.problem_id))


@router.delete("/")
async def delete_daily_challenge(
    id: Optional[int] = Query(None, ge=1, le=SQL_INT_MAX),
    date: Optional[str] = None,
    repo: RankingRepository = Depends(get_repository),
    redis_conn: Optional[redis.Redis] = Depends(get_redis_client),
):
    """Delete a challenge by id or date; auto-generation takes over for that day."""
    day = parse_utc_date(date) if date else None
    deleted_date = ChallengeRotation(repo).delete(challenge_id=id, day=day)
    await invalidate_challenge_cache(redis_conn, deleted_date)
    return {
        "success": True,
        "date": deleted_date.isoformat(),
        "message": "Daily challenge deleted. Auto-generation will take over.",
    }
