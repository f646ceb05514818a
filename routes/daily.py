from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
import redis.asyncio as redis
from redis.exceptions import RedisError

from config import SQL_INT_MAX
from dependencies import get_clock, get_redis_client, get_repository
from helpers.challenge_view import build_challenge_view, challenge_out
from helpers.periods import next_utc_midnight, parse_utc_date
from helpers.rotation import ChallengeRotation
from logger import get_logger
from repository import RankingRepository
from schemas.daily import ChallengeView, DailyChallengeOut

logger = get_logger(__name__)

router = APIRouter(tags=["Daily Challenge"])


def challenge_cache_key(day) -> str:
    return f"daily_challenge:{day.isoformat()}"


# The cache is best effort: Redis errors are logged and the database answers.

async def read_cached_challenge(redis_conn: Optional[redis.Redis], day) -> Optional[DailyChallengeOut]:
    if redis_conn is None:
        return None
    try:
        cached = await redis_conn.get(challenge_cache_key(day))
    except RedisError as e:
        logger.warning("Challenge cache read failed for %s: %s", day, e)
        return None
    return DailyChallengeOut.model_validate_json(cached) if cached else None


async def cache_challenge(
    redis_conn: Optional[redis.Redis], challenge: DailyChallengeOut, now: datetime
) -> None:
    if redis_conn is None:
        return
    # Expire at the daily reset
    ttl = max(1, int((next_utc_midnight(now) - now).total_seconds()))
    try:
        await redis_conn.setex(challenge_cache_key(challenge.date), ttl, challenge.model_dump_json())
    except RedisError as e:
        logger.warning("Challenge cache write failed for %s: %s", challenge.date, e)


async def invalidate_challenge_cache(redis_conn: Optional[redis.Redis], day) -> None:
    if redis_conn is None:
        return
    try:
        await redis_conn.delete(challenge_cache_key(day))
    except RedisError as e:
        logger.warning("Challenge cache invalidation failed for %s: %s", day, e)


@router.get("/daily-challenge", response_model=ChallengeView)
async def get_daily_challenge(
    date: Optional[str] = None,
    user_id: Optional[int] = Query(None, ge=1, le=SQL_INT_MAX),
    repo: RankingRepository = Depends(get_repository),
    redis_conn: Optional[redis.Redis] = Depends(get_redis_client),
    clock = Depends(get_clock),
):
    """
    The challenge for a UTC day (today by default), generated on first request.

    With ``user_id`` the response carries that user's progress on it. Only the
    challenge itself is cached; progress is always read fresh.
    """
    now: datetime = clock()
    day = parse_utc_date(date, now)

    # 1. Try the cache
    challenge = await read_cached_challenge(redis_conn, day)

    if challenge is None:
        record = ChallengeRotation(repo).get_or_create(day)
        challenge = challenge_out(record, repo.find_problem(record.problem_id))
        await cache_challenge(redis_conn, challenge, now)

    # 2. Viewer progress
    stat = repo.find_solved_stat(user_id, challenge.problem_id) if user_id is not None else None

    return build_challenge_view(challenge, stat, now)
