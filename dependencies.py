from fastapi import Header, Depends
import redis.asyncio as redis
from contextlib import asynccontextmanager
from fastapi import FastAPI
import secrets
from sqlalchemy.orm import Session

import config
from database import get_db
from errors import UnauthorizedError
from helpers.periods import utcnow
from logger import get_logger
from repository import RankingRepository

logger = get_logger(__name__)


def get_repository(db: Session = Depends(get_db)) -> RankingRepository:
    return RankingRepository(db)


def get_clock():
    return utcnow


def verify_admin_access(x_api_key: str = Header(None)):
    """Admin and internal callers (e.g. the submission pipeline) share one key."""
    expected = config.X_API_KEY
    if not expected or not x_api_key or not secrets.compare_digest(x_api_key, expected):
        raise UnauthorizedError("Invalid Admin API key")


redis_client = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global redis_client
    if config.REDIS_CONN_STRING:
        redis_client = redis.from_url(config.REDIS_CONN_STRING)
    else:
        logger.info("REDIS_CONN_STRING not set, daily challenge cache disabled")
    yield
    if redis_client:
        await redis_client.close()
        redis_client = None


async def get_redis_client():
    return redis_client
