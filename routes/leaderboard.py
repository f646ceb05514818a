from fastapi import APIRouter, Depends, Path

from config import DEFAULT_PAGE_SIZE, SQL_INT_MAX
from dependencies import get_clock, get_repository, verify_admin_access
from helpers.leaderboard import LeaderboardQuery
from helpers.periods import Period
from helpers.standings import StandingUpdater
from repository import RankingRepository
from schemas.leaderboard import (
    LeaderboardResponse,
    StandingResponse,
    StandingUpdateRequest,
    StandingUpdateResponse,
    UserRankResponse,
)

router = APIRouter(prefix="/leaderboard", tags=["Leaderboard"])

@router.get("/", response_model=LeaderboardResponse)
def get_leaderboard(
    timeframe: str = "all-time",
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    repo: RankingRepository = Depends(get_repository),
    clock = Depends(get_clock),
):
    """Ranked page for a period (all-time, monthly or weekly)."""
    period = Period.parse(timeframe)
    return LeaderboardQuery(repo, clock).get_page(period, page, limit)


@router.get("/rank/{user_id}", response_model=UserRankResponse)
def get_user_rank(
    user_id: int = Path(..., ge=1, le=SQL_INT_MAX),
    repo: RankingRepository = Depends(get_repository),
    clock = Depends(get_clock),
):
    return LeaderboardQuery(repo, clock).get_user_rank(user_id)


# Called by the submission pipeline whenever a user's XP changes
@router.post(
    "/standings",
    response_model=StandingUpdateResponse,
    dependencies=[Depends(verify_admin_access)],
)
def update_user_standing(
    request: StandingUpdateRequest,
    repo: RankingRepository = Depends(get_repository),
    clock = Depends(get_clock),
):
    standings = StandingUpdater(repo, clock).update_user_standing(request.user_id, request.xp)
    return StandingUpdateResponse(
        standings=[
            StandingResponse(period=s.period.value, score=s.score, rank=s.rank)
            for s in standings
        ]
    )
