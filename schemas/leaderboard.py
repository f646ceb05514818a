from pydantic import BaseModel, Field
from typing import List, Optional

from config import SQL_INT_MAX

class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    public_id: str
    name: str
    username: Optional[str] = None
    picture: Optional[str] = None
    xp: int  # period score for WEEKLY/MONTHLY, lifetime XP for ALL_TIME
    total_xp: int
    level: int
    problems_solved: int
    total_submissions: int
    accepted_submissions: int
    acceptance_rate: int
    current_streak: int
    achievements_count: int

class Pagination(BaseModel):
    page: int
    limit: int
    total_count: int
    total_pages: int

class LeaderboardResponse(BaseModel):
    period: str
    entries: List[LeaderboardEntry]
    pagination: Pagination

class UserRankResponse(BaseModel):
    user_id: int
    rank: int
    total_users: int
    percentile: int

class StandingUpdateRequest(BaseModel):
    user_id: int = Field(ge=1, le=SQL_INT_MAX)
    xp: int = Field(ge=0, le=SQL_INT_MAX)

class StandingResponse(BaseModel):
    period: str
    score: int
    rank: int

class StandingUpdateResponse(BaseModel):
    success: bool = True
    standings: List[StandingResponse]
