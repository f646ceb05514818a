from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Optional

from config import SQL_INT_MAX


class ProblemSummary(BaseModel):
    id: int
    title: str
    slug: str
    difficulty: str
    topics: Optional[str] = None


class DailyChallengeOut(BaseModel):
    id: int
    date: date
    problem_id: int
    xp_bonus: int
    problem: Optional[ProblemSummary] = None


class ChallengeView(BaseModel):
    id: int
    date: date
    xp_bonus: int
    problem: ProblemSummary
    completed: bool = False
    completed_at: Optional[datetime] = None
    earned_bonus: bool = False
    time_until_reset: int  # milliseconds until next UTC midnight


class ScheduleChallengeRequest(BaseModel):
    date: str  # ISO date, normalized to the UTC calendar day
    problem_id: int = Field(ge=1, le=SQL_INT_MAX)
    xp_bonus: Optional[int] = Field(None, ge=0, le=SQL_INT_MAX)  # defaults to DAILY_CHALLENGE_XP_BONUS


class ChallengeListResponse(BaseModel):
    challenges: List[DailyChallengeOut]
    problems: List[ProblemSummary]
    total: int
    page: int
    limit: int
    total_pages: int
