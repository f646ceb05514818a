"""
Leaderboard reads: ranked pages and single-user rank.

Ranks are always derived at read time from the live ordering. The ``rank``
column on stored rows is ignored here because inserts and deletes by other
users can invalidate it between writes.
"""

import math
from datetime import datetime
from typing import Callable, List, Sequence

from config import MAX_PAGE_SIZE, SQL_INT_MAX
from errors import InvalidInputError, NotFoundError
from helpers.periods import Period, utcnow, window_start
from helpers.streaks import StreakCalculator
from repository import RankingRepository
from schemas.leaderboard import (
    LeaderboardEntry,
    LeaderboardResponse,
    Pagination,
    UserRankResponse,
)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def level_for_xp(xp: int) -> int:
    return math.floor(math.sqrt(max(xp, 0) / 5)) + 1


def acceptance_rate(accepted: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(accepted / total * 100)


def display_name(user) -> str:
    if user.name:
        parts = user.name.split()
        return f"{parts[0]} {parts[-1]}" if len(parts) > 2 else user.name
    return user.username or "User"


def page_ranks(scores: Sequence[int], page: int, page_size: int) -> List[int]:
    """
    Dense tie-sharing ranks for one page, continued from the page offset.

    Equal neighbouring scores share a rank; the next distinct score resumes at
    its positional rank (50, 50, 30 -> 1, 1, 3). Ties that straddle a page
    boundary are not reconciled with the previous page.
    """
    starting_rank = (page - 1) * page_size + 1
    ranks = []
    for index, score in enumerate(scores):
        if index > 0 and score == scores[index - 1]:
            ranks.append(ranks[-1])
        else:
            ranks.append(starting_rank + index)
    return ranks


def percentile(rank: int, total_users: int) -> int:
    if total_users <= 0:
        return 0
    return round_half_up((total_users - rank) / total_users * 100)


class LeaderboardQuery:
    def __init__(self, repo: RankingRepository, clock: Callable[[], datetime] = utcnow):
        self.repo = repo
        self.clock = clock
        self.streaks = StreakCalculator(repo, clock)

    def get_page(self, period: Period, page: int, page_size: int) -> LeaderboardResponse:
        if page is None or page < 1:
            raise InvalidInputError("Page must be 1 or greater", {"page": page})
        if page_size is None or not 1 <= page_size <= MAX_PAGE_SIZE:
            raise InvalidInputError(
                f"Page size must be between 1 and {MAX_PAGE_SIZE}", {"limit": page_size}
            )
        if (page - 1) * page_size > SQL_INT_MAX:
            raise InvalidInputError("Page is out of range", {"page": page})

        since = window_start(period, self.clock())
        rows = self.repo.find_leaderboard_entries(
            period.value, offset=(page - 1) * page_size, limit=page_size, active_since=since
        )
        total_count = self.repo.count_leaderboard_entries(period.value, active_since=since)

        user_ids = [user.id for _, user in rows]
        submissions = self.repo.submission_counts(user_ids)
        solved = self.repo.solved_counts(user_ids)
        achievements = self.repo.achievement_counts(user_ids)
        streaks = self.streaks.for_users(user_ids)

        ranks = page_ranks([entry.score for entry, _ in rows], page, page_size)

        entries = []
        for rank, (entry, user) in zip(ranks, rows):
            total, accepted = submissions.get(user.id, (0, 0))
            entries.append(LeaderboardEntry(
                rank=rank,
                user_id=user.id,
                public_id=user.public_id,
                name=display_name(user),
                username=user.username,
                picture=user.picture,
                xp=entry.score if period.is_windowed else user.xp,
                total_xp=user.xp,
                level=level_for_xp(user.xp),
                problems_solved=solved.get(user.id, 0),
                total_submissions=total,
                accepted_submissions=accepted,
                acceptance_rate=acceptance_rate(accepted, total),
                current_streak=streaks.get(user.id, 0),
                achievements_count=achievements.get(user.id, 0),
            ))

        return LeaderboardResponse(
            period=period.value,
            entries=entries,
            pagination=Pagination(
                page=page,
                limit=page_size,
                total_count=total_count,
                total_pages=math.ceil(total_count / page_size),
            ),
        )

    def get_user_rank(self, user_id: int) -> UserRankResponse:
        """All-time rank and percentile for a single user."""
        entry = self.repo.find_leaderboard_entry(user_id, Period.ALL_TIME.value)
        if entry is None:
            raise NotFoundError("User has no leaderboard entry", {"user_id": user_id})

        rank = 1 + self.repo.count_entries_above(Period.ALL_TIME.value, entry.score)
        total_users = self.repo.count_leaderboard_entries(Period.ALL_TIME.value)

        return UserRankResponse(
            user_id=user_id,
            rank=rank,
            total_users=total_users,
            percentile=percentile(rank, total_users),
        )
