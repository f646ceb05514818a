from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List

from errors import InvalidInputError, NotFoundError
from helpers.periods import Period, utcnow, window_start
from logger import get_logger
from repository import RankingRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class Standing:
    period: Period
    score: int
    rank: int


class StandingUpdater:
    """
    Recomputes a user's standing in every period after their XP changes.

    The submission pipeline calls this once per XP change with the new total.
    XP itself is never written here; only the derived leaderboard rows are.
    """

    def __init__(self, repo: RankingRepository, clock: Callable[[], datetime] = utcnow):
        self.repo = repo
        self.clock = clock

    def update_user_standing(self, user_id: int, xp: int) -> List[Standing]:
        if xp is None or xp < 0:
            raise InvalidInputError("XP must be a non-negative integer", {"xp": xp})
        if self.repo.get_user(user_id) is None:
            raise NotFoundError("User not found", {"user_id": user_id})

        now = self.clock()
        standings = []
        for period in Period:
            since = window_start(period, now)

            if since is not None and not self.repo.has_accepted_submission_since(user_id, since):
                # Inactive users drop out of windowed boards instead of keeping a stale row
                if self.repo.delete_leaderboard_entry(user_id, period.value):
                    logger.info("Removed user %s from %s leaderboard (no recent activity)", user_id, period.value)
                continue

            rank = 1 + self.repo.count_entries_above(period.value, xp, active_since=since)
            self.repo.upsert_leaderboard_entry(user_id, period.value, xp, rank, now)
            standings.append(Standing(period=period, score=xp, rank=rank))

        logger.info(
            "Updated standings for user %s at %s XP: %s",
            user_id,
            xp,
            ", ".join(f"{s.period.value}=#{s.rank}" for s in standings),
        )
        return standings
