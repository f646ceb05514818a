from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable

from helpers.periods import to_naive_utc, utcnow
from repository import RankingRepository


def calculate_streak(solved_at: Iterable[datetime], today: date) -> int:
    """
    Count consecutive UTC days with at least one solve, ending today.

    The streak is still alive when the latest solve was yesterday, so a user
    who has not solved yet today keeps yesterday's count until midnight.
    """
    days = sorted({to_naive_utc(ts).date() for ts in solved_at if ts is not None}, reverse=True)
    if not days:
        return 0

    if days[0] not in (today, today - timedelta(days=1)):
        return 0

    streak = 1
    for newer, older in zip(days, days[1:]):
        if (newer - older).days != 1:
            break
        streak += 1
    return streak


class StreakCalculator:
    def __init__(self, repo: RankingRepository, clock: Callable[[], datetime] = utcnow):
        self.repo = repo
        self.clock = clock

    def for_user(self, user_id: int) -> int:
        return self.for_users([user_id]).get(user_id, 0)

    def for_users(self, user_ids: Iterable[int]) -> Dict[int, int]:
        user_ids = list(user_ids)
        today = to_naive_utc(self.clock()).date()
        timestamps = self.repo.solve_timestamps(user_ids)
        return {uid: calculate_streak(timestamps.get(uid, []), today) for uid in user_ids}
