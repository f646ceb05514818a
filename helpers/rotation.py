"""
Daily challenge rotation.

``ChallengeRotation.get_or_create`` returns the challenge for a UTC day,
creating it on first request. The problem is chosen by falling through
fairness tiers:

1. a published problem that has never been featured, oldest first;
2. a published problem not featured within the cooldown window, oldest first;
3. the problem of the oldest-dated challenge on record (reuse);
4. any published problem.

Creation is insert-first: the unique ``date`` column decides which of two
racing requests wins, and the loser reads back the winner's row.
"""

import math
from datetime import date, timedelta
from typing import Optional, Tuple

from config import CHALLENGE_COOLDOWN_DAYS, DAILY_CHALLENGE_XP_BONUS, MAX_PAGE_SIZE, SQL_INT_MAX
from errors import ConflictError, InvalidInputError, NotFoundError
from helpers.challenge_view import challenge_out, problem_summary
from logger import get_logger
from models import DailyChallenge, Problem
from repository import RankingRepository
from schemas.daily import ChallengeListResponse

logger = get_logger(__name__)

MAX_CREATE_ATTEMPTS = 3


class ChallengeRotation:
    def __init__(
        self,
        repo: RankingRepository,
        xp_bonus: int = DAILY_CHALLENGE_XP_BONUS,
        cooldown_days: int = CHALLENGE_COOLDOWN_DAYS,
    ):
        self.repo = repo
        self.xp_bonus = xp_bonus
        self.cooldown_days = cooldown_days

    def select_problem(self, day: date) -> Tuple[Optional[Problem], Optional[str]]:
        """Return (problem, tier name), or (None, None) when nothing is published."""
        problem = self.repo.find_never_featured_problem()
        if problem:
            return problem, "never-featured"

        cutoff = day - timedelta(days=self.cooldown_days)
        problem = self.repo.find_problem_outside_cooldown(cutoff)
        if problem:
            return problem, "cooldown"

        problem = self.repo.find_least_recently_featured_problem()
        if problem:
            return problem, "least-recently-used"

        problem = self.repo.find_any_published_problem()
        if problem:
            return problem, "fallback"

        return None, None

    def get_or_create(self, day: date) -> DailyChallenge:
        for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
            challenge = self.repo.find_challenge_by_date(day)
            if challenge:
                return challenge

            problem, tier = self.select_problem(day)
            if problem is None:
                raise NotFoundError(
                    "No problems available for daily challenge", {"date": day.isoformat()}
                )

            try:
                challenge = self.repo.create_daily_challenge(day, problem.id, self.xp_bonus)
            except ConflictError:
                logger.warning(
                    "Daily challenge for %s created concurrently (attempt %s), reading it back",
                    day, attempt,
                )
                continue

            logger.info("Generated daily challenge for %s: problem %s (%s)", day, problem.id, tier)
            return challenge

        raise ConflictError(
            "Could not settle daily challenge after concurrent creation",
            {"date": day.isoformat(), "attempts": MAX_CREATE_ATTEMPTS},
        )

    # ------------------------------------------------------------------
    # Administrative override
    # ------------------------------------------------------------------

    def schedule(self, day: date, problem_id: int, xp_bonus: int = None) -> DailyChallenge:
        """Pin a problem to a date, replacing any generated or scheduled one."""
        problem = self.repo.find_problem(problem_id)
        if problem is None:
            raise NotFoundError("Problem not found", {"problem_id": problem_id})
        if problem.published_at is None:
            raise InvalidInputError("Cannot schedule unpublished problem", {"problem_id": problem_id})

        if xp_bonus is None:
            xp_bonus = self.xp_bonus
        if xp_bonus < 0:
            raise InvalidInputError("XP bonus must be non-negative", {"xp_bonus": xp_bonus})

        challenge = self.repo.save_daily_challenge(day, problem_id, xp_bonus)
        logger.info("Scheduled problem %s for %s (+%s XP)", problem_id, day, xp_bonus)
        return challenge

    def list_scheduled(
        self, page: int, page_size: int, upcoming: bool = False, today: date = None
    ) -> ChallengeListResponse:
        """Past and future challenges, newest date first, plus the problems an admin can pick."""
        if page < 1:
            raise InvalidInputError("Page must be 1 or greater", {"page": page})
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise InvalidInputError(
                f"Page size must be between 1 and {MAX_PAGE_SIZE}", {"limit": page_size}
            )
        if (page - 1) * page_size > SQL_INT_MAX:
            raise InvalidInputError("Page is out of range", {"page": page})

        since = today if upcoming else None
        rows, total = self.repo.list_challenges((page - 1) * page_size, page_size, since=since)
        return ChallengeListResponse(
            challenges=[challenge_out(challenge, problem) for challenge, problem in rows],
            problems=[problem_summary(p) for p in self.repo.list_published_problems()],
            total=total,
            page=page,
            limit=page_size,
            total_pages=math.ceil(total / page_size),
        )

    def delete(self, challenge_id: int = None, day: date = None) -> date:
        """Remove a challenge so rotation takes over for its date again. Returns that date."""
        if challenge_id is None and day is None:
            raise InvalidInputError("Either id or date is required")

        if challenge_id is not None:
            challenge = self.repo.find_challenge_by_id(challenge_id)
        else:
            challenge = self.repo.find_challenge_by_date(day)
        if challenge is None:
            raise NotFoundError(
                "Daily challenge not found",
                {"id": challenge_id, "date": day.isoformat() if day else None},
            )

        deleted_id, deleted_date = challenge.id, challenge.date
        self.repo.delete_challenge(challenge)
        logger.info("Deleted daily challenge %s for %s", deleted_id, deleted_date)
        return deleted_date
