"""
Storage access for the ranking and rotation engine.

``RankingRepository`` wraps one SQLAlchemy session and is handed to every
helper that needs the store; nothing holds a module-level client. Methods are
plain data access: the only writes that commit on their own are the two that
must be atomic per unique key (leaderboard upsert and challenge insert), since
their conflict handling needs to roll the session back.

Any ``SQLAlchemyError`` that escapes a method is re-raised as
``StorageFailureError``. Nothing is retried here.
"""

from collections import defaultdict
from datetime import date, datetime
from functools import wraps
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, case, exists, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from errors import ConflictError, RankingError, StorageFailureError
from logger import get_logger
from models import (
    DailyChallenge,
    LeaderboardEntry,
    Problem,
    ProblemStat,
    Submission,
    User,
    UserAchievement,
)

logger = get_logger(__name__)

ACCEPTED = "ACCEPTED"


def storage_call(method):
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except RankingError:
            raise
        except SQLAlchemyError as e:
            logger.error("Storage failure in %s", method.__name__, exc_info=True)
            self.db.rollback()
            raise StorageFailureError(
                "Storage is unavailable", {"operation": method.__name__}
            ) from e

    return wrapper


class RankingRepository:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Users and activity
    # ------------------------------------------------------------------

    @storage_call
    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    @storage_call
    def has_accepted_submission_since(self, user_id: int, since: datetime) -> bool:
        return self.db.query(
            exists().where(
                Submission.user_id == user_id,
                Submission.status == ACCEPTED,
                Submission.created_at >= since,
            )
        ).scalar()

    @staticmethod
    def _active_since(since: datetime):
        return exists().where(
            Submission.user_id == LeaderboardEntry.user_id,
            Submission.status == ACCEPTED,
            Submission.created_at >= since,
        )

    # ------------------------------------------------------------------
    # Leaderboard entries
    # ------------------------------------------------------------------

    def _entries(self, period: str, active_since: Optional[datetime]):
        query = self.db.query(LeaderboardEntry).filter(LeaderboardEntry.period == period)
        if active_since is not None:
            query = query.filter(self._active_since(active_since))
        return query

    @storage_call
    def find_leaderboard_entry(self, user_id: int, period: str) -> Optional[LeaderboardEntry]:
        return (
            self.db.query(LeaderboardEntry)
            .filter(LeaderboardEntry.user_id == user_id, LeaderboardEntry.period == period)
            .first()
        )

    @storage_call
    def find_leaderboard_entries(
        self,
        period: str,
        offset: int,
        limit: int,
        active_since: Optional[datetime] = None,
    ) -> List[Tuple[LeaderboardEntry, User]]:
        query = (
            self.db.query(LeaderboardEntry, User)
            .join(User, LeaderboardEntry.user_id == User.id)
            .filter(LeaderboardEntry.period == period)
        )
        if active_since is not None:
            query = query.filter(self._active_since(active_since))
        return (
            query
            .order_by(LeaderboardEntry.score.desc(), LeaderboardEntry.user_id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    @storage_call
    def count_leaderboard_entries(self, period: str, active_since: Optional[datetime] = None) -> int:
        return self._entries(period, active_since).count()

    @storage_call
    def count_entries_above(
        self, period: str, score: int, active_since: Optional[datetime] = None
    ) -> int:
        return self._entries(period, active_since).filter(LeaderboardEntry.score > score).count()

    @storage_call
    def upsert_leaderboard_entry(
        self, user_id: int, period: str, score: int, rank: int, now: datetime
    ) -> None:
        """
        Write the (user, period) standing and commit.

        Update in place first; insert only when nothing was there. If another
        writer inserts the same key between those two steps, the unique
        constraint rejects ours and the update is applied to their row.
        """
        values = {
            LeaderboardEntry.score: score,
            LeaderboardEntry.rank: rank,
            LeaderboardEntry.last_updated: now,
        }
        key = and_(LeaderboardEntry.user_id == user_id, LeaderboardEntry.period == period)

        updated = self.db.query(LeaderboardEntry).filter(key).update(values, synchronize_session=False)
        if updated:
            self.db.commit()
            return

        self.db.add(
            LeaderboardEntry(
                user_id=user_id, period=period, score=score, rank=rank, last_updated=now
            )
        )
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("Concurrent insert for user %s period %s, updating instead", user_id, period)
            self.db.query(LeaderboardEntry).filter(key).update(values, synchronize_session=False)
            self.db.commit()

    @storage_call
    def delete_leaderboard_entry(self, user_id: int, period: str) -> int:
        deleted = (
            self.db.query(LeaderboardEntry)
            .filter(LeaderboardEntry.user_id == user_id, LeaderboardEntry.period == period)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted

    # ------------------------------------------------------------------
    # Per-user statistics, batched by user id
    # ------------------------------------------------------------------

    @storage_call
    def submission_counts(self, user_ids: Iterable[int]) -> Dict[int, Tuple[int, int]]:
        """user_id -> (total submissions, accepted submissions)"""
        user_ids = list(user_ids)
        if not user_ids:
            return {}
        accepted = func.sum(case((Submission.status == ACCEPTED, 1), else_=0))
        rows = (
            self.db.query(Submission.user_id, func.count(Submission.id), accepted)
            .filter(Submission.user_id.in_(user_ids))
            .group_by(Submission.user_id)
            .all()
        )
        return {uid: (total, int(acc or 0)) for uid, total, acc in rows}

    @storage_call
    def solved_counts(self, user_ids: Iterable[int]) -> Dict[int, int]:
        user_ids = list(user_ids)
        if not user_ids:
            return {}
        rows = (
            self.db.query(ProblemStat.user_id, func.count(ProblemStat.id))
            .filter(ProblemStat.user_id.in_(user_ids), ProblemStat.solved.is_(True))
            .group_by(ProblemStat.user_id)
            .all()
        )
        return dict(rows)

    @storage_call
    def achievement_counts(self, user_ids: Iterable[int]) -> Dict[int, int]:
        user_ids = list(user_ids)
        if not user_ids:
            return {}
        rows = (
            self.db.query(UserAchievement.user_id, func.count(UserAchievement.id))
            .filter(UserAchievement.user_id.in_(user_ids))
            .group_by(UserAchievement.user_id)
            .all()
        )
        return dict(rows)

    @storage_call
    def solve_timestamps(self, user_ids: Iterable[int]) -> Dict[int, List[datetime]]:
        user_ids = list(user_ids)
        result = defaultdict(list)
        if not user_ids:
            return result
        rows = (
            self.db.query(ProblemStat.user_id, ProblemStat.solved_at)
            .filter(
                ProblemStat.user_id.in_(user_ids),
                ProblemStat.solved.is_(True),
                ProblemStat.solved_at.isnot(None),
            )
            .all()
        )
        for uid, solved_at in rows:
            result[uid].append(solved_at)
        return result

    @storage_call
    def find_solved_stat(self, user_id: int, problem_id: int) -> Optional[ProblemStat]:
        return (
            self.db.query(ProblemStat)
            .filter(
                ProblemStat.user_id == user_id,
                ProblemStat.problem_id == problem_id,
                ProblemStat.solved.is_(True),
            )
            .first()
        )

    # ------------------------------------------------------------------
    # Problems (rotation candidates)
    # ------------------------------------------------------------------

    def _published(self):
        return self.db.query(Problem).filter(Problem.published_at.isnot(None))

    @storage_call
    def find_problem(self, problem_id: int) -> Optional[Problem]:
        return self.db.query(Problem).filter(Problem.id == problem_id).first()

    @storage_call
    def list_published_problems(self) -> List[Problem]:
        return self._published().order_by(Problem.title.asc()).all()

    @storage_call
    def find_never_featured_problem(self) -> Optional[Problem]:
        featured = exists().where(DailyChallenge.problem_id == Problem.id)
        return (
            self._published()
            .filter(~featured)
            .order_by(Problem.created_at.asc(), Problem.id.asc())
            .first()
        )

    @storage_call
    def find_problem_outside_cooldown(self, cutoff: date) -> Optional[Problem]:
        recent = exists().where(
            DailyChallenge.problem_id == Problem.id, DailyChallenge.date >= cutoff
        )
        return (
            self._published()
            .filter(~recent)
            .order_by(Problem.created_at.asc(), Problem.id.asc())
            .first()
        )

    @storage_call
    def find_least_recently_featured_problem(self) -> Optional[Problem]:
        return (
            self._published()
            .join(DailyChallenge, DailyChallenge.problem_id == Problem.id)
            .order_by(DailyChallenge.date.asc())
            .first()
        )

    @storage_call
    def find_any_published_problem(self) -> Optional[Problem]:
        return self._published().order_by(Problem.created_at.asc(), Problem.id.asc()).first()

    # ------------------------------------------------------------------
    # Daily challenges
    # ------------------------------------------------------------------

    @storage_call
    def find_challenge_by_date(self, day: date) -> Optional[DailyChallenge]:
        return self.db.query(DailyChallenge).filter(DailyChallenge.date == day).first()

    @storage_call
    def find_challenge_by_id(self, challenge_id: int) -> Optional[DailyChallenge]:
        return self.db.query(DailyChallenge).filter(DailyChallenge.id == challenge_id).first()

    @storage_call
    def create_daily_challenge(self, day: date, problem_id: int, xp_bonus: int) -> DailyChallenge:
        """Insert and commit. Raises ConflictError if the date already has a row."""
        challenge = DailyChallenge(date=day, problem_id=problem_id, xp_bonus=xp_bonus)
        self.db.add(challenge)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(
                "Daily challenge already exists for date", {"date": day.isoformat()}
            ) from e
        self.db.refresh(challenge)
        return challenge

    @storage_call
    def save_daily_challenge(self, day: date, problem_id: int, xp_bonus: int) -> DailyChallenge:
        """Upsert by date, replacing whatever problem was there."""
        challenge = self.find_challenge_by_date(day)
        if challenge is None:
            try:
                return self.create_daily_challenge(day, problem_id, xp_bonus)
            except ConflictError:
                challenge = self.find_challenge_by_date(day)
                if challenge is None:
                    raise
        challenge.problem_id = problem_id
        challenge.xp_bonus = xp_bonus
        self.db.commit()
        self.db.refresh(challenge)
        return challenge

    @storage_call
    def delete_challenge(self, challenge: DailyChallenge) -> None:
        self.db.delete(challenge)
        self.db.commit()

    @storage_call
    def list_challenges(
        self, offset: int, limit: int, since: Optional[date] = None
    ) -> Tuple[List[Tuple[DailyChallenge, Problem]], int]:
        query = self.db.query(DailyChallenge, Problem).join(
            Problem, DailyChallenge.problem_id == Problem.id
        )
        if since is not None:
            query = query.filter(DailyChallenge.date >= since)
        total = query.count()
        rows = query.order_by(DailyChallenge.date.desc()).offset(offset).limit(limit).all()
        return rows, total
