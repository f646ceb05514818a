from database import Base
from sqlalchemy import (
    CHAR,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    TEXT,
    UniqueConstraint,
    VARCHAR,
)
from sqlalchemy.sql import func
import uuid


# Owned by the auth subsystem and the grading flow. Read-only here.
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    public_id = Column(
        CHAR(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4())
    )
    name = Column(VARCHAR(255), nullable=True)
    username = Column(VARCHAR(100), unique=True, nullable=True)
    email = Column(VARCHAR(100), unique=True, nullable=True)
    picture = Column(TEXT, nullable=True)
    role = Column(VARCHAR(10), default="USER", nullable=False)  # "USER" or "ADMIN"
    xp = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.current_timestamp())


class Problem(Base):
    __tablename__ = "problems"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(VARCHAR(100), unique=True, nullable=False)
    title = Column(VARCHAR(100), nullable=False)
    difficulty = Column(VARCHAR(10), nullable=False)  # "EASY", "MEDIUM", "HARD"
    topics = Column(VARCHAR(255), nullable=True)  # comma separated, e.g. "Array, Hash Table"
    # Drafts have no publish date and never rotate into a daily challenge
    published_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.current_timestamp(), nullable=False)


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    problem_id = Column(Integer, ForeignKey("problems.id"), nullable=False, index=True)
    status = Column(VARCHAR(30), nullable=False)  # terminal judge verdict, e.g. "ACCEPTED"
    created_at = Column(DateTime, server_default=func.current_timestamp(), nullable=False, index=True)


class ProblemStat(Base):
    __tablename__ = "problem_stats"
    __table_args__ = (
        UniqueConstraint("user_id", "problem_id", name="uq_problem_stats_user_problem"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    problem_id = Column(Integer, ForeignKey("problems.id"), nullable=False, index=True)
    solved = Column(Boolean, default=False, nullable=False)
    solved_at = Column(DateTime, nullable=True)
    hints_used = Column(Boolean, default=False, nullable=False)
    xp_earned = Column(Integer, default=0, nullable=False)


class UserAchievement(Base):
    __tablename__ = "user_achievements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    achievement_id = Column(VARCHAR(50), nullable=False)  # e.g., "first-blood", "streak_7"
    unlocked_at = Column(DateTime, server_default=func.current_timestamp())


class LeaderboardEntry(Base):
    __tablename__ = "leaderboard_entries"
    __table_args__ = (
        UniqueConstraint("user_id", "period", name="uq_leaderboard_user_period"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    period = Column(VARCHAR(10), nullable=False, index=True)  # "ALL_TIME", "MONTHLY", "WEEKLY"
    score = Column(Integer, default=0, nullable=False, index=True)
    # Written on every standing update but never shown; display ranks are
    # always counted at read time.
    rank = Column(Integer, nullable=True)
    last_updated = Column(DateTime, nullable=False)


class DailyChallenge(Base):
    __tablename__ = "daily_challenges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # UTC calendar day. The unique constraint is the race guard for rotation.
    date = Column(Date, unique=True, nullable=False)
    problem_id = Column(Integer, ForeignKey("problems.id"), nullable=False, index=True)
    xp_bonus = Column(Integer, default=20, nullable=False)
    created_at = Column(DateTime, server_default=func.current_timestamp())
