from datetime import datetime
from typing import Optional

from helpers.periods import next_utc_midnight, to_naive_utc, utc_day_start
from schemas.daily import ChallengeView, DailyChallengeOut, ProblemSummary


def problem_summary(problem) -> ProblemSummary:
    return ProblemSummary(
        id=problem.id,
        title=problem.title,
        slug=problem.slug,
        difficulty=problem.difficulty,
        topics=problem.topics,
    )


def challenge_out(challenge, problem=None) -> DailyChallengeOut:
    return DailyChallengeOut(
        id=challenge.id,
        date=challenge.date,
        problem_id=challenge.problem_id,
        xp_bonus=challenge.xp_bonus,
        problem=problem_summary(problem) if problem is not None else None,
    )


def build_challenge_view(
    challenge: DailyChallengeOut,
    stat,
    now: datetime,
) -> ChallengeView:
    """
    Attach the viewer's progress to a resolved challenge.

    ``stat`` is the viewer's solved ProblemStat for the challenge problem, or
    None for anonymous viewers and users who have not solved it. Solving the
    problem on an earlier day counts as completed but does not earn the bonus.
    """
    now = to_naive_utc(now)
    completed = stat is not None and bool(stat.solved)
    completed_at: Optional[datetime] = stat.solved_at if completed else None
    earned_bonus = completed_at is not None and completed_at >= utc_day_start(challenge.date)

    reset_in = next_utc_midnight(now) - now

    return ChallengeView(
        id=challenge.id,
        date=challenge.date,
        xp_bonus=challenge.xp_bonus,
        problem=challenge.problem,
        completed=completed,
        completed_at=completed_at,
        earned_bonus=earned_bonus,
        time_until_reset=int(reset_in.total_seconds() * 1000),
    )
