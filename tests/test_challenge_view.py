"""
Unit tests for composing the daily challenge view.
"""

from datetime import datetime, timedelta

from helpers.challenge_view import build_challenge_view, challenge_out
from models import DailyChallenge, Problem, ProblemStat
from tests.conftest import NOW, TODAY


def resolved_challenge(day=TODAY):
    problem = Problem(id=7, slug="two-sum", title="Two Sum", difficulty="EASY", topics="Array")
    challenge = DailyChallenge(id=3, date=day, problem_id=7, xp_bonus=20)
    return challenge_out(challenge, problem)


def solved_at(moment):
    return ProblemStat(user_id=1, problem_id=7, solved=True, solved_at=moment)


class TestChallengeView:
    def test_anonymous_viewer(self):
        view = build_challenge_view(resolved_challenge(), None, NOW)

        assert view.completed is False
        assert view.earned_bonus is False
        assert view.completed_at is None
        assert view.problem.slug == "two-sum"

    def test_solved_today_earns_bonus(self):
        moment = datetime(2026, 10, 19, 0, 5)
        view = build_challenge_view(resolved_challenge(), solved_at(moment), NOW)

        assert view.completed is True
        assert view.earned_bonus is True
        assert view.completed_at == moment

    def test_solved_before_the_challenge_day_completes_without_bonus(self):
        view = build_challenge_view(resolved_challenge(), solved_at(NOW - timedelta(days=3)), NOW)

        assert view.completed is True
        assert view.earned_bonus is False

    def test_time_until_reset_is_milliseconds_to_next_utc_midnight(self):
        view = build_challenge_view(resolved_challenge(), None, NOW)

        assert view.time_until_reset == 8 * 3600 * 1000 + 30 * 60 * 1000

    def test_view_carries_challenge_fields(self):
        view = build_challenge_view(resolved_challenge(), None, NOW)

        assert (view.id, view.date, view.xp_bonus) == (3, TODAY, 20)
