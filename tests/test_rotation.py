"""
Unit tests for daily challenge rotation, race recovery and admin overrides.
"""

from datetime import date, timedelta

import pytest

from errors import ConflictError, InvalidInputError, NotFoundError
from helpers.rotation import ChallengeRotation
from models import DailyChallenge
from repository import RankingRepository
from tests.conftest import TODAY


def challenge_count(db):
    return db.query(DailyChallenge).count()


class TestTierSelection:
    def test_never_featured_beats_cooled_down(self, repo, make):
        """Tier 1 wins over a problem last featured 40 days ago."""
        veteran = make.problem()
        fresh = make.problem()
        make.challenge(veteran, TODAY - timedelta(days=40))

        challenge = ChallengeRotation(repo).get_or_create(TODAY)

        assert challenge.problem_id == fresh.id

    def test_oldest_never_featured_first(self, repo, make):
        newer = make.problem()
        older = make.problem(created_at=newer.created_at - timedelta(days=3))

        assert ChallengeRotation(repo).get_or_create(TODAY).problem_id == older.id

    def test_drafts_are_never_selected(self, repo, make):
        make.problem(published=False)
        published = make.problem()

        assert ChallengeRotation(repo).get_or_create(TODAY).problem_id == published.id

    def test_cooldown_tier_skips_recent_problems(self, repo, make):
        recent = make.problem()
        rested = make.problem()
        make.challenge(recent, TODAY - timedelta(days=5))
        make.challenge(rested, TODAY - timedelta(days=31))

        assert ChallengeRotation(repo).get_or_create(TODAY).problem_id == rested.id

    def test_least_recently_used_when_all_in_cooldown(self, repo, make):
        a, b = make.problem(), make.problem()
        make.challenge(b, TODAY - timedelta(days=10))
        make.challenge(a, TODAY - timedelta(days=3))

        challenge = ChallengeRotation(repo).get_or_create(TODAY)

        assert challenge.problem_id == b.id

    def test_least_recently_used_skips_unpublished(self, repo, make, db):
        retired, current = make.problem(), make.problem()
        make.challenge(retired, TODAY - timedelta(days=20))
        make.challenge(current, TODAY - timedelta(days=2))
        retired.published_at = None
        db.commit()

        assert ChallengeRotation(repo).get_or_create(TODAY).problem_id == current.id

    def test_no_published_problems_is_not_found(self, repo, make, db):
        make.problem(published=False)

        with pytest.raises(NotFoundError):
            ChallengeRotation(repo).get_or_create(TODAY)
        assert challenge_count(db) == 0

    def test_uses_configured_bonus(self, repo, make):
        make.problem()
        assert ChallengeRotation(repo, xp_bonus=35).get_or_create(TODAY).xp_bonus == 35


class TestGetOrCreate:
    def test_idempotent_for_same_date(self, repo, make, db):
        make.problem()
        make.problem()
        rotation = ChallengeRotation(repo)

        first = rotation.get_or_create(TODAY)
        second = rotation.get_or_create(TODAY)

        assert first.id == second.id
        assert first.problem_id == second.problem_id
        assert challenge_count(db) == 1

    def test_existing_challenge_returned_unchanged(self, repo, make):
        scheduled = make.problem()
        make.problem()  # never featured, would win rotation
        make.challenge(scheduled, TODAY, xp_bonus=50)

        challenge = ChallengeRotation(repo).get_or_create(TODAY)

        assert challenge.problem_id == scheduled.id
        assert challenge.xp_bonus == 50

    def test_consecutive_days_rotate_problems(self, repo, make):
        a, b = make.problem(), make.problem()
        rotation = ChallengeRotation(repo)

        picked = [rotation.get_or_create(TODAY + timedelta(days=i)).problem_id for i in range(2)]

        assert picked == [a.id, b.id]


class RacingRepository(RankingRepository):
    """
    Misses the first lookup for a date, and a rival request commits its own
    challenge right after, so our insert hits the unique constraint.
    """

    def __init__(self, db, rival_problem_id):
        super().__init__(db)
        self.rival_problem_id = rival_problem_id
        self.lookups = 0

    def find_challenge_by_date(self, day: date):
        self.lookups += 1
        if self.lookups == 1:
            RankingRepository(self.db).create_daily_challenge(day, self.rival_problem_id, 20)
            return None
        return super().find_challenge_by_date(day)


class AlwaysConflictingRepository(RankingRepository):
    def find_challenge_by_date(self, day):
        return None

    def create_daily_challenge(self, day, problem_id, xp_bonus):
        raise ConflictError("taken")


class TestCreationRace:
    def test_loser_returns_the_winners_challenge(self, db, make):
        rival_pick = make.problem()
        make.problem()

        racing = RacingRepository(db, rival_problem_id=rival_pick.id)
        challenge = ChallengeRotation(racing).get_or_create(TODAY)

        assert challenge.problem_id == rival_pick.id
        assert challenge_count(db) == 1

    def test_both_racers_agree_on_problem(self, db, repo, make):
        rival_pick = make.problem()
        make.problem()

        loser = ChallengeRotation(RacingRepository(db, rival_problem_id=rival_pick.id)).get_or_create(TODAY)
        later = ChallengeRotation(repo).get_or_create(TODAY)

        assert loser.problem_id == later.problem_id == rival_pick.id

    def test_duplicate_insert_raises_conflict(self, repo, make):
        problem = make.problem()
        repo.create_daily_challenge(TODAY, problem.id, 20)

        with pytest.raises(ConflictError):
            repo.create_daily_challenge(TODAY, problem.id, 20)

    def test_gives_up_after_bounded_attempts(self, db, make):
        make.problem()

        with pytest.raises(ConflictError):
            ChallengeRotation(AlwaysConflictingRepository(db)).get_or_create(TODAY)


class TestAdminOverride:
    def test_schedule_replaces_generated_challenge(self, repo, make, db):
        generated = make.problem()
        pinned = make.problem()
        ChallengeRotation(repo).get_or_create(TODAY)

        challenge = ChallengeRotation(repo).schedule(TODAY, pinned.id, 40)

        assert challenge.problem_id == pinned.id
        assert challenge.xp_bonus == 40
        assert challenge_count(db) == 1
        assert generated.id != pinned.id

    def test_schedule_future_date(self, repo, make):
        problem = make.problem()
        day = TODAY + timedelta(days=3)

        ChallengeRotation(repo).schedule(day, problem.id)

        assert repo.find_challenge_by_date(day).xp_bonus == 20

    def test_schedule_unknown_problem(self, repo):
        with pytest.raises(NotFoundError):
            ChallengeRotation(repo).schedule(TODAY, 12345, 20)

    def test_schedule_unpublished_problem(self, repo, make):
        draft = make.problem(published=False)
        with pytest.raises(InvalidInputError):
            ChallengeRotation(repo).schedule(TODAY, draft.id, 20)

    def test_delete_by_date_and_by_id(self, repo, make, db):
        problem = make.problem()
        first = make.challenge(problem, TODAY)
        make.challenge(problem, TODAY + timedelta(days=1))
        rotation = ChallengeRotation(repo)

        assert rotation.delete(challenge_id=first.id) == TODAY
        assert rotation.delete(day=TODAY + timedelta(days=1)) == TODAY + timedelta(days=1)
        assert challenge_count(db) == 0

    def test_delete_requires_id_or_date(self, repo):
        with pytest.raises(InvalidInputError):
            ChallengeRotation(repo).delete()

    def test_delete_missing_is_not_found(self, repo):
        with pytest.raises(NotFoundError):
            ChallengeRotation(repo).delete(day=TODAY)

    def test_list_scheduled_upcoming(self, repo, make):
        problem = make.problem(title="Two Sum")
        make.problem(published=False)
        for offset in (-2, 0, 3):
            make.challenge(problem, TODAY + timedelta(days=offset))

        rotation = ChallengeRotation(repo)
        everything = rotation.list_scheduled(1, 30, today=TODAY)
        upcoming = rotation.list_scheduled(1, 30, upcoming=True, today=TODAY)

        assert everything.total == 3
        assert [c.date for c in upcoming.challenges] == [TODAY + timedelta(days=3), TODAY]
        assert upcoming.challenges[0].problem.title == "Two Sum"
        assert [p.id for p in upcoming.problems] == [problem.id]
