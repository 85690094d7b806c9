"""Gamification engine: activity log, derived profile, ranking."""

from dataclasses import replace
from datetime import date, datetime

import pytest

from intranet.domains.gamification.events import (
    GAMIFICATION_ACTIVITY_RECORDED,
    GAMIFICATION_BADGE_EARNED,
    GAMIFICATION_LEVEL_REACHED,
)
from intranet.domains.gamification.models import ActivityEvent, GamificationProfile
from intranet.domains.gamification.services import (
    category_breakdown,
    count_by_category,
    ensure_profile,
    get_profile,
    list_activities,
    rank,
    rebuild_profile,
    record_activity,
    streak_from_days,
    top_users,
    total_activity_count,
)
from intranet.extensions import db
from intranet.portal_platform.outbox.models import OutboxMessage

pytestmark = pytest.mark.integration


def day(d, hour=12):
    return datetime(2025, 3, d, hour)


class TestProfiles:
    def test_new_profile_starts_empty(self, app, ana_principal):
        profile = ensure_profile(ana_principal)
        assert profile.total_points == 0
        assert profile.level == 1
        assert profile.streak == 0
        assert profile.badges == []
        assert profile.last_activity_at is None
        assert profile.display_name == "Ana Souza"
        assert profile.sector == "TI"

    def test_ensure_profile_refreshes_display_fields(self, app, ana_principal):
        ensure_profile(ana_principal)
        ensure_profile(replace(ana_principal, name="Ana S.", sector="RH", avatar_url="https://cdn/x.png"))
        profile = get_profile(ana_principal.id)
        assert (profile.display_name, profile.sector, profile.avatar_url) == ("Ana S.", "RH", "https://cdn/x.png")
        assert GamificationProfile.query.count() == 1


class TestRecordActivity:
    def test_appends_event_and_recomputes(self, app, ana_principal):
        event = record_activity(ana_principal.id, "post_creation", "Primeiro post", metadata={"post_id": 3})

        assert event.points == 15
        assert event.user_name == "Ana Souza"
        assert event.metadata_ == {"post_id": 3}
        profile = get_profile(ana_principal.id)
        assert profile.total_points == 15
        assert profile.level == 1
        assert profile.streak == 1
        assert profile.last_activity_at == event.occurred_at

    def test_total_is_sum_of_all_events(self, app, ana_principal):
        for category in ("page_visit", "comment", "reaction", "room_reservation", "equipment_request"):
            record_activity(ana_principal.id, category, category, occurred_at=day(10))
        profile = get_profile(ana_principal.id)
        assert profile.total_points == 1 + 3 + 2 + 8 + 4
        assert profile.activity_count == 5
        assert profile.total_points == sum(e.points for e in ActivityEvent.query.filter_by(user_id=ana_principal.id))

    def test_unknown_user_is_skipped(self, app):
        assert record_activity(4040, "comment", "ghost") is None
        assert ActivityEvent.query.count() == 0

    def test_unknown_category_raises(self, app, ana_principal):
        with pytest.raises(ValueError, match="invalid_category"):
            record_activity(ana_principal.id, "karaoke", "nope")

    def test_level_and_badges_are_derived(self, app, ana_principal):
        for i in range(7):
            record_activity(ana_principal.id, "post_creation", f"post {i}", occurred_at=day(10))
        profile = get_profile(ana_principal.id)
        assert profile.total_points == 105
        assert profile.level == 2
        assert profile.badges == ["Comunicador"]

        assert OutboxMessage.query.filter_by(event_type=GAMIFICATION_ACTIVITY_RECORDED).count() == 7
        assert OutboxMessage.query.filter_by(event_type=GAMIFICATION_LEVEL_REACHED).count() == 1
        earned = OutboxMessage.query.filter_by(event_type=GAMIFICATION_BADGE_EARNED).one()
        assert earned.payload == {"user_id": ana_principal.id, "badge": "Comunicador"}

    def test_streak_counts_consecutive_days(self, app, ana_principal):
        record_activity(ana_principal.id, "page_visit", "d1", occurred_at=day(1))
        record_activity(ana_principal.id, "page_visit", "d2", occurred_at=day(2))
        record_activity(ana_principal.id, "page_visit", "d2 again", occurred_at=day(2, hour=18))
        record_activity(ana_principal.id, "page_visit", "d3", occurred_at=day(3))
        assert get_profile(ana_principal.id).streak == 3

        record_activity(ana_principal.id, "page_visit", "after gap", occurred_at=day(6))
        assert get_profile(ana_principal.id).streak == 1

    def test_streak_badge_after_a_week(self, app, ana_principal):
        for d in range(1, 8):
            record_activity(ana_principal.id, "page_visit", "visit", occurred_at=day(d))
        profile = get_profile(ana_principal.id)
        assert profile.streak == 7
        assert "Consistente" in profile.badges


def test_streak_from_days_folds_in_order():
    days = [date(2025, 3, 3), date(2025, 3, 1), date(2025, 3, 2), date(2025, 3, 2)]
    assert streak_from_days(days) == 3
    assert streak_from_days([]) == 0


class TestRanking:
    def test_rank_by_points_ties_by_profile_age(self, app, ana_principal, bruno_principal, make_user):
        carla = make_user("carla@example.com", full_name="Carla")
        record_activity(bruno_principal.id, "post_creation", "post")
        record_activity(carla.id, "post_creation", "post")
        record_activity(ana_principal.id, "comment", "c")

        assert rank(bruno_principal.id) == 1
        assert rank(carla.id) == 2
        assert rank(ana_principal.id) == 3
        assert rank(9999) == 0
        assert [p.user_id for p in top_users(2)] == [bruno_principal.id, carla.id]
        assert top_users(0) == []

    def test_counts(self, app, ana_principal, bruno_principal):
        record_activity(ana_principal.id, "reaction", "r")
        record_activity(bruno_principal.id, "reaction", "r")
        record_activity(bruno_principal.id, "comment", "c")

        assert total_activity_count() == 3
        assert count_by_category("reaction") == 2
        assert count_by_category("post_creation") == 0
        breakdown = category_breakdown()
        assert breakdown["reaction"] == 2
        assert breakdown["comment"] == 1
        assert breakdown["protein_exchange"] == 0

    def test_list_activities_newest_first(self, app, ana_principal):
        record_activity(ana_principal.id, "comment", "old", occurred_at=day(1))
        record_activity(ana_principal.id, "comment", "new", occurred_at=day(2))
        assert [e.description for e in list_activities(ana_principal.id, limit=1)] == ["new"]


def test_rebuild_profile_repairs_drift(app, ana_principal):
    record_activity(ana_principal.id, "post_creation", "post", occurred_at=day(1))
    profile = get_profile(ana_principal.id)
    profile.total_points = 9999
    profile.level = 10
    db.session.commit()

    rebuilt = rebuild_profile(ana_principal.id)
    assert rebuilt.total_points == 15
    assert rebuilt.level == 1
    assert rebuild_profile(31337) is None
