import unittest
from datetime import date, datetime, timezone

from clubhub import activities
from clubhub.db import ClubRecord, InMemoryDbClient, TeamRecord
from clubhub.errors import InvalidOccurrenceId, NotFoundError, ValidationFailed
from clubhub.occurrences import compose_occurrence_id


def _utc(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


class ActivityServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.club = self.db.add_club(ClubRecord(name="Lions"))
        self.team = self.db.add_team(
            TeamRecord(club_id=self.club.id, name="U10", access_code="ABC123")
        )

    def _create(self, **data):
        data.setdefault("title", "Practice")
        data.setdefault("start_time", _utc(2024, 1, 3, 17))
        data.setdefault("team_id", self.team.id)
        return activities.create_activity(self.db, self.club.id, "coach-1", data)

    def test_create_stamps_club_and_author(self):
        activity = self._create(type="game", location="Field 2")
        self.assertEqual(activity.club_id, self.club.id)
        self.assertEqual(activity.created_by, "coach-1")
        self.assertEqual(self.db.get_activity(activity.id).location, "Field 2")

    def test_weekly_without_days_uses_start_weekday(self):
        # 2024-01-03 is a Wednesday
        activity = self._create(is_repeating=True, repeat_type="weekly", repeat_until=_utc(2024, 2, 1))
        self.assertEqual(activity.repeat_days, [3])

    def test_repeating_requires_until_and_type(self):
        with self.assertRaises(ValidationFailed):
            self._create(is_repeating=True, repeat_type="weekly")
        with self.assertRaises(ValidationFailed):
            self._create(is_repeating=True, repeat_until=_utc(2024, 2, 1))
        with self.assertRaises(ValidationFailed):
            self._create(type="party")

    def test_team_must_belong_to_club(self):
        other = self.db.add_team(TeamRecord(club_id="other", name="X", access_code="XYZ789"))
        with self.assertRaises(NotFoundError):
            self._create(team_id=other.id)

    def test_naive_times_are_treated_as_utc(self):
        activity = self._create(start_time=datetime(2024, 1, 3, 17))
        self.assertEqual(activity.start_time, _utc(2024, 1, 3, 17))

    def test_date_range_merges_stored_and_virtual(self):
        weekly = self._create(
            title="Weekly",
            is_repeating=True,
            repeat_type="weekly",
            repeat_until=_utc(2024, 1, 31),
        )
        single = self._create(title="Friendly", type="game", start_time=_utc(2024, 1, 12, 10))
        self._create(title="Old", start_time=_utc(2023, 6, 1, 10))

        items = activities.get_activities_by_date_range(
            self.db, self.club.id, _utc(2024, 1, 1), _utc(2024, 1, 17)
        )
        self.assertEqual(
            [(item.title, item.start_time.date()) for item in items],
            [
                ("Weekly", date(2024, 1, 3)),
                ("Weekly", date(2024, 1, 10)),
                ("Friendly", date(2024, 1, 12)),
                ("Weekly", date(2024, 1, 17)),
            ],
        )
        self.assertEqual(items[0].id, weekly.id)
        self.assertEqual(items[1].id, compose_occurrence_id(weekly.id, date(2024, 1, 10)))
        self.assertEqual(items[2].id, single.id)
        self.assertTrue(all(item.team_name == "U10" for item in items))

    def test_date_range_filters_by_team(self):
        other_team = self.db.add_team(
            TeamRecord(club_id=self.club.id, name="U12", access_code="DEF456")
        )
        self._create(title="U10 practice")
        self._create(title="U12 practice", team_id=other_team.id)
        items = activities.get_activities_by_date_range(
            self.db, self.club.id, _utc(2024, 1, 1), _utc(2024, 1, 31), team_id=other_team.id
        )
        self.assertEqual([item.title for item in items], ["U12 practice"])

    def test_get_activity_by_composite_id(self):
        weekly = self._create(
            is_repeating=True,
            repeat_type="weekly",
            repeat_until=_utc(2024, 1, 31),
            end_time=_utc(2024, 1, 3, 18),
        )
        composite = compose_occurrence_id(weekly.id, date(2024, 1, 24))
        instance = activities.get_activity_by_id(self.db, self.club.id, composite)
        self.assertEqual(instance.id, composite)
        self.assertEqual(instance.start_time, _utc(2024, 1, 24, 17))
        self.assertEqual(instance.end_time, _utc(2024, 1, 24, 18))
        self.assertEqual(instance.parent_activity_id, weekly.id)
        self.assertEqual(instance.team_name, "U10")

        plain = activities.get_activity_by_id(self.db, self.club.id, weekly.id)
        self.assertFalse(plain.is_recurring_instance)

    def test_get_activity_errors(self):
        missing = "0b5cf3a4-7d1e-4c55-9a7e-2f3b9d6c1e20"
        with self.assertRaises(NotFoundError):
            activities.get_activity_by_id(self.db, self.club.id, f"{missing}-20240101")
        with self.assertRaises(NotFoundError):
            activities.get_activity_by_id(self.db, self.club.id, missing)
        with self.assertRaises(InvalidOccurrenceId):
            activities.get_activity_by_id(self.db, self.club.id, "garbage")

        activity = self._create()
        with self.assertRaises(NotFoundError):
            activities.get_activity_by_id(self.db, "another-club", activity.id)

    def test_update_game_score_strips_occurrence_suffix(self):
        game = self._create(
            type="game",
            is_repeating=True,
            repeat_type="daily",
            repeat_until=_utc(2024, 1, 10),
        )
        composite = compose_occurrence_id(game.id, date(2024, 1, 5))
        updated = activities.update_game_score(self.db, self.club.id, composite, 3, 1)
        self.assertEqual(updated.id, game.id)
        self.assertEqual((updated.home_score, updated.away_score), (3, 1))
        with self.assertRaises(ValidationFailed):
            activities.update_game_score(self.db, self.club.id, game.id, -1, 0)

    def test_update_and_delete(self):
        activity = self._create()
        updated = activities.update_activity(
            self.db, self.club.id, activity.id, {"title": "Renamed", "location": "Gym"}
        )
        self.assertEqual(updated.title, "Renamed")
        self.assertEqual(updated.location, "Gym")

        with self.assertRaises(ValidationFailed):
            activities.update_activity(self.db, self.club.id, activity.id, {"club_id": "x"})

        activities.delete_activity(self.db, self.club.id, activity.id)
        self.assertIsNone(self.db.get_activity(activity.id))
        with self.assertRaises(NotFoundError):
            activities.delete_activity(self.db, self.club.id, activity.id)

    def test_single_occurrence_cannot_be_edited_or_deleted(self):
        series = self._create(
            is_repeating=True,
            repeat_type="daily",
            repeat_until=_utc(2024, 1, 10),
        )
        composite = compose_occurrence_id(series.id, date(2024, 1, 5))
        with self.assertRaises(ValidationFailed):
            activities.update_activity(self.db, self.club.id, composite, {"title": "Moved"})
        with self.assertRaises(ValidationFailed):
            activities.delete_activity(self.db, self.club.id, composite)
        self.assertEqual(self.db.get_activity(series.id).title, "Practice")

    def test_update_rejects_clearing_required_fields(self):
        activity = self._create(end_time=_utc(2024, 1, 3, 18))
        for key in ("start_time", "title", "location", "lineup_players", "is_repeating"):
            with self.subTest(key=key):
                with self.assertRaises(ValidationFailed):
                    activities.update_activity(self.db, self.club.id, activity.id, {key: None})
        updated = activities.update_activity(
            self.db, self.club.id, activity.id, {"end_time": None, "additional_info": None}
        )
        self.assertIsNone(updated.end_time)
        self.assertEqual(updated.start_time, _utc(2024, 1, 3, 17))

    def test_listing_is_ordered_by_start(self):
        self._create(title="Later", start_time=_utc(2024, 3, 1))
        self._create(title="Sooner", start_time=_utc(2024, 2, 1))
        self.assertEqual(
            [a.title for a in activities.get_activities(self.db, self.club.id)],
            ["Sooner", "Later"],
        )
        self.assertEqual(
            len(activities.get_team_activities(self.db, self.club.id, self.team.id)), 2
        )


if __name__ == "__main__":
    unittest.main()
