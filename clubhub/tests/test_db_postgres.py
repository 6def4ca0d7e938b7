import unittest
from datetime import date, datetime, timezone

from clubhub.db import (
    ActivityRecord,
    AttendanceRecord,
    ChildRecord,
    ClubRecord,
    CommentRecord,
    EventRecord,
    PaymentRecord,
    PlayerRecord,
    PostgresDbClient,
    PostRecord,
    TeamRecord,
)


def _utc(year, month, day, hour=0):
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


class PostgresDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    @classmethod
    def setUpClass(cls):
        cls.db = PostgresDbClient("sqlite+pysqlite:///:memory:")

    def setUp(self):
        self.club = self.db.add_club(ClubRecord(name="Lions", admin_id="admin-user"))
        self.team = self.db.add_team(
            TeamRecord(club_id=self.club.id, name="U10", access_code=self.club.id[:6].upper())
        )

    def test_club_and_team_lookup(self):
        self.assertEqual(self.db.get_club_by_admin("admin-user").name, "Lions")
        self.assertEqual(self.db.get_team_by_access_code(self.team.access_code).id, self.team.id)
        self.assertIn(self.team.id, [t.id for t in self.db.list_teams(self.club.id)])

    def test_coach_teams(self):
        self.db.assign_coach_team("coach-x", self.team.id)
        self.db.assign_coach_team("coach-x", self.team.id)
        self.assertEqual(self.db.get_coach_teams("coach-x"), [(self.team.id, "U10")])

    def test_activity_roundtrip_keeps_timezone_and_lists(self):
        activity = self.db.add_activity(
            ActivityRecord(
                club_id=self.club.id,
                title="Weekly",
                start_time=_utc(2024, 1, 1, 17),
                is_repeating=True,
                repeat_type="weekly",
                repeat_days=[1, 3],
                repeat_until=_utc(2024, 3, 1),
                lineup_players=["p1"],
            )
        )
        loaded = self.db.get_activity(activity.id)
        self.assertEqual(loaded.start_time, _utc(2024, 1, 1, 17))
        self.assertEqual(loaded.repeat_days, [1, 3])
        self.assertEqual(loaded.lineup_players, ["p1"])

        # Still listed after its start because the repeat runs later.
        listed = self.db.list_activities(club_id=self.club.id, since=_utc(2024, 2, 1))
        self.assertEqual([a.id for a in listed], [activity.id])
        self.assertEqual(self.db.list_activities(club_id=self.club.id, since=_utc(2024, 4, 1)), [])

        updated = self.db.update_activity(activity.id, {"home_score": 2})
        self.assertEqual(updated.home_score, 2)
        self.assertTrue(self.db.delete_activity(activity.id))
        self.assertFalse(self.db.delete_activity(activity.id))

    def test_attendance_upsert_per_occurrence(self):
        activity_id = self.club.id
        self.db.upsert_attendance(
            [
                AttendanceRecord(activity_id=activity_id, player_id="p1", status="present"),
                AttendanceRecord(
                    activity_id=activity_id, player_id="p1", status="absent", occurrence_date=date(2024, 1, 8)
                ),
            ]
        )
        self.db.upsert_attendance(
            [AttendanceRecord(activity_id=activity_id, player_id="p1", status="excused")]
        )
        base = self.db.list_attendance(activity_id, None)
        self.assertEqual([r.status for r in base], ["excused"])
        occurrence = self.db.list_attendance(activity_id, date(2024, 1, 8))
        self.assertEqual([r.status for r in occurrence], ["absent"])
        self.assertEqual(len(self.db.list_attendance_for_players(["p1"])), 2)

    def test_players_and_children(self):
        player = self.db.add_player(
            PlayerRecord(club_id=self.club.id, team_id=self.team.id, name="Zed", birth_date=date(2015, 1, 1))
        )
        self.db.update_player(player.id, {"is_active": False})
        self.assertEqual(self.db.list_players(team_id=self.team.id), [])
        self.assertEqual(len(self.db.list_players(team_id=self.team.id, active_only=False)), 1)

        child = self.db.add_child(ChildRecord(parent_id="par", team_id=self.team.id, full_name="Zed"))
        linked = self.db.update_child(child.id, {"player_id": player.id})
        self.assertEqual(linked.player_id, player.id)

    def test_events(self):
        activity_id = f"events-{self.club.id}"
        self.db.add_events(
            [
                EventRecord(activity_id=activity_id, event_type="goal", created_at=_utc(2024, 1, 1, 1)),
                EventRecord(activity_id=activity_id, event_type="assist", created_at=_utc(2024, 1, 1, 0)),
            ]
        )
        self.assertEqual([e.event_type for e in self.db.list_events(activity_id)], ["assist", "goal"])
        self.assertEqual(self.db.delete_events(activity_id), 2)

    def test_posts_with_teams_and_comments(self):
        post = self.db.add_post(
            PostRecord(club_id=self.club.id, content="Hi", is_general=False, team_ids=[self.team.id])
        )
        self.assertEqual(self.db.get_post(post.id).team_ids, [self.team.id])
        self.assertEqual([p.id for p in self.db.list_posts(self.club.id, is_general=False)], [post.id])
        self.assertEqual(self.db.list_posts(self.club.id, is_general=True), [])

        self.db.add_comment(CommentRecord(post_id=post.id, content="one"))
        self.db.add_comment(CommentRecord(post_id=post.id, content="hidden", is_active=False))
        self.assertEqual(self.db.count_comments(post.id), 1)

        updated = self.db.update_post(post.id, {"title": "Hello", "team_ids": []})
        self.assertEqual((updated.title, updated.team_ids), ("Hello", []))
        self.assertTrue(self.db.delete_post(post.id))
        self.assertEqual(self.db.list_comments(post.id), [])

    def test_monthly_payments(self):
        player_id = f"pay-{self.club.id}"
        self.db.upsert_monthly_payment(PaymentRecord(player_id=player_id, year=2024, month=1, status="not_paid"))
        self.db.upsert_monthly_payment(PaymentRecord(player_id=player_id, year=2024, month=1, status="paid"))
        self.db.upsert_monthly_payment(PaymentRecord(player_id=player_id, year=2023, month=12, status="paid"))
        self.assertEqual(self.db.get_monthly_payment(player_id, 2024, 1).status, "paid")
        self.assertEqual(
            [(p.year, p.month) for p in self.db.list_monthly_payments(player_id, 2023)],
            [(2024, 1), (2023, 12)],
        )


if __name__ == "__main__":
    unittest.main()
