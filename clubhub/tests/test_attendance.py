import unittest
from datetime import date, datetime, timezone

from clubhub import attendance
from clubhub.db import (
    ActivityRecord,
    AttendanceRecord,
    ClubRecord,
    InMemoryDbClient,
    PlayerRecord,
    TeamRecord,
)
from clubhub.errors import ValidationFailed
from clubhub.occurrences import compose_occurrence_id


def _utc(year, month, day, hour=0):
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


class AttendanceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        club = self.db.add_club(ClubRecord(name="Lions"))
        self.team = self.db.add_team(TeamRecord(club_id=club.id, name="U10", access_code="ABC123"))
        self.alice = self.db.add_player(PlayerRecord(club_id=club.id, team_id=self.team.id, name="Alice"))
        self.bob = self.db.add_player(PlayerRecord(club_id=club.id, team_id=self.team.id, name="Bob"))
        self.db.add_player(
            PlayerRecord(club_id=club.id, team_id=self.team.id, name="Gone", is_active=False)
        )
        self.practice = self.db.add_activity(
            ActivityRecord(
                club_id=club.id,
                team_id=self.team.id,
                title="Practice",
                start_time=_utc(2024, 1, 1, 17),
                is_repeating=True,
                repeat_type="weekly",
                repeat_days=[1],
                repeat_until=_utc(2024, 3, 1),
            )
        )
        self.game = self.db.add_activity(
            ActivityRecord(
                club_id=club.id,
                team_id=self.team.id,
                title="Cup game",
                type="game",
                start_time=_utc(2024, 1, 20, 10),
            )
        )

    def test_occurrences_do_not_mix(self):
        week_two = compose_occurrence_id(self.practice.id, date(2024, 1, 8))
        week_three = compose_occurrence_id(self.practice.id, date(2024, 1, 15))
        attendance.save_attendance(self.db, week_two, {self.alice.id: "present"}, "coach")
        attendance.save_attendance(self.db, week_three, {self.alice.id: "absent"}, "coach")

        records = attendance.fetch_attendance(self.db, week_two)
        self.assertEqual([(r.player_id, r.status) for r in records], [(self.alice.id, "present")])
        self.assertEqual(records[0].occurrence_date, date(2024, 1, 8))
        self.assertEqual(attendance.fetch_attendance(self.db, week_three)[0].status, "absent")
        self.assertEqual(attendance.fetch_attendance(self.db, self.practice.id), [])

    def test_save_upserts_and_skips_unset(self):
        attendance.save_attendance(self.db, self.game.id, {self.alice.id: "present"})
        saved = attendance.save_attendance(
            self.db, self.game.id, {self.alice.id: "excused", self.bob.id: None}
        )
        self.assertEqual(len(saved), 1)
        records = attendance.fetch_attendance(self.db, self.game.id)
        self.assertEqual([(r.player_id, r.status) for r in records], [(self.alice.id, "excused")])

    def test_unknown_status_is_rejected(self):
        with self.assertRaises(ValidationFailed):
            attendance.save_attendance(self.db, self.game.id, {self.alice.id: "late"})

    def test_form_lists_active_players_without_status(self):
        entries = attendance.initialize_attendance_form(
            self.db, self.practice.id, self.team.id, date(2024, 1, 8)
        )
        self.assertEqual([e.player_name for e in entries], ["Alice", "Bob"])
        self.assertTrue(all(e.status is None for e in entries))
        self.assertEqual(entries[0].activity_id, f"{self.practice.id}-20240108")

    def test_form_keeps_occurrence_from_composite_id(self):
        composite = compose_occurrence_id(self.practice.id, date(2024, 1, 15))
        entries = attendance.initialize_attendance_form(self.db, composite, self.team.id)
        self.assertEqual({e.activity_id for e in entries}, {composite})
        plain = attendance.initialize_attendance_form(self.db, self.practice.id, self.team.id)
        self.assertEqual({e.activity_id for e in plain}, {self.practice.id})

    def test_player_stats_use_occurrence_date_and_type_filter(self):
        attendance.save_attendance(
            self.db, compose_occurrence_id(self.practice.id, date(2024, 1, 8)), {self.alice.id: "present"}
        )
        attendance.save_attendance(self.db, self.game.id, {self.alice.id: "absent"})

        stats = attendance.fetch_player_attendance_stats(self.db, self.alice.id)
        self.assertEqual(
            [(s.activity_title, s.occurrence_date) for s in stats],
            [("Practice", date(2024, 1, 8)), ("Cup game", date(2024, 1, 20))],
        )
        games = attendance.fetch_player_attendance_stats(self.db, self.alice.id, activity_type="game")
        self.assertEqual([s.activity_type for s in games], ["game"])
        everything = attendance.fetch_player_attendance_stats(self.db, self.alice.id, activity_type="all")
        self.assertEqual(len(everything), 2)
        january_first_half = attendance.fetch_player_attendance_stats(
            self.db, self.alice.id, start=date(2024, 1, 1), end=date(2024, 1, 15)
        )
        self.assertEqual(len(january_first_half), 1)

    def test_team_stats(self):
        attendance.save_attendance(
            self.db, self.game.id, {self.alice.id: "present", self.bob.id: "absent"}
        )
        stats = attendance.fetch_team_attendance_stats(self.db, self.team.id)
        self.assertEqual(sorted(s.player_id for s in stats), sorted([self.alice.id, self.bob.id]))
        self.assertEqual(attendance.fetch_team_attendance_stats(self.db, "no-team"), [])

    def test_summarize(self):
        records = [
            AttendanceRecord(activity_id="a", player_id="1", status="present", occurrence_date=date(2024, 1, 2)),
            AttendanceRecord(activity_id="a", player_id="2", status="absent", occurrence_date=date(2024, 1, 2)),
            AttendanceRecord(activity_id="a", player_id="3", status="excused", occurrence_date=date(2024, 1, 2)),
            AttendanceRecord(activity_id="a", player_id="1", status="present", occurrence_date=date(2024, 1, 1)),
        ]
        summary = attendance.summarize_attendance(records)
        self.assertEqual((summary.total, summary.present, summary.absent, summary.excused), (4, 2, 1, 1))
        self.assertEqual(summary.attendance_rate, 50.0)
        self.assertEqual(summary.trend, [(date(2024, 1, 1), 100.0), (date(2024, 1, 2), 33.3)])

        empty = attendance.summarize_attendance([])
        self.assertEqual(empty.attendance_rate, 0.0)
        self.assertEqual(empty.trend, [])


if __name__ == "__main__":
    unittest.main()
