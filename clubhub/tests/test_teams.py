import unittest

from clubhub import teams
from clubhub.db import ClubRecord, InMemoryDbClient, TeamRecord
from clubhub.errors import NotFoundError, PermissionDenied, ValidationFailed


class TeamServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.club = self.db.add_club(ClubRecord(name="Lions"))

    def test_access_codes_are_unique_uppercase(self):
        taken = {"AAAAAA"}
        code = teams.generate_access_code(lambda c: c in taken)
        self.assertEqual(len(code), teams.ACCESS_CODE_LENGTH)
        self.assertEqual(code, code.upper())
        self.assertNotIn(code, taken)
        with self.assertRaises(RuntimeError):
            teams.generate_access_code(lambda c: True)

    def test_create_and_list_teams(self):
        team = teams.create_team(self.db, self.club.id, " U10 ", "2014")
        self.assertEqual(team.name, "U10")
        self.assertEqual(self.db.get_team_by_access_code(team.access_code).id, team.id)
        self.db.add_team(
            TeamRecord(club_id=self.club.id, name="Old", access_code="OLD000", is_active=False)
        )
        self.assertEqual([t.name for t in teams.list_teams(self.db, self.club.id)], ["U10"])
        with self.assertRaises(ValidationFailed):
            teams.create_team(self.db, self.club.id, "  ")

    def test_assign_coach_checks_club(self):
        team = teams.create_team(self.db, self.club.id, "U10")
        coach = teams.create_coach(self.db, self.club.id, "Cy", "+1555")
        teams.assign_coach(self.db, self.club.id, coach.id, team.id)
        self.assertEqual(self.db.get_coach_teams(coach.id), [(team.id, "U10")])

        with self.assertRaises(NotFoundError):
            teams.assign_coach(self.db, "other-club", coach.id, team.id)

    def test_players_by_team_and_deactivate(self):
        team = teams.create_team(self.db, self.club.id, "U10")
        zoe = teams.create_player(self.db, self.club.id, team.id, "Zoe")
        teams.create_player(self.db, self.club.id, team.id, "Adam")
        self.assertEqual([p.name for p in teams.get_players_by_team(self.db, team.id)], ["Adam", "Zoe"])

        with self.assertRaises(PermissionDenied):
            teams.deactivate_player(self.db, "other-club", zoe.id)
        teams.deactivate_player(self.db, self.club.id, zoe.id)
        self.assertEqual([p.name for p in teams.get_players_by_team(self.db, team.id)], ["Adam"])
        with self.assertRaises(NotFoundError):
            teams.create_player(self.db, self.club.id, "missing-team", "Kid")


if __name__ == "__main__":
    unittest.main()
