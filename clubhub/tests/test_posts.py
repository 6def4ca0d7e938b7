import unittest
from datetime import datetime, timedelta, timezone

from clubhub import posts
from clubhub.db import ChildRecord, ClubRecord, InMemoryDbClient, TeamRecord
from clubhub.errors import NotFoundError, PermissionDenied, ValidationFailed
from clubhub.sessions import ADMINISTRATOR, COACH, PARENT, Session
from clubhub.storage import InMemoryStorageClient


class PostFeedTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.club = self.db.add_club(ClubRecord(name="Lions"))
        self.u10 = self.db.add_team(TeamRecord(club_id=self.club.id, name="U10", access_code="AAA111"))
        self.u12 = self.db.add_team(TeamRecord(club_id=self.club.id, name="U12", access_code="BBB222"))
        self.db.assign_coach_team("coach-1", self.u10.id)
        self.db.add_child(ChildRecord(parent_id="parent-1", team_id=self.u12.id, full_name="Kid"))

        self.admin = Session(role=ADMINISTRATOR, user_id="a", profile_id="admin-1", club_id=self.club.id, name="Ann")
        self.coach = Session(role=COACH, user_id="c", profile_id="coach-1", club_id=self.club.id, name="Cy")
        self.other_coach = Session(role=COACH, user_id="d", profile_id="coach-2", club_id=self.club.id)
        self.parent = Session(role=PARENT, user_id="parent-1", profile_id="parent-1", club_id=self.club.id)

        self.general = self._post(self.admin, "Welcome back", minutes=1)
        self.u10_news = self._post(self.admin, "U10 news", is_general=False, team_ids=[self.u10.id], minutes=2)
        self.u12_news = self._post(self.admin, "U12 news", is_general=False, team_ids=[self.u12.id], minutes=3)
        self.coach_note = self._post(self.coach, "Coach note", is_general=False, team_ids=[self.u10.id], minutes=4)
        self.db.add_club(ClubRecord(name="Other"))

    def _post(self, session, content, minutes, **kwargs):
        post = posts.create_post(self.db, session, self.club.id, content=content, **kwargs)
        stamp = datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes)
        return self.db.update_post(post.id, {"created_at": stamp})

    def _contents(self, session, team_ids=None):
        return [view.post.content for view in posts.fetch_posts(self.db, session, team_ids)]

    def test_admin_sees_everything_newest_first(self):
        self.assertEqual(
            self._contents(self.admin),
            ["Coach note", "U12 news", "U10 news", "Welcome back"],
        )
        self.assertEqual(
            self._contents(self.admin, [self.u12.id]), ["U12 news", "Welcome back"]
        )

    def test_coach_sees_admin_posts_for_own_teams_and_own_posts(self):
        self.assertEqual(self._contents(self.coach), ["Coach note", "U10 news", "Welcome back"])
        self.assertEqual(self._contents(self.other_coach), ["Welcome back"])

    def test_parent_sees_children_team_posts(self):
        self.assertEqual(self._contents(self.parent), ["U12 news", "Welcome back"])

    def test_no_club_means_no_posts(self):
        stranger = Session(role=PARENT, user_id="x", profile_id="x")
        self.assertEqual(posts.fetch_posts(self.db, stranger), [])

    def test_comment_counts(self):
        posts.add_comment(self.db, self.parent, self.club.id, self.general.id, "Great!")
        posts.add_comment(self.db, self.coach, self.club.id, self.general.id, "Thanks")
        views = {v.post.id: v for v in posts.fetch_posts(self.db, self.admin)}
        self.assertEqual(views[self.general.id].comment_count, 2)
        self.assertEqual(views[self.u10_news.id].comment_count, 0)
        comments = posts.list_comments(self.db, self.general.id)
        self.assertEqual([c.content for c in comments], ["Great!", "Thanks"])
        self.assertEqual(comments[0].author_role, PARENT)

    def test_team_post_needs_teams(self):
        with self.assertRaises(ValidationFailed):
            posts.create_post(self.db, self.admin, self.club.id, content="x", is_general=False)
        with self.assertRaises(NotFoundError):
            posts.create_post(
                self.db, self.admin, self.club.id, content="x", is_general=False, team_ids=["nope"]
            )

    def test_author_metadata_from_session(self):
        self.assertEqual(self.coach_note.author_id, "coach-1")
        self.assertEqual(self.coach_note.author_name, "Cy")
        self.assertEqual(self.coach_note.author_role, COACH)
        self.assertEqual(self.general.team_ids, [])

    def test_only_author_or_admin_can_edit(self):
        with self.assertRaises(PermissionDenied):
            posts.update_post(self.db, self.other_coach, self.club.id, self.coach_note.id, content="hack")

        updated = posts.update_post(self.db, self.coach, self.club.id, self.coach_note.id, title="Note")
        self.assertEqual(updated.title, "Note")
        self.assertGreater(updated.updated_at, self.coach_note.updated_at)

        posts.delete_post(self.db, self.admin, self.club.id, self.coach_note.id)
        self.assertIsNone(self.db.get_post(self.coach_note.id))
        with self.assertRaises(NotFoundError):
            posts.delete_post(self.db, self.admin, self.club.id, self.coach_note.id)

    def test_sign_media_upload(self):
        storage = InMemoryStorageClient()
        path, url = posts.sign_media_upload(storage, self.club.id, "../photos/team.jpg", "image/jpeg")
        self.assertTrue(path.startswith(f"clubs/{self.club.id}/posts/"))
        self.assertTrue(path.endswith("/team.jpg"))
        self.assertIn(path, url)
        self.assertEqual(storage.signed, [("put", path)])
        with self.assertRaises(ValidationFailed):
            posts.sign_media_upload(storage, self.club.id, "  ")


if __name__ == "__main__":
    unittest.main()
