import json
import unittest
from unittest.mock import MagicMock, patch

from clubhub.sessions import (
    ADMINISTRATOR,
    COACH,
    PARENT,
    InMemorySessionStore,
    RedisSessionStore,
    Session,
    resolve_role,
)


class ResolveRoleTests(unittest.TestCase):
    def test_parent_beats_coach_and_admin(self):
        payloads = {PARENT: {"id": "p"}, COACH: {"id": "c"}, ADMINISTRATOR: {"id": "a"}}
        self.assertEqual(resolve_role(payloads, has_auth_session=True), PARENT)

    def test_coach_beats_admin(self):
        payloads = {COACH: {"id": "c"}, ADMINISTRATOR: {"id": "a"}}
        self.assertEqual(resolve_role(payloads, has_auth_session=True), COACH)

    def test_admin_requires_auth_session(self):
        payloads = {ADMINISTRATOR: {"id": "a"}}
        self.assertEqual(resolve_role(payloads, has_auth_session=True), ADMINISTRATOR)
        self.assertIsNone(resolve_role(payloads, has_auth_session=False))
        self.assertIsNone(resolve_role({}, has_auth_session=True))


class InMemorySessionStoreTests(unittest.TestCase):
    def test_put_get_delete(self):
        store = InMemorySessionStore()
        session = Session(role=COACH, user_id="u", profile_id="c")
        store.put(session)

        loaded = store.get(session.token)
        self.assertEqual(loaded.profile_id, "c")
        self.assertEqual(store.list_tokens(), [session.token])

        loaded.club_id = "changed"
        self.assertIsNone(store.get(session.token).club_id)

        store.delete(session.token)
        self.assertIsNone(store.get(session.token))

    def test_touch_updates_last_seen(self):
        store = InMemorySessionStore()
        session = Session(role=PARENT, user_id="u", profile_id="p", last_seen_at=0.0)
        store.put(session)
        store.touch(session.token)
        self.assertGreater(store.get(session.token).last_seen_at, 0.0)

    def test_from_dict_ignores_unknown_keys(self):
        session = Session.from_dict(
            {"role": COACH, "user_id": "u", "profile_id": "c", "token": "t", "extra": 1}
        )
        self.assertEqual(session.token, "t")


class RedisSessionStoreTests(unittest.TestCase):
    @patch("clubhub.sessions.redis.Redis.from_url")
    def test_put_and_get_use_prefixed_keys(self, mock_from_url):
        client = MagicMock()
        mock_from_url.return_value = client
        store = RedisSessionStore(url="redis://localhost:6379/0", key_prefix="test:", ttl_seconds=60)

        session = Session(role=COACH, user_id="u", profile_id="c", token="tok")
        store.put(session)
        key, raw = client.set.call_args.args
        self.assertEqual(key, "test:tok")
        self.assertEqual(client.set.call_args.kwargs["ex"], 60)

        client.get.return_value = raw
        loaded = store.get("tok")
        self.assertEqual(loaded.profile_id, "c")
        self.assertEqual(json.loads(raw)["role"], COACH)

    @patch("clubhub.sessions.redis.Redis.from_url")
    def test_list_tokens_strips_prefix(self, mock_from_url):
        client = MagicMock()
        client.scan_iter.return_value = [b"test:one", b"test:two"]
        mock_from_url.return_value = client
        store = RedisSessionStore(url="redis://localhost:6379/0", key_prefix="test:")
        self.assertEqual(store.list_tokens(), ["one", "two"])

    @patch("clubhub.sessions.redis.Redis.from_url")
    def test_unreadable_payload_is_discarded(self, mock_from_url):
        client = MagicMock()
        client.get.return_value = b"{not json"
        mock_from_url.return_value = client
        store = RedisSessionStore(url="redis://localhost:6379/0", key_prefix="test:")
        self.assertIsNone(store.get("bad"))
        client.delete.assert_called_once_with("test:bad")


if __name__ == "__main__":
    unittest.main()
