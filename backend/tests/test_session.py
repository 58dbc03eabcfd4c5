import tempfile
import threading
import time
import unittest
from pathlib import Path

from fake_transport import FakeTransport, envelope, json_response
from job_tracker.errors import NetworkError
from job_tracker.models import AuthTokens, User
from job_tracker.session import SessionManager
from job_tracker.storage import JsonFileStorage, MemoryStorage

BASE = "http://api.test"
USER = User(id=3, username="lin", email="lin@example.com")


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self):
        return self.now


def _logged_in(transport=None, clock=None, **kwargs):
    session = SessionManager(base_url=BASE, transport=transport or FakeTransport(), clock=clock or FakeClock(), **kwargs)
    session.save_auth(AuthTokens(token="access-1", refresh_token="refresh-1", user=USER))
    return session


class SessionStateTests(unittest.TestCase):
    def test_save_auth_splits_storages(self):
        storage, session_storage = MemoryStorage(), MemoryStorage()
        session = _logged_in(storage=storage, session_storage=session_storage)
        self.assertTrue(session.is_logged_in)
        self.assertEqual(session_storage.get("access_token"), "access-1")
        self.assertIsNone(storage.get("access_token"))
        self.assertEqual(storage.get("refresh_token"), "refresh-1")
        self.assertEqual(storage.get("user")["username"], "lin")
        self.assertEqual(storage.get("last_token_validation"), 1_000.0)

    def test_restore_round_trip(self):
        storage, session_storage = MemoryStorage(), MemoryStorage()
        _logged_in(storage=storage, session_storage=session_storage)

        restored = SessionManager(base_url=BASE, storage=storage, session_storage=session_storage)
        self.assertTrue(restored.restore())
        self.assertEqual(restored.access_token, "access-1")
        self.assertEqual(restored.user, USER)
        self.assertEqual(restored.last_token_validation, 1_000.0)

    def test_restore_needs_all_parts(self):
        session = SessionManager(storage=MemoryStorage({"refresh_token": "r", "user": USER.to_dict()}))
        self.assertFalse(session.restore())
        self.assertFalse(session.is_authenticated)

    def test_restore_with_corrupt_user_clears(self):
        storage = MemoryStorage({"refresh_token": "r", "user": "not-an-object"})
        session_storage = MemoryStorage({"access_token": "a"})
        session = SessionManager(storage=storage, session_storage=session_storage)
        self.assertFalse(session.restore())
        self.assertIsNone(storage.get("refresh_token"))
        self.assertIsNone(session_storage.get("access_token"))

    def test_clear_notifies_only_when_asked(self):
        calls = []
        session = _logged_in(on_session_expired=lambda: calls.append(1))
        session.clear()
        self.assertEqual(calls, [])
        self.assertFalse(session.is_authenticated)
        session.clear(notify=True)
        self.assertEqual(calls, [1])

    def test_persists_to_json_file(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "nested" / "session.json"
            store = JsonFileStorage(path)
            _logged_in(storage=store, session_storage=store)
            self.assertTrue(path.exists())

            again = SessionManager(storage=JsonFileStorage(path), session_storage=JsonFileStorage(path))
            self.assertTrue(again.restore())
            self.assertEqual(again.user.email, "lin@example.com")

            again.clear()
            self.assertEqual(JsonFileStorage(path).get("refresh_token"), None)


class RefreshTests(unittest.TestCase):
    def test_refresh_updates_tokens(self):
        transport = FakeTransport().add("POST", "/api/auth/refresh", envelope({"token": "access-2", "refresh_token": "refresh-2"}))
        session = _logged_in(transport)
        self.assertTrue(session.refresh_access_token())
        self.assertEqual(session.access_token, "access-2")
        self.assertEqual(session.refresh_token, "refresh-2")
        self.assertEqual(session.session_storage.get("access_token"), "access-2")

    def test_refresh_keeps_refresh_token_when_not_rotated(self):
        transport = FakeTransport().add("POST", "/api/auth/refresh", envelope({"token": "access-2"}))
        session = _logged_in(transport)
        self.assertTrue(session.refresh_access_token())
        self.assertEqual(session.refresh_token, "refresh-1")

    def test_refresh_failures_clear_session(self):
        failures = [
            json_response({"message": "nope"}, status=401),
            envelope({"token": ""}),
            NetworkError("network connection failed: down"),
        ]
        for failure in failures:
            with self.subTest(failure=failure):
                transport = FakeTransport().add("POST", "/api/auth/refresh", failure)
                session = _logged_in(transport)
                self.assertFalse(session.refresh_access_token())
                self.assertIsNone(session.access_token)
                self.assertIsNone(session.refresh_token)

    def test_waiters_reuse_a_token_refreshed_by_someone_else(self):
        transport = FakeTransport().add("POST", "/api/auth/refresh", envelope({"token": "access-2"}))
        session = _logged_in(transport)
        self.assertEqual(session.refresh_after_rejection("access-1"), "access-2")
        self.assertEqual(session.refresh_after_rejection("access-1"), "access-2")
        self.assertEqual(len(transport.calls), 1)

    def test_concurrent_rejections_share_one_refresh(self):
        def slow_refresh(call):
            time.sleep(0.05)
            return envelope({"token": "access-2"})

        transport = FakeTransport().add("POST", "/api/auth/refresh", slow_refresh)
        session = _logged_in(transport)
        results = []
        threads = [threading.Thread(target=lambda: results.append(session.refresh_after_rejection("access-1"))) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(results, ["access-2"] * 5)
        self.assertEqual(len(transport.calls_to("POST", "/api/auth/refresh")), 1)


class TokenValidationWindowTests(unittest.TestCase):
    def test_validation_interval_and_grace_period(self):
        clock = FakeClock()
        session = _logged_in(clock=clock)
        self.assertFalse(session.should_validate_token())
        self.assertTrue(session.is_token_recently_valid())

        clock.now += 3 * 60
        self.assertFalse(session.should_validate_token())
        self.assertFalse(session.is_token_recently_valid())

        clock.now += 3 * 60
        self.assertTrue(session.should_validate_token())

        session.mark_validated()
        self.assertFalse(session.should_validate_token())
        session.mark_validation_failed()
        self.assertTrue(session.should_validate_token())
        self.assertFalse(session.is_token_recently_valid())

    def test_no_token_never_validates(self):
        session = SessionManager(clock=FakeClock())
        self.assertFalse(session.should_validate_token())
        self.assertFalse(session.is_token_recently_valid())


if __name__ == "__main__":
    unittest.main()
