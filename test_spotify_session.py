import json
import os
import tempfile
import unittest

import httpx

# Ensure local imports work when running this file directly.
THIS_DIR = os.path.dirname(os.path.abspath(__file__))
if THIS_DIR not in os.sys.path:
    os.sys.path.insert(0, THIS_DIR)

from spotify_session.errors import (
    ConfigurationError,
    MissingRefreshToken,
    RefreshRequestFailed,
    RefreshResponseMalformed,
    SessionExpiredError,
)
from spotify_session.session import ConsoleNavigator, Session, SessionState, parse_redirect_params
from spotify_session.storage import (
    ACCESS_TOKEN_KEY,
    EXPIRE_TIME_KEY,
    REFRESH_TOKEN_KEY,
    TIMESTAMP_KEY,
    TOKEN_KEYS,
    FileStorage,
    MemoryStorage,
    TokenStore,
)

CONFIG = {
    "app_origin": "http://localhost:5173",
    "refresh_base_url": "http://localhost:8888",
    "request_timeout": 5,
}

NOW_MS = 1_700_000_000_000


class FakeClock:
    def __init__(self, now_ms=NOW_MS):
        self.now_ms = now_ms

    def __call__(self):
        return self.now_ms


def stored_session(access="at", refresh="rt", expire="3600", issued=NOW_MS):
    return MemoryStorage(
        {
            ACCESS_TOKEN_KEY: access,
            REFRESH_TOKEN_KEY: refresh,
            EXPIRE_TIME_KEY: expire,
            TIMESTAMP_KEY: issued,
        }
    )


class ReadOnlyStorage(MemoryStorage):
    """Storage whose writes fail like a read-only disk; removals still work."""

    def set_item(self, key, value):
        raise OSError("read-only file system")


class RecordingTransport:
    """Builds an httpx.MockTransport and records every request it sees."""

    def __init__(self, handler):
        self.requests = []
        self._handler = handler
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request):
        self.requests.append(request)
        return self._handler(request)


class TestRedirectParams(unittest.TestCase):
    def test_parse_full_url(self):
        parsed = parse_redirect_params("http://localhost:5173/?access_token=T&refresh_token=R&expires_in=3600")
        self.assertEqual(parsed, {"access_token": "T", "refresh_token": "R", "expires_in": "3600"})

    def test_parse_bare_query_and_error(self):
        self.assertEqual(parse_redirect_params("?error=access_denied"), {"error": "access_denied"})

    def test_parse_empty(self):
        self.assertEqual(parse_redirect_params(None), {})
        self.assertEqual(parse_redirect_params("http://localhost:5173/"), {})


class TestTokenExpiry(unittest.TestCase):
    def test_not_expired_without_timestamp(self):
        storage = MemoryStorage({ACCESS_TOKEN_KEY: "at", EXPIRE_TIME_KEY: "0"})
        session = Session(CONFIG, storage, clock=FakeClock(NOW_MS + 10**9))
        self.assertFalse(session.has_token_expired())

    def test_not_expired_with_empty_storage(self):
        session = Session(CONFIG, MemoryStorage(), clock=FakeClock())
        self.assertFalse(session.has_token_expired())

    def test_expiry_boundary(self):
        clock = FakeClock(NOW_MS + 3600 * 1000)
        session = Session(CONFIG, stored_session(issued=NOW_MS), clock=clock)
        # Exactly the lifetime elapsed: not yet expired (strictly greater is required).
        self.assertFalse(session.has_token_expired())

        clock.now_ms += 1
        self.assertTrue(session.has_token_expired())

    def test_state_transitions_with_time(self):
        clock = FakeClock()
        session = Session(CONFIG, stored_session(), clock=clock)
        self.assertEqual(session.state, SessionState.VALID)
        clock.now_ms += 3601 * 1000
        self.assertEqual(session.state, SessionState.EXPIRED)


class TestGetAccessToken(unittest.IsolatedAsyncioTestCase):
    async def test_first_login_from_url_persists_all_fields(self):
        storage = MemoryStorage()
        session = Session(
            CONFIG,
            storage,
            location="http://localhost:5173/?access_token=T&refresh_token=R&expires_in=3600",
            clock=FakeClock(),
        )

        self.assertEqual(session.state, SessionState.NO_TOKEN)
        token = await session.get_access_token()

        self.assertEqual(token, "T")
        self.assertEqual(storage.get_item(ACCESS_TOKEN_KEY), "T")
        self.assertEqual(storage.get_item(REFRESH_TOKEN_KEY), "R")
        self.assertEqual(storage.get_item(EXPIRE_TIME_KEY), "3600")
        self.assertEqual(storage.get_item(TIMESTAMP_KEY), str(NOW_MS))
        self.assertEqual(session.state, SessionState.VALID)
        self.assertIsNone(session.location)

    async def test_stored_token_wins_over_url(self):
        session = Session(
            CONFIG,
            stored_session(access="stored"),
            location="?access_token=fromurl&refresh_token=R&expires_in=3600",
            clock=FakeClock(),
        )
        self.assertEqual(await session.get_access_token(), "stored")

    async def test_returns_none_when_nothing_available(self):
        session = Session(CONFIG, MemoryStorage(), clock=FakeClock())
        self.assertIsNone(await session.get_access_token())

    async def test_expired_token_is_refreshed(self):
        rec = RecordingTransport(lambda request: httpx.Response(200, json={"access_token": "fresh"}))
        clock = FakeClock(NOW_MS + 4000 * 1000)
        storage = stored_session(access="stale", refresh="rt")
        session = Session(CONFIG, storage, clock=clock, transport=rec.transport)

        token = await session.get_access_token()

        self.assertEqual(token, "fresh")
        self.assertEqual(len(rec.requests), 1)
        request = rec.requests[0]
        self.assertEqual(request.url.path, "/refresh_token")
        self.assertEqual(request.url.params["refresh_token"], "rt")
        self.assertEqual(request.headers["Authorization"], "Bearer stale")

        # Only the access token and timestamp change.
        self.assertEqual(storage.get_item(ACCESS_TOKEN_KEY), "fresh")
        self.assertEqual(storage.get_item(TIMESTAMP_KEY), str(clock.now_ms))
        self.assertEqual(storage.get_item(REFRESH_TOKEN_KEY), "rt")
        self.assertEqual(storage.get_item(EXPIRE_TIME_KEY), "3600")
        self.assertEqual(session.state, SessionState.VALID)

    async def test_undefined_access_token_triggers_refresh(self):
        rec = RecordingTransport(lambda request: httpx.Response(200, json={"access_token": "fresh"}))
        session = Session(CONFIG, stored_session(access="undefined"), clock=FakeClock(), transport=rec.transport)
        self.assertEqual(await session.get_access_token(), "fresh")
        self.assertEqual(len(rec.requests), 1)

    async def test_url_error_without_refresh_token_logs_out(self):
        navigator = ConsoleNavigator()
        session = Session(
            CONFIG,
            MemoryStorage(),
            location="?error=access_denied",
            navigator=navigator,
            clock=FakeClock(),
        )

        with self.assertRaises(MissingRefreshToken):
            await session.get_access_token()

        self.assertEqual(navigator.last_redirect, "http://localhost:5173")
        self.assertEqual(session.state, SessionState.INVALID)


class TestRefreshFailures(unittest.IsolatedAsyncioTestCase):
    def _session(self, handler, storage=None):
        self.navigator = ConsoleNavigator()
        self.storage = storage if storage is not None else stored_session()
        self.rec = RecordingTransport(handler)
        return Session(CONFIG, self.storage, navigator=self.navigator, clock=FakeClock(), transport=self.rec.transport)

    def assertLoggedOut(self):
        for key in TOKEN_KEYS:
            self.assertIsNone(self.storage.get_item(key))
        self.assertEqual(self.navigator.last_redirect, "http://localhost:5173")

    async def test_missing_refresh_token(self):
        storage = MemoryStorage({ACCESS_TOKEN_KEY: "at", TIMESTAMP_KEY: NOW_MS, EXPIRE_TIME_KEY: "3600"})
        session = self._session(lambda r: httpx.Response(200, json={"access_token": "x"}), storage)
        with self.assertRaises(MissingRefreshToken):
            await session.refresh_token()
        self.assertEqual(self.rec.requests, [])
        self.assertLoggedOut()

    async def test_http_error_status(self):
        session = self._session(lambda r: httpx.Response(500, text="boom"))
        with self.assertRaises(RefreshRequestFailed) as ctx:
            await session.refresh_token()
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertLoggedOut()

    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        session = self._session(handler)
        with self.assertRaises(RefreshRequestFailed):
            await session.refresh_token()
        self.assertLoggedOut()

    async def test_response_without_access_token(self):
        session = self._session(lambda r: httpx.Response(200, json={"error": "invalid_grant"}))
        with self.assertRaises(RefreshResponseMalformed):
            await session.refresh_token()
        self.assertLoggedOut()
        self.assertEqual(session.state, SessionState.INVALID)

    async def test_response_not_json(self):
        session = self._session(lambda r: httpx.Response(200, text="<html>oops</html>"))
        with self.assertRaises(RefreshResponseMalformed):
            await session.refresh_token()
        self.assertLoggedOut()

    async def test_unexpected_transport_error_logs_out(self):
        def handler(request):
            raise RuntimeError("unexpected")

        session = self._session(handler)
        with self.assertRaises(SessionExpiredError) as ctx:
            await session.refresh_token()
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)
        self.assertLoggedOut()
        self.assertEqual(session.state, SessionState.INVALID)

    async def test_storage_write_failure_logs_out(self):
        storage = ReadOnlyStorage({ACCESS_TOKEN_KEY: "at", REFRESH_TOKEN_KEY: "rt", EXPIRE_TIME_KEY: "3600", TIMESTAMP_KEY: NOW_MS})
        session = self._session(lambda r: httpx.Response(200, json={"access_token": "fresh"}), storage)
        with self.assertRaises(SessionExpiredError) as ctx:
            await session.refresh_token()
        self.assertIsInstance(ctx.exception.__cause__, OSError)
        self.assertLoggedOut()

    async def test_missing_refresh_base_url_is_configuration_error(self):
        navigator = ConsoleNavigator()
        storage = stored_session()
        session = Session({"app_origin": "http://localhost:5173"}, storage, navigator=navigator, clock=FakeClock())
        with self.assertRaises(ConfigurationError):
            await session.refresh_token()
        # Configuration problems do not end the session.
        self.assertIsNone(navigator.last_redirect)
        self.assertEqual(storage.get_item(ACCESS_TOKEN_KEY), "at")


class TestRefreshState(unittest.IsolatedAsyncioTestCase):
    def _session(self, response):
        seen = []
        holder = {}

        def handler(request):
            seen.append(holder["session"].state)
            return response

        session = Session(
            CONFIG,
            stored_session(),
            navigator=ConsoleNavigator(),
            clock=FakeClock(),
            transport=httpx.MockTransport(handler),
        )
        holder["session"] = session
        return session, seen

    async def test_state_during_and_after_successful_refresh(self):
        session, seen = self._session(httpx.Response(200, json={"access_token": "fresh"}))
        await session.refresh_token()
        self.assertEqual(seen, [SessionState.REFRESH_IN_FLIGHT])
        self.assertEqual(session.state, SessionState.VALID)

    async def test_state_during_and_after_failed_refresh(self):
        session, seen = self._session(httpx.Response(401, json={"error": "invalid_grant"}))
        with self.assertRaises(RefreshRequestFailed):
            await session.refresh_token()
        self.assertEqual(seen, [SessionState.REFRESH_IN_FLIGHT])
        self.assertEqual(session.state, SessionState.INVALID)


class TestLogout(unittest.TestCase):
    def test_logout_clears_keys_and_redirects(self):
        navigator = ConsoleNavigator()
        storage = stored_session()
        storage.set_item("unrelated", "keep")
        session = Session(CONFIG, storage, navigator=navigator)

        session.logout()

        for key in TOKEN_KEYS:
            self.assertIsNone(storage.get_item(key))
        self.assertEqual(storage.get_item("unrelated"), "keep")
        self.assertEqual(navigator.last_redirect, "http://localhost:5173")
        self.assertEqual(session.state, SessionState.NO_TOKEN)

    def test_logout_with_empty_storage_still_redirects(self):
        navigator = ConsoleNavigator()
        Session(CONFIG, MemoryStorage(), navigator=navigator).logout()
        self.assertEqual(navigator.last_redirect, "http://localhost:5173")


class TestFileStorage(unittest.TestCase):
    def test_token_store_roundtrip_and_clear(self):
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "data", "session.json")
            store = TokenStore(FileStorage(path))
            store.write_login(access_token="at", refresh_token="rt", expires_in="3600", issued_at_ms=NOW_MS)

            record = TokenStore(FileStorage(path)).read()
            self.assertEqual(record.access_token, "at")
            self.assertEqual(record.refresh_token, "rt")
            self.assertEqual(record.expire_time_seconds, 3600.0)
            self.assertEqual(record.issued_at_ms, float(NOW_MS))

            store.clear()
            with open(path, "r", encoding="utf-8") as f:
                self.assertEqual(json.load(f), {})

    def test_unreadable_file_reads_as_empty(self):
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "session.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write("not json")
            self.assertIsNone(FileStorage(path).get_item(ACCESS_TOKEN_KEY))


if __name__ == "__main__":
    unittest.main(verbosity=2)
