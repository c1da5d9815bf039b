import logging
import time
import urllib.parse
from enum import Enum
from typing import Any, Callable, Dict, Optional

import httpx

from .errors import (
    ConfigurationError,
    MissingRefreshToken,
    RefreshRequestFailed,
    RefreshResponseMalformed,
    SessionExpiredError,
)
from .storage import (
    DEFAULT_STORAGE_PATH,
    UNDEFINED,
    FileStorage,
    Storage,
    TokenStore,
    is_set,
)

logger = logging.getLogger(__name__)

REDIRECT_PARAMS = ("access_token", "refresh_token", "expires_in", "error")


def _now_ms() -> float:
    return time.time() * 1000


def parse_redirect_params(url: Optional[str]) -> Dict[str, str]:
    """Parse the OAuth handoff query string; missing keys are omitted.

    Accepts a full URL or a bare query string ("?access_token=...").
    """

    raw = str(url or "").strip()
    parsed = urllib.parse.urlparse(raw)
    query = parsed.query if parsed.query else raw.lstrip("?")
    qs = urllib.parse.parse_qs(query)

    out: Dict[str, str] = {}
    for name in REDIRECT_PARAMS:
        if qs.get(name):
            out[name] = str(qs[name][0])
    return out


class SessionState(str, Enum):
    NO_TOKEN = "NoToken"
    VALID = "Valid"
    EXPIRED = "Expired"
    REFRESH_IN_FLIGHT = "RefreshInFlight"
    INVALID = "Invalid"


class ConsoleNavigator:
    """Stand-in for a page redirect: logs the target and remembers it."""

    def __init__(self):
        self.last_redirect: Optional[str] = None

    def redirect(self, url: str) -> None:
        logger.info("Redirecting to %s", url)
        self.last_redirect = url


class Session:
    """Holds one bearer token and keeps it usable.

    The token is always read back from storage, never cached on the object, so
    a login or refresh written by another process is picked up on the next call.
    `location` is the URL the user landed on after the OAuth handoff; it is
    consumed once (after a login or a refresh attempt it is dropped).
    """

    def __init__(
        self,
        config: Dict[str, Any],
        storage: Optional[Storage] = None,
        *,
        location: Optional[str] = None,
        navigator=None,
        clock: Optional[Callable[[], float]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or {}
        if storage is None:
            storage = FileStorage(str(self.config.get("storage_file") or DEFAULT_STORAGE_PATH))
        self.store = TokenStore(storage)
        self.location = location
        self.navigator = navigator or ConsoleNavigator()
        self._clock = clock or _now_ms
        self._transport = transport
        self._refreshing = False
        self._invalid = False

    # -----------------
    # Configuration
    # -----------------

    @property
    def origin(self) -> str:
        return str(self.config.get("app_origin") or "").strip().rstrip("/") or "/"

    @property
    def refresh_base_url(self) -> str:
        base_url = str(self.config.get("refresh_base_url") or "").strip().rstrip("/")
        if not base_url:
            raise ConfigurationError("Missing refresh_base_url in config.json")
        return base_url

    def login_url(self) -> str:
        """Backend route that starts the OAuth flow and redirects back with tokens."""
        return f"{self.refresh_base_url}/login"

    @property
    def timeout(self) -> float:
        return float(self.config.get("request_timeout", 30.0))

    # -----------------
    # Token lifecycle
    # -----------------

    @property
    def state(self) -> SessionState:
        if self._refreshing:
            return SessionState.REFRESH_IN_FLIGHT
        if self._invalid:
            return SessionState.INVALID
        if not self.store.read().has_access_token:
            return SessionState.NO_TOKEN
        if self.has_token_expired():
            return SessionState.EXPIRED
        return SessionState.VALID

    def has_token_expired(self) -> bool:
        record = self.store.read()
        if not record.has_access_token or record.issued_at_ms is None:
            return False

        elapsed_ms = self._clock() - record.issued_at_ms
        return elapsed_ms / 1000 > (record.expire_time_seconds or 0)

    async def get_access_token(self) -> Optional[str]:
        """Return a usable access token, or None when nobody is logged in.

        Raises a SessionExpiredError subclass if a needed refresh fails (storage
        is already cleared by then).
        """

        params = parse_redirect_params(self.location) if self.location else {}
        record = self.store.read()

        if params.get("error") or self.has_token_expired() or record.access_token == UNDEFINED:
            if params.get("error"):
                logger.warning("Authorization redirect carried an error: %s", params["error"])
            return await self.refresh_token()

        if record.has_access_token:
            return record.access_token

        # First login: tokens arrive in the redirect URL.
        access_token = params.get("access_token")
        if access_token:
            self.store.write_login(
                access_token=access_token,
                refresh_token=params.get("refresh_token"),
                expires_in=params.get("expires_in"),
                issued_at_ms=int(self._clock()),
            )
            self.location = None
            self._invalid = False
            logger.info("Stored new session from login redirect")
            return access_token

        return None

    async def refresh_token(self) -> str:
        """Exchange the stored refresh token for a new access token.

        Any failure logs out (clear storage, redirect to origin) and re-raises.
        There is no retry.
        """

        base_url = self.refresh_base_url
        record = self.store.read()
        self.location = None
        self._refreshing = True

        try:
            if not is_set(record.refresh_token):
                raise MissingRefreshToken("No refresh token available or possible infinite loop")

            payload = await self._request_refresh(base_url, record.refresh_token, record.access_token)

            access_token = payload.get("access_token")
            if not isinstance(access_token, str) or not is_set(access_token):
                raise RefreshResponseMalformed("Failed to refresh token: response has no access_token")

            self.store.write_refreshed(access_token, int(self._clock()))
        except SessionExpiredError as e:
            logger.error("Token refresh failed: %s", e)
            self._invalid = True
            self.logout()
            raise
        except Exception as e:
            logger.exception("Token refresh failed unexpectedly")
            self._invalid = True
            self.logout()
            raise SessionExpiredError(f"Token refresh failed: {e}") from e
        finally:
            self._refreshing = False

        self._invalid = False
        logger.info("Token refreshed successfully")
        return access_token

    async def _request_refresh(self, base_url: str, refresh_token: str, access_token: Optional[str]) -> Dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {access_token or ''}",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=False, transport=self._transport) as client:
                resp = await client.get(
                    f"{base_url}/refresh_token",
                    params={"refresh_token": refresh_token},
                    headers=headers,
                )
        except httpx.HTTPError as e:
            raise RefreshRequestFailed(f"Refresh request failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise RefreshRequestFailed(
                f"Refresh request failed (HTTP {resp.status_code})",
                status_code=resp.status_code,
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise RefreshResponseMalformed("Refresh response was not JSON") from e

        if not isinstance(payload, dict):
            raise RefreshResponseMalformed("Refresh response was not an object")

        return payload

    def logout(self) -> None:
        """Forget every stored token and send the user back to the origin."""
        self.store.clear()
        self.location = None
        self.navigator.redirect(self.origin)
