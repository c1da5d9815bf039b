"""Spotify session handling (token handoff, storage, refresh) and API wrappers."""

from .client import SpotifyClient
from .errors import (
    ConfigurationError,
    MissingRefreshToken,
    NotAuthenticated,
    RefreshRequestFailed,
    RefreshResponseMalformed,
    SessionExpiredError,
    SpotifySessionError,
)
from .session import ConsoleNavigator, Session, SessionState, parse_redirect_params
from .storage import FileStorage, MemoryStorage, TokenRecord, TokenStore

__all__ = [
    "SpotifyClient",
    "Session",
    "SessionState",
    "ConsoleNavigator",
    "parse_redirect_params",
    "FileStorage",
    "MemoryStorage",
    "TokenRecord",
    "TokenStore",
    "SpotifySessionError",
    "ConfigurationError",
    "NotAuthenticated",
    "SessionExpiredError",
    "MissingRefreshToken",
    "RefreshRequestFailed",
    "RefreshResponseMalformed",
]
