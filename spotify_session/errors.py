class SpotifySessionError(RuntimeError):
    """Base class for everything the session and client raise."""


class ConfigurationError(SpotifySessionError):
    """The session cannot work with the given configuration (no logout happens)."""


class NotAuthenticated(SpotifySessionError):
    """An API call was attempted without any access token."""


class SessionExpiredError(SpotifySessionError):
    """The stored session could not be refreshed; storage has been cleared."""


class MissingRefreshToken(SessionExpiredError):
    pass


class RefreshRequestFailed(SessionExpiredError):
    """Transport error or non-2xx answer from the refresh endpoint."""

    def __init__(self, message: str, *, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class RefreshResponseMalformed(SessionExpiredError):
    """Refresh endpoint answered, but without a usable access_token."""
