import asyncio

import httpx

from spotify_session import NotAuthenticated, SessionExpiredError, SpotifySessionError
from utils.logger import log_error, log_warning


def run_request(coro):
    """Run one client coroutine from the (synchronous) menus.

    Returns None after logging when the session is gone or the network fails.
    """
    try:
        return asyncio.run(coro)
    except SessionExpiredError as e:
        log_warning(f"Your session has ended ({e}). Please log in again.")
    except NotAuthenticated:
        log_warning("You are not logged in.")
    except SpotifySessionError as e:
        log_error(str(e))
    except httpx.HTTPError as e:
        log_error(f"Spotify request failed: {e}")
    except ValueError as e:
        log_error(f"Unexpected Spotify response: {e}")
    return None


def response_json(resp: httpx.Response):
    """Decode a raw API response, logging non-2xx answers."""
    if resp is None:
        return None

    if resp.status_code >= 400:
        log_error(f"Spotify API error {resp.status_code}: {resp.text[:200]}")
        return None

    try:
        return resp.json()
    except ValueError:
        log_error(f"Spotify API response was not JSON (status {resp.status_code})")
        return None


def pause():
    input("\nPress Enter to continue...")
