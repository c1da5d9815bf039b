import asyncio
import json
import sys

from config import load_config, validate_config
from menus.config_menu import config_menu
from menus.library_menu import (
    show_playlists,
    show_profile,
    show_top_artists,
    show_top_tracks,
    track_details_menu,
)
from menus.main_menu import main_menu
from menus.session_menu import login_menu, logout_menu
from menus.suggestions_menu import suggestions_menu
from spotify_session import ConfigurationError, Session, SessionExpiredError, SpotifyClient
from utils.logger import setup_logging, log_info, log_error, log_warning


def apply_config(config: dict, location=None):
    """(Re)configure logging and build the session + client for `config`."""
    setup_logging(config.get("log_level", "INFO"), config.get("log_file") or None)
    session = Session(config, location=location)
    return session, SpotifyClient(session, config)


def main():
    setup_logging()

    try:
        config = load_config()
    except FileNotFoundError as e:
        log_error(f"Config file not found: {e}")
        log_error("Please create config.json with required settings.")
        sys.exit(1)
    except json.JSONDecodeError as e:
        log_error(f"Config file contains invalid JSON: {e}")
        sys.exit(1)
    except Exception as e:
        log_error(f"Error loading config: {e}")
        sys.exit(1)

    is_valid, errors = validate_config(config)
    if not is_valid:
        for error in errors:
            log_warning(error)

    # A redirect URL may be passed straight from the OAuth handoff.
    location = sys.argv[1] if len(sys.argv) > 1 else None
    session, client = apply_config(config, location)

    # Same as a page load: pick up a token from the URL or refresh a stale one.
    try:
        asyncio.run(session.get_access_token())
    except SessionExpiredError as e:
        log_warning(f"Stored session could not be restored: {e}")
    except ConfigurationError as e:
        log_error(str(e))

    actions = {
        "Profile": show_profile,
        "Top artists": show_top_artists,
        "Top tracks": show_top_tracks,
        "Playlists": show_playlists,
        "Track details": track_details_menu,
        "Suggestions from a playlist": suggestions_menu,
    }

    while True:
        choice = main_menu(session)

        if choice == "Log in with Spotify":
            login_menu(session)

        elif choice in actions:
            actions[choice](client)

        elif choice == "Config Menu":
            config = config_menu(config)
            session, client = apply_config(config)

        elif choice == "Log out":
            logout_menu(session)

        elif choice == "Exit":
            log_info("Exiting program...")
            break

        else:
            log_error("Invalid choice.")


if __name__ == "__main__":
    main()
