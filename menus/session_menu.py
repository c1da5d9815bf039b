import asyncio
import webbrowser

import questionary

from spotify_session import ConfigurationError, Session, SessionExpiredError
from utils.logger import log_info, log_success, log_warning, log_error


def login_menu(session: Session) -> bool:
    """Walk the user through the OAuth handoff. Returns True when logged in."""
    try:
        login_url = session.login_url()
    except ConfigurationError as e:
        log_error(str(e))
        return False

    log_info(f"Opening {login_url} in your browser...")
    try:
        webbrowser.open(login_url)
    except webbrowser.Error:
        log_warning("Could not open a browser. Open the URL above manually.")

    redirect_url = questionary.text(
        "After approving access, paste the full URL you were redirected to:"
    ).ask()

    if not redirect_url:
        log_warning("Login cancelled.")
        return False

    session.location = redirect_url.strip()
    try:
        token = asyncio.run(session.get_access_token())
    except SessionExpiredError as e:
        log_error(f"Login failed: {e}")
        return False

    if not token:
        log_error("No access token found in that URL.")
        return False

    log_success("Logged in to Spotify.")
    return True


def logout_menu(session: Session) -> None:
    confirm = questionary.confirm("Log out and forget stored tokens?", default=False).ask()
    if confirm:
        session.logout()
        log_success("Logged out.")
