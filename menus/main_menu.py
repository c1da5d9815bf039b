import questionary

from spotify_session import Session, SessionState

LOGGED_OUT_CHOICES = [
    "Log in with Spotify",
    "Config Menu",
    "Exit",
]

LOGGED_IN_CHOICES = [
    "Profile",
    "Top artists",
    "Top tracks",
    "Playlists",
    "Track details",
    "Suggestions from a playlist",
    "Config Menu",
    "Log out",
    "Exit",
]


def main_menu(session: Session) -> str:
    logged_in = session.state in (SessionState.VALID, SessionState.EXPIRED)
    choice = questionary.select(
        "🎧 Main Menu — What would you like to do?",
        choices=LOGGED_IN_CHOICES if logged_in else LOGGED_OUT_CHOICES,
    ).ask()
    return choice or "Exit"
