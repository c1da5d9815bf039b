import questionary

from menus.common import pause, response_json, run_request
from spotify_session import SpotifyClient
from utils.formatting import format_track_line
from utils.logger import log_success, log_warning


def _ask_popularity():
    value = questionary.text("Target popularity (0-100):", default="50").ask()
    try:
        popularity = int(value)
    except (TypeError, ValueError):
        return None
    return popularity if 0 <= popularity <= 100 else None


def suggestions_menu(client: SpotifyClient):
    """Pick a playlist, get recommendations seeded from it, optionally save them."""
    data = response_json(run_request(client.get_playlists()))
    playlists = [p for p in ((data or {}).get("items") or []) if (p.get("tracks") or {}).get("total")]
    if not playlists:
        log_warning("No non-empty playlists found.")
        return

    playlist = questionary.select(
        "Base suggestions on which playlist?",
        choices=[questionary.Choice(title=p.get("name") or p.get("id"), value=p) for p in playlists]
        + [questionary.Choice(title="Back", value=None)],
    ).ask()
    if not playlist:
        return

    popularity = _ask_popularity()
    if popularity is None:
        log_warning("Popularity must be a whole number between 0 and 100.")
        return

    recommendations = response_json(run_request(client.get_spot_recommendations(playlist, popularity)))
    tracks = (recommendations or {}).get("tracks") or []
    if not tracks:
        log_warning("Spotify returned no suggestions.")
        return

    print(f"\n✨ Suggestions based on {playlist.get('name')}")
    for i, track in enumerate(tracks, 1):
        print(f"  {i:>2}. {format_track_line(track)}")

    save = questionary.confirm("Save these as a new private playlist?", default=True).ask()
    if not save:
        return

    created = run_request(client.add_spot_playlist(playlist, tracks))
    if created:
        log_success(f"Created playlist '{created.get('name')}'")
        url = (created.get("external_urls") or {}).get("spotify")
        if url:
            print(f"  {url}")
    pause()
