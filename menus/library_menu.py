import questionary

from menus.common import pause, response_json, run_request
from spotify_session import SpotifyClient
from utils.formatting import describe_audio_features, format_artists, format_track_line
from utils.logger import log_info, log_warning

TIME_RANGES = {
    "All time": "long_term",
    "Last 6 months": "medium_term",
    "Last 4 weeks": "short_term",
}


def _ask_time_range() -> str:
    label = questionary.select("Time range:", choices=list(TIME_RANGES.keys())).ask()
    return TIME_RANGES.get(label, "long_term")


def show_profile(client: SpotifyClient):
    profile = response_json(run_request(client.get_current_user_profile()))
    if not profile:
        return

    playlists = response_json(run_request(client.get_user_num_playlists())) or {}

    print("\n" + "=" * 50)
    print(f"👤 {profile.get('display_name') or profile.get('id')}")
    print("=" * 50)
    print(f"  Followers: {(profile.get('followers') or {}).get('total', 0)}")
    print(f"  Playlists: {playlists.get('total', 0)}")
    if profile.get("country"):
        print(f"  Country:   {profile['country']}")
    pause()


def show_top_artists(client: SpotifyClient):
    data = response_json(run_request(client.get_top_artists(limit=20, time_range=_ask_time_range())))
    artists = (data or {}).get("items") or []
    if not artists:
        log_warning("No top artists found.")
        return

    choice = questionary.select(
        "Top artists (select one for details):",
        choices=[questionary.Choice(title=f"{i}. {a.get('name')}", value=a.get("id")) for i, a in enumerate(artists, 1)]
        + [questionary.Choice(title="Back", value=None)],
    ).ask()
    if choice:
        show_artist(client, choice)


def show_artist(client: SpotifyClient, artist_id: str):
    artist = response_json(run_request(client.get_artist(artist_id)))
    if not artist:
        return

    print("\n" + "=" * 50)
    print(f"🎤 {artist.get('name')}")
    print("=" * 50)
    print(f"  Followers:  {(artist.get('followers') or {}).get('total', 0)}")
    print(f"  Popularity: {artist.get('popularity')}")
    genres = artist.get("genres") or []
    if genres:
        print(f"  Genres:     {', '.join(genres)}")
    pause()


def show_top_tracks(client: SpotifyClient):
    data = response_json(run_request(client.get_top_tracks(limit=20, time_range=_ask_time_range())))
    tracks = (data or {}).get("items") or []
    if not tracks:
        log_warning("No top tracks found.")
        return

    choice = questionary.select(
        "Top tracks (select one for details):",
        choices=[questionary.Choice(title=f"{i}. {format_track_line(t)}", value=t.get("id")) for i, t in enumerate(tracks, 1)]
        + [questionary.Choice(title="Back", value=None)],
    ).ask()
    if choice:
        show_track(client, choice)


def show_playlists(client: SpotifyClient):
    data = response_json(run_request(client.get_playlists()))
    playlists = (data or {}).get("items") or []
    if not playlists:
        log_warning("No playlists found.")
        return

    print(f"\n📂 {data.get('total', len(playlists))} playlists")
    for p in playlists:
        total = (p.get("tracks") or {}).get("total", 0)
        print(f"  • {p.get('name')} ({total} tracks)")
    pause()


def track_details_menu(client: SpotifyClient):
    track_id = questionary.text("Spotify track id (or URI):").ask()
    if not track_id:
        return
    show_track(client, track_id.strip().split(":")[-1])


def show_track(client: SpotifyClient, track_id: str):
    responses = run_request(client.get_track(track_id))
    if not responses:
        return

    track_res, features_res = responses
    track = response_json(track_res)
    if not track:
        return

    print("\n" + "=" * 50)
    print(f"🎵 {track.get('name')}")
    print("=" * 50)
    print(f"  Artists:    {format_artists(track)}")
    print(f"  Album:      {(track.get('album') or {}).get('name')}")
    print(f"  Popularity: {track.get('popularity')}")

    # Audio features may be unavailable for some tracks or apps.
    features = response_json(features_res)
    if features:
        for label, value in describe_audio_features(features).items():
            print(f"  {label.capitalize():<17} {value}")
    else:
        log_info("Audio features unavailable.")
    pause()
