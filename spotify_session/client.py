import asyncio
import logging
import random
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from .errors import NotAuthenticated
from .recommendations import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_RECOMMENDATION_LIMIT,
    DEFAULT_SEED_COUNT,
    fisher_yates_shuffle,
    pick_seed_tracks,
    random_page_offset,
    recommendation_params,
)
from .session import Session

logger = logging.getLogger(__name__)

SPOTIFY_API_BASE_URL = "https://api.spotify.com/v1"


class SpotifyClient:
    """Thin Spotify Web API wrappers.

    Every method returns the raw httpx.Response; status codes are left for the
    caller to interpret. No retries, no rate limiting, one page per call.
    """

    def __init__(
        self,
        session: Session,
        config: Optional[Dict[str, Any]] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
    ):
        self.session = session
        self.config = config if config is not None else session.config
        self._transport = transport
        self._rng = rng or random.Random()

    @property
    def base_url(self) -> str:
        return str(self.config.get("spotify_api_base_url") or SPOTIFY_API_BASE_URL).rstrip("/")

    # -----------------
    # HTTP helpers
    # -----------------

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=float(self.config.get("request_timeout", 30.0)),
            transport=self._transport,
        )

    async def _headers(self) -> Dict[str, str]:
        token = await self.session.get_access_token()
        if not token:
            raise NotAuthenticated("No Spotify access token. Log in first.")
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = await self._headers()
        async with self._http() as client:
            return await client.request(method, path, params=params, json=json, headers=headers)

    # -----------------
    # Endpoints
    # -----------------

    async def get_current_user_profile(self) -> httpx.Response:
        return await self._send("GET", "/me")

    async def get_user_num_playlists(self) -> httpx.Response:
        # Only `total` of the first page is of interest to callers.
        return await self._send("GET", "/me/playlists")

    async def get_playlists(self) -> httpx.Response:
        return await self._send("GET", "/me/playlists")

    async def get_top_artists(self, limit: int = 10, time_range: str = "long_term") -> httpx.Response:
        return await self._send("GET", "/me/top/artists", params={"time_range": time_range, "limit": limit})

    async def get_top_tracks(self, limit: int = 10, time_range: str = "long_term") -> httpx.Response:
        return await self._send("GET", "/me/top/tracks", params={"time_range": time_range, "limit": limit})

    async def get_artist(self, artist_id: str) -> httpx.Response:
        return await self._send("GET", f"/artists/{artist_id}")

    async def get_track(self, track_id: str) -> Tuple[httpx.Response, httpx.Response]:
        """Fetch track metadata and audio features concurrently."""

        # One token lookup for both requests, so an expired token refreshes once.
        headers = await self._headers()
        async with self._http() as client:
            track_res, features_res = await asyncio.gather(
                client.get(f"/tracks/{track_id}", headers=headers),
                client.get(f"/audio-features/{track_id}", headers=headers),
            )
        return track_res, features_res

    # -----------------
    # Workflows
    # -----------------

    async def get_spot_recommendations(self, playlist: Dict[str, Any], max_popularity) -> httpx.Response:
        """Seed recommendations with a random sample of the playlist's tracks.

        playlist is a Spotify playlist object ({"id", "tracks": {"total"}, ...}).
        """

        page_size = int(self.config.get("recommendation_page_size", DEFAULT_PAGE_SIZE))
        seed_count = int(self.config.get("seed_track_count", DEFAULT_SEED_COUNT))
        limit = int(self.config.get("recommendation_limit", DEFAULT_RECOMMENDATION_LIMIT))

        total = int(((playlist.get("tracks") or {}).get("total")) or 0)
        offset = random_page_offset(total, page_size=page_size, rng=self._rng)

        tracks_res = await self._send(
            "GET",
            f"/playlists/{playlist['id']}/tracks",
            params={"offset": offset, "limit": page_size},
        )
        items = tracks_res.json().get("items") or []

        shuffled = fisher_yates_shuffle(items, rng=self._rng)
        seeds = pick_seed_tracks(shuffled, count=seed_count)
        logger.debug("Recommendation seeds for playlist %s: %s", playlist.get("id"), seeds)

        return await self._send(
            "GET",
            "/recommendations",
            params=recommendation_params(seeds, max_popularity, limit=limit),
        )

    async def add_spot_playlist(self, playlist: Dict[str, Any], tracks: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
        """Create a private "Suggestions based on ..." playlist holding `tracks`.

        Three sequential calls; a failure in the last one leaves an empty
        playlist behind.
        """

        user_res = await self.get_current_user_profile()
        user_id = user_res.json().get("id")

        create_res = await self._send(
            "POST",
            f"/users/{user_id}/playlists",
            json={
                "name": f"Suggestions based on {playlist.get('name')}",
                "description": str(self.config.get("generated_playlist_description", "Generated Playlist")),
                "public": False,
            },
        )
        created = create_res.json()

        uris: List[str] = [track.get("uri") for track in tracks]
        await self._send("POST", f"/playlists/{created.get('id')}/tracks", json={"uris": uris})

        logger.info("Created playlist %s with %d tracks", created.get("id"), len(uris))
        return created
