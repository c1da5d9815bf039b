import random
from typing import Any, Dict, List, Optional, Sequence

DEFAULT_PAGE_SIZE = 50
DEFAULT_SEED_COUNT = 5
DEFAULT_RECOMMENDATION_LIMIT = 25


def random_page_offset(total: int, *, page_size: int = DEFAULT_PAGE_SIZE, rng: Optional[random.Random] = None) -> int:
    """Pick a page start so that a full page fits inside the playlist.

    Result is uniform in [0, total - page_size]; 0 when the playlist fits in one page.
    """

    rng = rng or random.Random()
    total = int(total or 0)
    if total > page_size:
        return rng.randrange(total - page_size + 1)
    return 0


def fisher_yates_shuffle(items: Sequence[Any], *, rng: Optional[random.Random] = None) -> List[Any]:
    """Return a shuffled copy of items; the input is left untouched."""

    rng = rng or random.Random()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def _track_id(item: Dict[str, Any]) -> Optional[str]:
    # Playlist items wrap the track: {"added_at": ..., "track": {...}}.
    track = item.get("track") if isinstance(item, dict) else None
    if not isinstance(track, dict):
        return None
    track_id = track.get("id")
    return str(track_id) if track_id else None


def pick_seed_tracks(shuffled: Sequence[Dict[str, Any]], *, count: int = DEFAULT_SEED_COUNT) -> List[str]:
    """Return up to `count` track ids; local or removed tracks (no id) are skipped."""

    seeds: List[str] = []
    for item in shuffled:
        track_id = _track_id(item)
        if track_id is None:
            continue
        seeds.append(track_id)
        if len(seeds) >= count:
            break
    return seeds


def recommendation_params(seed_ids: Sequence[str], target_popularity, *, limit: int = DEFAULT_RECOMMENDATION_LIMIT) -> Dict[str, str]:
    return {
        "seed_tracks": ",".join(seed_ids),
        "target_popularity": str(target_popularity),
        "limit": str(limit),
    }
