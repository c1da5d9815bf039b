from typing import Any, Dict, Optional

# Audio feature fields worth showing, in display order.
AUDIO_FEATURE_FIELDS = (
    "danceability",
    "energy",
    "valence",
    "acousticness",
    "instrumentalness",
    "liveness",
    "speechiness",
    "tempo",
    "loudness",
)

PITCH_CLASSES = ["C", "C♯/D♭", "D", "D♯/E♭", "E", "F", "F♯/G♭", "G", "G♯/A♭", "A", "A♯/B♭", "B"]


def format_duration(ms) -> str:
    """180000 -> '3:00'."""
    try:
        total_seconds = int(ms) // 1000
    except (TypeError, ValueError):
        return "--:--"
    minutes, seconds = divmod(max(0, total_seconds), 60)
    return f"{minutes}:{seconds:02d}"


def format_artists(track: Dict[str, Any]) -> str:
    artists = track.get("artists") or []
    names = [str(a.get("name")).strip() for a in artists if isinstance(a, dict) and a.get("name")]
    return ", ".join(names) or "Unknown artist"


def format_track_line(track: Dict[str, Any]) -> str:
    """'Artist A, Artist B - Song (3:00)'."""
    name = (track.get("name") or "Unknown track").strip()
    return f"{format_artists(track)} - {name} ({format_duration(track.get('duration_ms'))})"


def format_key(key, mode) -> str:
    try:
        key = int(key)
    except (TypeError, ValueError):
        return "Unknown"
    # -1 means no key was detected
    if not 0 <= key < len(PITCH_CLASSES):
        return "Unknown"
    pitch = PITCH_CLASSES[key]
    return f"{pitch} {'major' if mode == 1 else 'minor'}"


def describe_audio_features(features: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Flatten an audio-features object into label -> display string."""

    if not isinstance(features, dict):
        return {}

    out: Dict[str, str] = {}
    for field in AUDIO_FEATURE_FIELDS:
        value = features.get(field)
        if value is None:
            continue
        if field == "tempo":
            out[field] = f"{float(value):.0f} BPM"
        elif field == "loudness":
            out[field] = f"{float(value):.1f} dB"
        else:
            out[field] = f"{round(float(value) * 100)}%"

    if "key" in features:
        out["key"] = format_key(features.get("key"), features.get("mode"))

    return out
