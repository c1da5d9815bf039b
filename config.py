import json
import os
from typing import Any, Dict

CONFIG_PATH = "config.json"

# Default configuration values
DEFAULT_CONFIG = {
    # Local token storage (four string entries, see spotify_session.storage)
    "storage_file": "data/session.json",

    # Where the app lives; logout and failed refreshes redirect here.
    "app_origin": "http://localhost:5173",

    # Application backend that owns /login and /refresh_token.
    "refresh_base_url": "http://localhost:8888",

    # Spotify Web API
    "spotify_api_base_url": "https://api.spotify.com/v1",
    "request_timeout": 30.0,

    # Recommendation workflow
    "recommendation_page_size": 50,
    "seed_track_count": 5,
    "recommendation_limit": 25,
    "generated_playlist_description": "Generated Playlist",

    # Logging
    "log_level": "INFO",
    "log_file": "",
}

# Validation rules for config fields
CONFIG_SCHEMA = {
    "storage_file": {"type": str, "required": True},
    "app_origin": {"type": str, "required": True},
    "refresh_base_url": {"type": str, "required": True},

    "spotify_api_base_url": {"type": str, "required": False},
    "request_timeout": {"type": (int, float), "required": False, "min": 1, "max": 300},

    "recommendation_page_size": {"type": int, "required": False, "min": 1, "max": 50},
    "seed_track_count": {"type": int, "required": False, "min": 1, "max": 5},
    "recommendation_limit": {"type": int, "required": False, "min": 1, "max": 100},
    "generated_playlist_description": {"type": str, "required": False},

    "log_level": {
        "type": str,
        "required": False,
        "choices": ["DEBUG", "INFO", "WARNING", "ERROR"],
    },
    "log_file": {"type": str, "required": False},
}


def load_config() -> Dict[str, Any]:
    """Load configuration from file, applying defaults for missing fields."""
    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file {CONFIG_PATH} not found.")

    with open(CONFIG_PATH, "r", encoding="utf-8") as f:
        config = json.load(f)

    # Apply defaults for missing fields
    for key, value in DEFAULT_CONFIG.items():
        if key not in config:
            config[key] = value

    return config


def save_config(config: Dict[str, Any]) -> bool:
    """Save configuration to file."""
    try:
        with open(CONFIG_PATH, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        return True
    except Exception as e:
        raise IOError(f"Failed to save config: {e}")


def validate_config(config: Dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate configuration against schema.
    Returns (is_valid, list_of_errors).
    """
    errors = []

    for key, rules in CONFIG_SCHEMA.items():
        # Check required fields
        if rules.get("required", False) and key not in config:
            errors.append(f"Missing required field: {key}")
            continue

        if key not in config:
            continue

        value = config[key]

        # Type check (bool is an int subclass; never accept it for numbers)
        expected_type = rules.get("type")
        if expected_type and (not isinstance(value, expected_type) or (isinstance(value, bool) and expected_type is not bool)):
            type_names = expected_type.__name__ if not isinstance(expected_type, tuple) else "/".join(t.__name__ for t in expected_type)
            errors.append(f"Field '{key}' must be {type_names}, got {type(value).__name__}")
            continue

        # Choices check
        if "choices" in rules and value not in rules["choices"]:
            errors.append(f"Field '{key}' must be one of {rules['choices']}, got '{value}'")

        # Range check for numeric values
        if isinstance(value, (int, float)):
            if "min" in rules and value < rules["min"]:
                errors.append(f"Field '{key}' must be >= {rules['min']}, got {value}")
            if "max" in rules and value > rules["max"]:
                errors.append(f"Field '{key}' must be <= {rules['max']}, got {value}")

        # URLs must be absolute http(s)
        if key in ("app_origin", "refresh_base_url", "spotify_api_base_url") and isinstance(value, str):
            if not value.startswith(("http://", "https://")):
                errors.append(f"Field '{key}' must be an http(s) URL, got '{value}'")

    return len(errors) == 0, errors


def update_config(key: str, value: Any) -> tuple[bool, str]:
    """
    Update a single config field with validation.
    Returns (success, message).
    """
    config = load_config()

    # Check if key is valid
    if key not in CONFIG_SCHEMA:
        return False, f"Unknown config key: {key}"

    # Create temporary config with new value
    test_config = config.copy()
    test_config[key] = value

    # Validate the change
    is_valid, errors = validate_config(test_config)
    if not is_valid:
        return False, f"Validation failed: {', '.join(errors)}"

    # Save the updated config
    config[key] = value
    save_config(config)

    return True, f"Updated '{key}' to '{value}'"


def reset_to_defaults() -> tuple[bool, str]:
    """Reset configuration to default values."""
    try:
        save_config(DEFAULT_CONFIG.copy())
        return True, "Configuration reset to defaults"
    except Exception as e:
        return False, f"Failed to reset config: {e}"
