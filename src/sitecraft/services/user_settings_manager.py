import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from src.sitecraft.config import DEFAULT_LANGUAGE, GENERATION_CONFIG, SETTINGS_FILE, SUPPORTED_LANGUAGES

logger = logging.getLogger(__name__)

# Friendly display labels paired with internal identifiers for the generation model.
GENERATION_MODEL_CHOICES: List[Tuple[str, str]] = [
    ("gemini-2.5-pro", "Gemini 2.5 Pro"),
    ("gemini-2.5-flash", "Gemini 2.5 Flash"),
    ("gemini-2.0-flash", "Gemini 2.0 Flash"),
    ("gemini-1.5-pro", "Gemini 1.5 Pro"),
]

# Baseline API key structure for the settings payload.
DEFAULT_API_KEYS = {
    "google": "",
}


def _default_settings() -> Dict[str, Any]:
    return {
        "generation_model": GENERATION_CONFIG["model"],
        "language": DEFAULT_LANGUAGE,
        "api_keys": DEFAULT_API_KEYS.copy(),
    }


def _normalize_model(value: Optional[str], fallback: str) -> str:
    if not isinstance(value, str):
        return fallback
    value = value.strip()
    valid_ids = {identifier for identifier, _ in GENERATION_MODEL_CHOICES}
    return value if value in valid_ids else fallback


def normalize_language(value: Any, fallback: str = DEFAULT_LANGUAGE) -> str:
    if isinstance(value, str):
        selection = value.strip().lower()
        aliases = {
            "english": "en",
            "arabic": "ar",
        }
        selection = aliases.get(selection, selection)
        if selection in SUPPORTED_LANGUAGES:
            return selection
    return fallback


def _sanitize_api_keys(api_keys: Any) -> Dict[str, str]:
    sanitized = DEFAULT_API_KEYS.copy()
    if isinstance(api_keys, dict):
        for key in sanitized.keys():
            value = api_keys.get(key)
            if isinstance(value, str):
                sanitized[key] = value.strip()
        # Older payloads stored the key under "gemini".
        legacy = api_keys.get("gemini")
        if not sanitized["google"] and isinstance(legacy, str):
            sanitized["google"] = legacy.strip()
    return sanitized


def load_user_settings() -> Dict[str, Any]:
    """
    Load user settings from disk, falling back to defaults for anything missing or invalid.
    """
    settings = _default_settings()

    if not SETTINGS_FILE.exists():
        return settings

    try:
        with open(SETTINGS_FILE, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (IOError, json.JSONDecodeError) as exc:
        logger.warning("Failed to read user settings from %s: %s", SETTINGS_FILE, exc)
        return settings

    if not isinstance(data, dict):
        logger.warning("User settings file %s does not contain a JSON object.", SETTINGS_FILE)
        return settings

    settings["generation_model"] = _normalize_model(data.get("generation_model"), settings["generation_model"])
    settings["language"] = normalize_language(data.get("language"), settings["language"])
    settings["api_keys"] = _sanitize_api_keys(data.get("api_keys"))
    return settings


def save_user_settings(settings: Dict[str, Any]) -> None:
    """
    Persist the user settings payload to disk.
    """
    defaults = _default_settings()
    payload: Dict[str, Any] = {
        "generation_model": _normalize_model(settings.get("generation_model"), defaults["generation_model"]),
        "language": normalize_language(settings.get("language"), defaults["language"]),
        "api_keys": _sanitize_api_keys(settings.get("api_keys")),
    }

    SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    with open(SETTINGS_FILE, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=4)

    logger.info("User settings saved to %s", SETTINGS_FILE)


def update_user_settings(updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge and persist setting updates.
    """
    settings = load_user_settings()
    if "generation_model" in updates:
        settings["generation_model"] = _normalize_model(updates.get("generation_model"), settings["generation_model"])
    if "language" in updates:
        settings["language"] = normalize_language(updates.get("language"), settings["language"])
    if "api_keys" in updates:
        settings["api_keys"] = _sanitize_api_keys(updates.get("api_keys"))

    save_user_settings(settings)
    return settings


def get_generation_config(settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Overlay the configured model on the default generation parameters.
    """
    if settings is None:
        settings = load_user_settings()
    generation_config = dict(GENERATION_CONFIG)
    generation_config["model"] = _normalize_model(settings.get("generation_model"), generation_config["model"])
    return generation_config
