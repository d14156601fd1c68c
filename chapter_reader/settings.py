"""Reader settings loaded from a JSON file."""

import json
import logging
import os
from dataclasses import dataclass

from chapter_reader.constants import (
    DEFAULT_PITCH,
    DEFAULT_RATE,
    PITCH_MAX,
    PITCH_MIN,
    RATE_MAX,
    RATE_MIN,
)
from chapter_reader.models import clamp

logger = logging.getLogger(__name__)


class SettingsError(ValueError):
    """A settings file holds a value of the wrong type."""


@dataclass
class ReaderSettings:
    voice: str = ""              # "" = provider default
    rate: float = DEFAULT_RATE
    pitch: float = DEFAULT_PITCH
    auto_advance: bool = True


def _number(data: dict, key: str, default: float, low: float, high: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SettingsError(f"'{key}' must be a number, got {value!r}")
    return clamp(float(value), low, high)


def settings_from_dict(data: dict) -> ReaderSettings:
    """Merge known keys over the defaults; unknown keys are ignored."""
    voice = data.get("voice", "")
    if voice is None:
        voice = ""
    if not isinstance(voice, str):
        raise SettingsError(f"'voice' must be a string, got {voice!r}")
    auto_advance = data.get("auto_advance", True)
    if not isinstance(auto_advance, bool):
        raise SettingsError(f"'auto_advance' must be true or false, got {auto_advance!r}")
    return ReaderSettings(
        voice=voice,
        rate=_number(data, "rate", DEFAULT_RATE, RATE_MIN, RATE_MAX),
        pitch=_number(data, "pitch", DEFAULT_PITCH, PITCH_MIN, PITCH_MAX),
        auto_advance=auto_advance,
    )


def load_settings(path: str | None) -> ReaderSettings:
    """Load settings from a JSON file.

    Missing file returns defaults. Malformed JSON (or a non-object document)
    logs a warning and returns defaults.
    """
    if not path or not os.path.exists(path):
        return ReaderSettings()
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError:
        logger.warning("Malformed settings file: %s, using defaults", path)
        return ReaderSettings()
    if not isinstance(data, dict):
        logger.warning("Settings file is not a JSON object: %s, using defaults", path)
        return ReaderSettings()
    return settings_from_dict(data)


def apply_settings(engine, settings: ReaderSettings) -> None:
    """Push voice, rate and pitch into an engine."""
    engine.set_voice(settings.voice or None)
    engine.set_rate(settings.rate)
    engine.set_pitch(settings.pitch)
