"""Voice catalog: available synthesis voices and lookup by name or language."""

import logging
from typing import Callable, Iterable

from chapter_reader.models import Voice

logger = logging.getLogger(__name__)


def find_voice(voices: Iterable[Voice], key: str) -> Voice | None:
    """Resolve a voice by exact id, then exact name, then language prefix.

    Language matching is case-insensitive, so "en" matches "en-US" and "en-GB"
    (the first in catalog order wins).
    """
    voices = list(voices)
    if not key:
        return None
    for voice in voices:
        if voice.id == key:
            return voice
    for voice in voices:
        if voice.name == key:
            return voice
    prefix = key.lower()
    for voice in voices:
        if voice.lang.lower().startswith(prefix):
            return voice
    return None


def filter_voices(voices: Iterable[Voice], text: str | None = None, lang: str | None = None) -> list[Voice]:
    """Filter voices by substring of id/name and by language prefix."""
    result = list(voices)
    if text:
        needle = text.lower()
        result = [v for v in result if needle in v.id.lower() or needle in v.name.lower()]
    if lang:
        prefix = lang.lower()
        result = [v for v in result if v.lang.lower().startswith(prefix)]
    return result


class VoiceCatalog:
    """Read-only view of a provider's voices.

    Providers may load voices asynchronously, so ``list()`` can be empty until
    the first change notification. Re-query from an ``on_change`` callback.
    """

    def __init__(self, provider=None):
        self.provider = provider

    def list(self) -> list[Voice]:
        if self.provider is None:
            return []
        return list(self.provider.list_voices())

    def on_change(self, callback: Callable[[], None]) -> None:
        if self.provider is None:
            logger.debug("No speech provider; voice change listener not registered")
            return
        self.provider.on_voices_changed(callback)

    def off_change(self, callback: Callable[[], None]) -> None:
        if self.provider is not None:
            self.provider.off_voices_changed(callback)

    def find(self, key: str) -> Voice | None:
        return find_voice(self.list(), key)

    def default(self) -> Voice | None:
        for voice in self.list():
            if voice.default:
                return voice
        return None
