"""Data models for sentence-level playback."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from chapter_reader.constants import (
    DEFAULT_PITCH,
    DEFAULT_RATE,
    PITCH_MAX,
    PITCH_MIN,
    RATE_MAX,
    RATE_MIN,
)


class EngineState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class Voice:
    id: str            # provider identifier, e.g. "en-US-AriaNeural"
    name: str          # display name
    lang: str          # language tag, e.g. "en-US"
    default: bool = False


@dataclass(frozen=True)
class Position:
    sentence_index: int = 0
    total_sentences: int = 0
    char_index: int = 0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass
class PlaybackParams:
    rate: float = DEFAULT_RATE
    pitch: float = DEFAULT_PITCH

    def __post_init__(self):
        self.rate = clamp(float(self.rate), RATE_MIN, RATE_MAX)
        self.pitch = clamp(float(self.pitch), PITCH_MIN, PITCH_MAX)


def _noop(*args) -> None:
    return None


@dataclass
class Utterance:
    """A single sentence submitted to a speech provider.

    The provider reports progress by calling the ``on_*`` slots. The engine
    binds them to the utterance ``id`` so late callbacks from a replaced
    utterance can be recognised and ignored.
    """

    text: str
    rate: float = DEFAULT_RATE
    pitch: float = DEFAULT_PITCH
    voice: Voice | None = None
    id: int = 0
    on_start: Callable[[], None] = field(default=_noop, repr=False)
    on_boundary: Callable[[int, int], None] = field(default=_noop, repr=False)
    on_end: Callable[[], None] = field(default=_noop, repr=False)
    on_error: Callable[[str], None] = field(default=_noop, repr=False)
    on_cancelled: Callable[[], None] = field(default=_noop, repr=False)


@dataclass
class Chapter:
    title: str
    content: str
    index: int = 0
