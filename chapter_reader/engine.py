"""Sentence-level playback engine driving a speech provider."""

import logging
from typing import Callable

from chapter_reader.constants import (
    CANCELLED_REASON,
    PITCH_MAX,
    PITCH_MIN,
    RATE_MAX,
    RATE_MIN,
    UNSUPPORTED_MESSAGE,
)
from chapter_reader.events import EventEmitter
from chapter_reader.models import EngineState, PlaybackParams, Position, Utterance, Voice, clamp
from chapter_reader.segmenter import segment
from chapter_reader.voices import find_voice

logger = logging.getLogger(__name__)

ENGINE_EVENTS = ("start", "sentence_change", "pause", "resume", "end", "error", "boundary")

# What resume() does when the provider has nothing paused to continue
_RETRY = "retry"        # the last utterance failed: speak the same sentence again
_ADVANCE = "advance"    # the utterance finished while paused: move on


class PlaybackEngine:
    """Plays text one sentence at a time through a speech provider.

    The engine owns the sentence queue and the current index, and keeps at
    most one utterance in flight by cancelling before every submission.
    Provider callbacks are matched against the current utterance; callbacks
    from an utterance the engine has replaced or cancelled are ignored.
    A provider error leaves the engine paused on the failed sentence and is
    reported as ``pause`` followed by ``error``; ``resume()`` retries it.

    Events (``engine.on(name, callback)``):
      start(sentence_index), sentence_change(sentence_index), pause(),
      resume(), end(), error(reason), boundary(char_index, char_length, word)
    """

    def __init__(self, provider=None, params: PlaybackParams | None = None, voice=None):
        self.provider = provider
        self.params = params if params is not None else PlaybackParams()
        self._events = EventEmitter(ENGINE_EVENTS)
        self._voice_key: str | None = None
        self._sentences: tuple[str, ...] = ()
        self._index = 0
        self._char_index = 0
        self._state = EngineState.IDLE
        self._utterance: Utterance | None = None
        self._utterance_count = 0
        self._resume_action: str | None = None
        self._unsupported_reported = False
        self.set_voice(voice)

    # --- Events ---

    def on(self, name: str, callback: Callable) -> Callable:
        return self._events.on(name, callback)

    def off(self, name: str, callback: Callable) -> None:
        self._events.off(name, callback)

    # --- Queries ---

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is EngineState.PLAYING

    @property
    def is_paused(self) -> bool:
        return self._state is EngineState.PAUSED

    @property
    def is_active(self) -> bool:
        """True while a queue is playing or paused."""
        return self._state is not EngineState.IDLE

    @property
    def rate(self) -> float:
        return self.params.rate

    @property
    def pitch(self) -> float:
        return self.params.pitch

    @property
    def voice_key(self) -> str | None:
        return self._voice_key

    @property
    def voice(self) -> Voice | None:
        """The selected voice as currently resolvable, or None for the provider default."""
        return self._resolve_voice()

    @property
    def sentences(self) -> tuple[str, ...]:
        return self._sentences

    @property
    def current_sentence(self) -> str | None:
        if 0 <= self._index < len(self._sentences):
            return self._sentences[self._index]
        return None

    def get_position(self) -> Position:
        return Position(
            sentence_index=self._index,
            total_sentences=len(self._sentences),
            char_index=self._char_index,
        )

    # --- Parameters ---

    def set_rate(self, rate: float) -> None:
        self.params.rate = clamp(float(rate), RATE_MIN, RATE_MAX)

    def set_pitch(self, pitch: float) -> None:
        self.params.pitch = clamp(float(pitch), PITCH_MIN, PITCH_MAX)

    def set_voice(self, voice) -> None:
        """Select a voice by ``Voice``, id/name, or language prefix; None for default.

        Only the lookup key is kept. It is resolved against the provider's
        voices at each submission, falling back to the provider default.
        """
        if isinstance(voice, Voice):
            self._voice_key = voice.id
        else:
            self._voice_key = voice or None

    def _resolve_voice(self) -> Voice | None:
        if self._voice_key is None or self.provider is None:
            return None
        return find_voice(self.provider.list_voices(), self._voice_key)

    # --- Commands ---

    def load(self, text: str, start_index: int = 0) -> None:
        """Replace the queue with the sentences of ``text`` and start speaking."""
        if self.provider is None:
            if not self._unsupported_reported:
                self._unsupported_reported = True
                self._events.emit("error", UNSUPPORTED_MESSAGE)
            return

        self.stop()

        sentences = segment(text)
        if not sentences:
            return

        self._sentences = tuple(sentences)
        self._index = max(0, min(start_index, len(sentences) - 1))
        self._state = EngineState.PLAYING
        logger.debug("Loaded %d sentences, starting at %d", len(sentences), self._index)
        self._submit()

    def pause(self) -> None:
        if self._state is not EngineState.PLAYING:
            return
        self.provider.pause()
        self._state = EngineState.PAUSED
        self._events.emit("pause")

    def resume(self) -> None:
        if self._state is not EngineState.PAUSED:
            return
        action, self._resume_action = self._resume_action, None
        self._state = EngineState.PLAYING
        self.provider.resume()
        self._events.emit("resume")
        if self._state is not EngineState.PLAYING:
            return
        if action == _RETRY:
            self._submit()
        elif action == _ADVANCE:
            self._advance()

    def stop(self) -> None:
        self._cancel_in_flight()
        self._sentences = ()
        self._index = 0
        self._char_index = 0
        self._resume_action = None
        self._state = EngineState.IDLE

    def next_sentence(self) -> None:
        self._jump(self._index + 1)

    def previous_sentence(self) -> None:
        self._jump(self._index - 1)

    # --- Internal ---

    def _jump(self, index: int) -> None:
        if self._state is EngineState.IDLE:
            return
        if not 0 <= index < len(self._sentences):
            return
        self._cancel_in_flight()
        self._index = index
        self._submit()
        if self._state is EngineState.PAUSED:
            # Keep the new utterance held until resume()
            self.provider.pause()

    def _cancel_in_flight(self) -> None:
        if self._utterance is None:
            return
        # Forget the utterance first so its cancellation callback is stale
        self._utterance = None
        self.provider.cancel_current()

    def _advance(self) -> None:
        self._index += 1
        self._char_index = 0
        if self._index >= len(self._sentences):
            logger.debug("End of text after %d sentences", len(self._sentences))
            self._state = EngineState.IDLE
            self._events.emit("end")
            return
        self._submit()

    def _submit(self) -> None:
        self._utterance_count += 1
        utterance = Utterance(
            text=self._sentences[self._index],
            rate=self.params.rate,
            pitch=self.params.pitch,
            voice=self._resolve_voice(),
            id=self._utterance_count,
        )
        utterance.on_start = lambda: self._on_start(utterance)
        utterance.on_boundary = lambda index, length: self._on_boundary(utterance, index, length)
        utterance.on_end = lambda: self._on_end(utterance)
        utterance.on_error = lambda reason: self._on_error(utterance, reason)
        utterance.on_cancelled = lambda: self._on_cancelled(utterance)

        self._utterance = utterance
        self._char_index = 0
        self._resume_action = None
        logger.debug("Speaking sentence %d/%d (utterance %d)",
                     self._index + 1, len(self._sentences), utterance.id)
        self.provider.speak(utterance)

    def _is_stale(self, utterance: Utterance) -> bool:
        if utterance is not self._utterance:
            logger.debug("Ignoring callback from stale utterance %d", utterance.id)
            return True
        return False

    def _on_start(self, utterance: Utterance) -> None:
        if self._is_stale(utterance):
            return
        self._events.emit("start", self._index)
        self._events.emit("sentence_change", self._index)

    def _on_boundary(self, utterance: Utterance, char_index: int, char_length: int) -> None:
        if self._is_stale(utterance):
            return
        self._char_index = char_index
        word = utterance.text[char_index:char_index + char_length]
        self._events.emit("boundary", char_index, char_length, word)

    def _on_end(self, utterance: Utterance) -> None:
        if self._is_stale(utterance):
            return
        self._utterance = None
        if self._state is EngineState.PAUSED:
            self._resume_action = _ADVANCE
            return
        if self._state is EngineState.PLAYING:
            self._advance()

    def _on_error(self, utterance: Utterance, reason: str) -> None:
        if self._is_stale(utterance):
            return
        logger.warning("Speech provider error on sentence %d: %s", self._index, reason)
        self._utterance = None
        was_playing = self._state is EngineState.PLAYING
        if self._state is not EngineState.IDLE:
            # Hold the position; resume() speaks the same sentence again
            self._state = EngineState.PAUSED
            self._resume_action = _RETRY
        if was_playing:
            self._events.emit("pause")
        self._events.emit("error", reason)

    def _on_cancelled(self, utterance: Utterance) -> None:
        if self._is_stale(utterance):
            return
        self._on_error(utterance, CANCELLED_REASON)
