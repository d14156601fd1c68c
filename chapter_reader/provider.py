"""Speech provider capability and an edge-tts backed implementation."""

import asyncio
import io
import logging
import os
from typing import Callable, Protocol

import edge_tts
from pydub import AudioSegment

from chapter_reader.constants import (
    DEFAULT_VOICE,
    EDGE_PITCH_HZ_PER_UNIT,
    PACED_SINK_TICK_SECONDS,
)
from chapter_reader.events import EventEmitter
from chapter_reader.models import Utterance, Voice

logger = logging.getLogger(__name__)

_TICKS_PER_SECOND = 10_000_000  # edge-tts boundary offsets are in 100ns units


class SpeechProvider(Protocol):
    """What the playback engine needs from a speech synthesizer.

    Lifecycle callbacks are delivered through the ``on_*`` slots of the
    submitted ``Utterance``, on the same thread that calls ``speak``.
    """

    def speak(self, utterance: Utterance) -> None: ...

    def cancel_current(self) -> None: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def list_voices(self) -> list[Voice]: ...

    def on_voices_changed(self, callback: Callable[[], None]) -> None: ...

    def off_voices_changed(self, callback: Callable[[], None]) -> None: ...


def edge_rate(rate: float) -> str:
    """Convert a rate multiplier to an edge-tts rate string (1.25 -> "+25%")."""
    return f"{round((rate - 1) * 100):+d}%"


def edge_pitch(pitch: float) -> str:
    """Convert a pitch multiplier to an edge-tts pitch string (1.2 -> "+10Hz")."""
    return f"{round((pitch - 1) * EDGE_PITCH_HZ_PER_UNIT):+d}Hz"


def voice_from_edge(entry: dict, default_voice: str = DEFAULT_VOICE) -> Voice:
    short_name = entry["ShortName"]
    return Voice(
        id=short_name,
        name=entry.get("FriendlyName") or short_name,
        lang=entry.get("Locale", ""),
        default=short_name == default_voice,
    )


class PacedSink:
    """Renders clips in real time without an audio device.

    Waits for each clip's duration, holding while paused, and fires timed cues
    (word boundaries) as playback passes them. With ``save_dir`` every clip is
    also exported as a numbered MP3.
    """

    def __init__(self, save_dir: str | None = None, tick: float = PACED_SINK_TICK_SECONDS):
        self.save_dir = save_dir
        self.tick = tick
        self._resumed = asyncio.Event()
        self._resumed.set()
        self._count = 0

    @property
    def paused(self) -> bool:
        return not self._resumed.is_set()

    def pause(self) -> None:
        self._resumed.clear()

    def resume(self) -> None:
        self._resumed.set()

    async def wait_resumed(self) -> None:
        """Return once the sink is not paused."""
        await self._resumed.wait()

    def _export(self, clip: AudioSegment) -> None:
        os.makedirs(self.save_dir, exist_ok=True)
        path = os.path.join(self.save_dir, f"{self._count:04d}.mp3")
        clip.export(path, format="mp3")

    async def play(self, clip: AudioSegment, cues=()) -> None:
        self._count += 1
        if self.save_dir:
            self._export(clip)

        duration = len(clip) / 1000
        pending = sorted(cues, key=lambda cue: cue[0])
        elapsed = 0.0
        while True:
            await self._resumed.wait()
            while pending and pending[0][0] <= elapsed:
                _, cue = pending.pop(0)
                cue()
            if elapsed >= duration:
                break
            step = min(self.tick, duration - elapsed)
            await asyncio.sleep(step)
            elapsed += step


class EdgeTTSProvider:
    """Speech provider backed by Microsoft Edge online TTS.

    Must be driven from a single asyncio event loop: ``speak`` schedules the
    rendering task on the running loop and every utterance callback fires from
    that loop.
    """

    def __init__(self, sink=None, default_voice: str = DEFAULT_VOICE):
        self.sink = sink if sink is not None else PacedSink()
        self.default_voice = default_voice
        self._voices: list[Voice] = []
        self._events = EventEmitter(["voices_changed"])
        self._current: tuple[Utterance, asyncio.Task] | None = None

    # --- Voices ---

    def list_voices(self) -> list[Voice]:
        return list(self._voices)

    def on_voices_changed(self, callback):
        self._events.on("voices_changed", callback)

    def off_voices_changed(self, callback):
        self._events.off("voices_changed", callback)

    async def load_voices(self) -> list[Voice]:
        """Fetch the voice catalog and notify voices-changed listeners."""
        entries = await edge_tts.list_voices()
        entries.sort(key=lambda v: (v.get("Locale", ""), v["ShortName"]))
        self._voices = [voice_from_edge(e, self.default_voice) for e in entries]
        logger.debug("Loaded %d edge-tts voices", len(self._voices))
        self._events.emit("voices_changed")
        return self.list_voices()

    # --- Playback ---

    @property
    def speaking(self) -> bool:
        return self._current is not None

    def speak(self, utterance: Utterance) -> None:
        self.cancel_current()
        self.sink.resume()
        task = asyncio.get_running_loop().create_task(self._render(utterance))
        self._current = (utterance, task)

    def cancel_current(self) -> None:
        if self._current is None:
            return
        utterance, task = self._current
        self._current = None
        task.cancel()
        asyncio.get_running_loop().call_soon(utterance.on_cancelled)

    def pause(self) -> None:
        self.sink.pause()

    def resume(self) -> None:
        self.sink.resume()

    def _is_current(self, utterance: Utterance) -> bool:
        return self._current is not None and self._current[0] is utterance

    async def _synthesize(self, utterance: Utterance):
        voice = utterance.voice.id if utterance.voice else self.default_voice
        communicate = edge_tts.Communicate(
            utterance.text,
            voice,
            rate=edge_rate(utterance.rate),
            pitch=edge_pitch(utterance.pitch),
            boundary="WordBoundary",
        )
        audio = bytearray()
        boundaries = []
        cursor = 0
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                audio.extend(chunk["data"])
            elif chunk["type"] == "WordBoundary":
                word = chunk["text"]
                index = utterance.text.find(word, cursor)
                if index < 0:
                    continue
                cursor = index + len(word)
                boundaries.append((chunk["offset"] / _TICKS_PER_SECOND, index, len(word)))
        clip = AudioSegment.from_file(io.BytesIO(bytes(audio)), format="mp3")
        return clip, boundaries

    async def _render(self, utterance: Utterance) -> None:
        try:
            clip, boundaries = await self._synthesize(utterance)
            cues = [
                (seconds, lambda i=index, n=length: utterance.on_boundary(i, n))
                for seconds, index, length in boundaries
            ]
            # Audio starts only once the sink is running
            await self.sink.wait_resumed()
            utterance.on_start()
            await self.sink.play(clip, cues)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Synthesis failed for utterance %d: %s", utterance.id, e)
            if self._is_current(utterance):
                self._current = None
            utterance.on_error(str(e) or type(e).__name__)
            return

        if self._is_current(utterance):
            self._current = None
        utterance.on_end()
