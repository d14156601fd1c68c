"""Shared fixtures for chapter reader tests."""

import pytest
from pydub import AudioSegment

from chapter_reader.engine import PlaybackEngine
from chapter_reader.models import Chapter, Voice


class FakeProvider:
    """Records utterances; tests fire lifecycle callbacks by hand."""

    def __init__(self, voices=None):
        self.voices = list(voices or [])
        self.spoken = []
        self.calls = []
        self.current = None
        self._voice_listeners = []

    def speak(self, utterance):
        self.calls.append("speak")
        self.spoken.append(utterance)
        self.current = utterance

    def cancel_current(self):
        self.calls.append("cancel")
        utterance, self.current = self.current, None
        if utterance is not None:
            utterance.on_cancelled()

    def pause(self):
        self.calls.append("pause")

    def resume(self):
        self.calls.append("resume")

    def list_voices(self):
        return list(self.voices)

    def on_voices_changed(self, callback):
        self._voice_listeners.append(callback)

    def off_voices_changed(self, callback):
        self._voice_listeners.remove(callback)

    def set_voices(self, voices):
        self.voices = list(voices)
        for callback in list(self._voice_listeners):
            callback()

    # --- Driving the current utterance ---

    def start(self):
        self.current.on_start()

    def boundary(self, char_index, char_length):
        self.current.on_boundary(char_index, char_length)

    def end(self):
        utterance, self.current = self.current, None
        utterance.on_end()

    def finish(self):
        """Start and end the current utterance."""
        self.start()
        self.end()

    def error(self, reason):
        utterance, self.current = self.current, None
        utterance.on_error(reason)

    @property
    def cancel_count(self):
        return self.calls.count("cancel")


class Recorder:
    """Collects engine events as (name, *args) tuples."""

    NAMES = ("start", "sentence_change", "pause", "resume", "end", "error", "boundary")

    def __init__(self, engine):
        self.events = []
        for name in self.NAMES:
            engine.on(name, lambda *args, name=name: self.events.append((name, *args)))

    def names(self):
        return [e[0] for e in self.events]

    def count(self, name):
        return self.names().count(name)


@pytest.fixture
def sample_voices():
    return [
        Voice(id="en-US-AriaNeural", name="Aria", lang="en-US", default=True),
        Voice(id="en-GB-RyanNeural", name="Ryan", lang="en-GB"),
        Voice(id="fr-FR-DeniseNeural", name="Denise", lang="fr-FR"),
    ]


@pytest.fixture
def provider(sample_voices):
    return FakeProvider(voices=sample_voices)


@pytest.fixture
def engine(provider):
    return PlaybackEngine(provider)


@pytest.fixture
def recorder(engine):
    return Recorder(engine)


@pytest.fixture
def three_sentences():
    return "It was dark. Who's there? Nobody answered!"


@pytest.fixture
def chapters():
    return [
        Chapter(title="One", content="First one. First two. First three.", index=0),
        Chapter(title="Two", content="Second one. Second two.", index=1),
    ]


@pytest.fixture
def short_clip():
    """A 100ms silent clip; building it needs no ffmpeg."""
    return AudioSegment.silent(duration=100)
