"""Chapter sequencing: auto-advance to the next chapter at end of text."""

import logging
from typing import Callable

from chapter_reader.models import Chapter

logger = logging.getLogger(__name__)


class ChapterSequencer:
    """Moves a playback engine through a list of chapters.

    Listens for the engine's ``end`` event. When auto-advance is enabled and a
    later chapter exists, the host is told about the switch through
    ``on_chapter_change(index, chapter)`` and the next chapter is loaded.
    Otherwise ``on_finished()`` is called. Hosts should wait on it rather than
    on the engine's ``end``, which also fires at every chapter boundary.
    Manual navigation stops the engine before switching so no sentence of the
    old chapter keeps playing.
    """

    def __init__(
        self,
        engine,
        chapters: list[Chapter],
        current_index: int = 0,
        auto_advance: bool = True,
        on_chapter_change: Callable[[int, Chapter], None] | None = None,
        on_finished: Callable[[], None] | None = None,
    ):
        if chapters and not 0 <= current_index < len(chapters):
            raise IndexError(f"Chapter index {current_index} out of range")
        self.engine = engine
        self.chapters = list(chapters)
        self.current_index = current_index
        self.auto_advance = auto_advance
        self.on_chapter_change = on_chapter_change
        self.on_finished = on_finished
        self.engine.on("end", self._handle_end)

    def detach(self) -> None:
        self.engine.off("end", self._handle_end)

    @property
    def total_chapters(self) -> int:
        return len(self.chapters)

    @property
    def current_chapter(self) -> Chapter | None:
        if not self.chapters:
            return None
        return self.chapters[self.current_index]

    @property
    def has_next(self) -> bool:
        return self.current_index < len(self.chapters) - 1

    def _switch(self, index: int) -> Chapter:
        self.current_index = index
        chapter = self.chapters[index]
        logger.debug("Switched to chapter %d/%d", index + 1, len(self.chapters))
        if self.on_chapter_change is not None:
            self.on_chapter_change(index, chapter)
        return chapter

    def _handle_end(self) -> None:
        if not self.auto_advance or not self.has_next:
            logger.debug("Reading finished at chapter %d/%d", self.current_index + 1, len(self.chapters))
            if self.on_finished is not None:
                self.on_finished()
            return
        chapter = self._switch(self.current_index + 1)
        self.engine.load(chapter.content)

    # --- Host controls ---

    def play(self) -> None:
        """Start the current chapter from its first sentence."""
        chapter = self.current_chapter
        if chapter is None:
            return
        self.auto_advance = True
        self.engine.load(chapter.content)

    def toggle(self) -> None:
        """Play/pause button: pause, resume, or start the current chapter."""
        if self.engine.is_playing:
            self.engine.pause()
        elif self.engine.is_paused:
            self.engine.resume()
        else:
            self.play()

    def stop(self) -> None:
        """Stop playback and keep it stopped at the end of the chapter."""
        self.auto_advance = False
        self.engine.stop()

    def go_to(self, index: int) -> Chapter:
        """Switch chapter from outside the playback flow (manual navigation)."""
        if not 0 <= index < len(self.chapters):
            raise IndexError(f"Chapter index {index} out of range")
        self.engine.stop()
        return self._switch(index)

    def next_chapter(self) -> Chapter | None:
        if not self.has_next:
            return None
        return self.go_to(self.current_index + 1)

    def previous_chapter(self) -> Chapter | None:
        if self.current_index <= 0:
            return None
        return self.go_to(self.current_index - 1)
