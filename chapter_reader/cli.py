"""CLI interface: segment text, list voices, and read chapters aloud."""

import argparse
import asyncio
import logging
import os
import sys

from chapter_reader.constants import SETTINGS_FILENAME, VERSION
from chapter_reader.engine import PlaybackEngine
from chapter_reader.models import Chapter
from chapter_reader.provider import EdgeTTSProvider, PacedSink
from chapter_reader.segmenter import segment, split_paragraphs
from chapter_reader.sequencer import ChapterSequencer
from chapter_reader.settings import SettingsError, apply_settings, load_settings
from chapter_reader.voices import filter_voices


def _read_text(file_path: str) -> str:
    """Read a text file, exiting with an error if it is missing or empty."""
    if not os.path.exists(file_path):
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    with open(file_path, encoding="utf-8") as f:
        text = f.read()
    if not text.strip():
        print(f"Error: File is empty: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    return text


def load_chapters(paths: list[str]) -> list[Chapter]:
    """One chapter per file, titled after the file name."""
    chapters = []
    for i, path in enumerate(paths):
        title = os.path.splitext(os.path.basename(path))[0]
        chapters.append(Chapter(title=title, content=_read_text(path), index=i))
    return chapters


def cmd_segment(args):
    """Print the sentences of a text file."""
    text = _read_text(args.file)
    sentences = segment(text)
    for i, sentence in enumerate(sentences, start=1):
        print(f"{i:4d}  {sentence}")
    print(f"{len(sentences)} sentences in {len(split_paragraphs(text))} paragraphs")


def cmd_voices(args):
    """List available voices."""
    provider = EdgeTTSProvider()
    try:
        voices = asyncio.run(provider.load_voices())
    except Exception as e:
        print(f"Error: Could not load voices: {e}", file=sys.stderr)
        raise SystemExit(1)

    voices = filter_voices(voices, text=args.filter, lang=args.lang)
    if not voices:
        print("No matching voices found.")
        return
    print("Available voices:")
    for v in voices:
        marker = "*" if v.default else " "
        print(f" {marker} {v.id:<32} {v.lang:<8} {v.name}")


async def read_aloud(chapters: list[Chapter], settings, start_index: int = 0, sink=None) -> bool:
    """Read chapters aloud until playback ends. Returns False on a provider error."""
    provider = EdgeTTSProvider(sink=sink)
    await provider.load_voices()

    engine = PlaybackEngine(provider)
    apply_settings(engine, settings)
    if settings.voice and engine.voice is None:
        print(f"Warning: Voice '{settings.voice}' not found, using {provider.default_voice}")

    finished = asyncio.get_running_loop().create_future()
    failed = []

    def announce(index, chapter):
        print(f"Chapter {index + 1}/{len(chapters)}: {chapter.title}")

    def on_finished():
        if not finished.done():
            finished.set_result(None)

    sequencer = ChapterSequencer(
        engine,
        chapters,
        current_index=start_index,
        on_chapter_change=announce,
        on_finished=on_finished,
    )

    def on_sentence(index):
        position = engine.get_position()
        print(f"  [{sequencer.current_index + 1}/{sequencer.total_chapters}] "
              f"{index + 1}/{position.total_sentences} {engine.current_sentence}")

    def on_error(reason):
        print(f"Error: {reason}", file=sys.stderr)
        failed.append(reason)
        engine.stop()
        if not finished.done():
            finished.set_result(None)

    engine.on("sentence_change", on_sentence)
    engine.on("error", on_error)

    announce(start_index, chapters[start_index])
    sequencer.play()
    sequencer.auto_advance = settings.auto_advance
    try:
        await finished
    finally:
        sequencer.stop()
        sequencer.detach()
    return not failed


def cmd_read(args):
    """Read one or more chapter files aloud."""
    chapters = load_chapters(args.files)

    try:
        settings = load_settings(args.settings or SETTINGS_FILENAME)
    except SettingsError as e:
        print(f"Error: Invalid settings: {e}", file=sys.stderr)
        raise SystemExit(1)
    if args.voice is not None:
        settings.voice = args.voice
    if args.rate is not None:
        settings.rate = args.rate
    if args.pitch is not None:
        settings.pitch = args.pitch
    if args.no_auto_advance:
        settings.auto_advance = False

    start_index = args.start_chapter - 1
    if not 0 <= start_index < len(chapters):
        print(f"Error: --start-chapter must be between 1 and {len(chapters)}", file=sys.stderr)
        raise SystemExit(1)

    sink = PacedSink(save_dir=args.save_dir)
    try:
        ok = asyncio.run(read_aloud(chapters, settings, start_index, sink=sink))
    except KeyboardInterrupt:
        print("Stopped.")
        return
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)
    if not ok:
        raise SystemExit(1)
    print("Done.")


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="chapter-reader",
        description="Chapter Reader: listen to book chapters sentence by sentence",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # segment
    segment_parser = subparsers.add_parser("segment", help="Print the sentences of a text file")
    segment_parser.add_argument("file", help="Path to a chapter text file")
    segment_parser.set_defaults(func=cmd_segment)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--filter", help="Filter voices by substring")
    voices_parser.add_argument("--lang", help="Filter voices by language prefix, e.g. en or en-GB")
    voices_parser.set_defaults(func=cmd_voices)

    # read
    read_parser = subparsers.add_parser("read", help="Read chapter files aloud")
    read_parser.add_argument("files", nargs="+", help="Chapter text files, in reading order")
    read_parser.add_argument("--voice", help="Voice id, name, or language prefix")
    read_parser.add_argument("--rate", type=float, help="Speech rate, 0.5 to 3.0")
    read_parser.add_argument("--pitch", type=float, help="Speech pitch, 0.0 to 2.0")
    read_parser.add_argument("--settings", help=f"Settings JSON file (default: ./{SETTINGS_FILENAME})")
    read_parser.add_argument("--start-chapter", type=int, default=1, help="1-based chapter to start from")
    read_parser.add_argument("--no-auto-advance", action="store_true", help="Stop after the first chapter")
    read_parser.add_argument("--save-dir", help="Also export each spoken sentence as MP3 here")
    read_parser.set_defaults(func=cmd_read)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)
