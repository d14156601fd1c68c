"""Split chapter text into sentences for playback."""

import re

# A sentence is a run of text ending in one or more of . ! ? that is followed
# by whitespace or the end of the text. Abbreviations ("Mr.") and quoted
# punctuation are not special-cased.
_SENTENCE_RE = re.compile(r"\S.*?[.!?]+(?=\s|$)", re.DOTALL)

_PARAGRAPH_RE = re.compile(r"\n\s*\n")


def segment(text: str) -> list[str]:
    """Split text into trimmed sentences, keeping terminal punctuation.

    Trailing text without terminal punctuation becomes the final sentence.
    Empty or whitespace-only input yields an empty list.
    """
    if not text or not text.strip():
        return []

    sentences = []
    end = 0
    for match in _SENTENCE_RE.finditer(text):
        sentence = match.group(0).strip()
        if sentence:
            sentences.append(sentence)
        end = match.end()

    remainder = text[end:].strip()
    if remainder:
        sentences.append(remainder)

    return sentences


def split_paragraphs(text: str) -> list[str]:
    """Split text on blank lines, dropping whitespace-only paragraphs."""
    return [p.strip() for p in _PARAGRAPH_RE.split(text) if p.strip()]
