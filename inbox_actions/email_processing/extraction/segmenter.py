"""
Sentence segmentation for action extraction.

Splits an email body into ordered candidate sentences. Every sentence keeps
its offsets into the original body so the text shown to the user is always
a literal substring of what the sender wrote.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

# One code point in, one code point out: offsets computed on the
# normalized text are valid on the original body.
_TYPOGRAPHY_TABLE = str.maketrans({
    "\u2019": "'",  # right single quotation mark
    "\u2018": "'",
    "\u02bc": "'",
    "\u201a": "'",
    "`": "'",
    "\u00ab": '"',  # guillemets
    "\u00bb": '"',
    "\u201c": '"',
    "\u201d": '"',
    "\u201e": '"',
    "\u00a0": " ",  # non-breaking space
    "\u202f": " ",
})

_LINE = re.compile(r"[^\r\n]+")

# Sentence-final punctuation and list separators only split when followed
# by whitespace or the end of the line ("3.5", "10:30", "http://" stay whole).
_BOUNDARY = re.compile(r"[.!?…]+(?=\s|$)|[;:]+(?=\s|$)")
_PRECEDING_WORD = re.compile(r"([\w.]+)$")

ABBREVIATIONS = frozenset({
    "m", "mm", "mme", "mmes", "mlle", "mr", "dr", "pr",
    "etc", "cf", "ex", "p.ex", "env", "tel", "tél", "st", "ste",
    "av", "bd", "réf", "ref",
})

_LEADING_NOISE = re.compile(r"^(?:\s|[-•*–>]|\d{1,2}[.)](?=\s)|[\"'])+")
_TRAILING_NOISE = re.compile(r"(?:\s|[\"'])+$")


@dataclass(frozen=True)
class Sentence:
    """A candidate sentence and its ``[start, end)`` span in the body."""
    text: str
    start: int
    end: int


def normalize_typography(text: Optional[str]) -> str:
    """Map typographic apostrophes, quotes and spaces to their ASCII forms."""
    if not isinstance(text, str):
        return ""
    return text.translate(_TYPOGRAPHY_TABLE)


def _is_abbreviation(line: str, segment_start: int, boundary: "re.Match") -> bool:
    if boundary.group() != ".":
        return False
    word = _PRECEDING_WORD.search(line, segment_start, boundary.start())
    if not word:
        return False
    token = word.group(1).lower()
    if token in ABBREVIATIONS:
        return True
    # Enumerators such as "1. Peux-tu ..." at the start of a line
    return token.isdigit() and not line[segment_start:word.start()].strip()


def _trim(body: str, normalized: str, start: int, end: int) -> Optional[Sentence]:
    # Noise is matched on the normalized text, the span is cut from the body
    leading = _LEADING_NOISE.match(normalized[start:end])
    if leading:
        start += leading.end()
    segment = normalized[start:end]
    trailing = _TRAILING_NOISE.search(segment)
    if trailing:
        end = start + trailing.start()
    if end <= start:
        return None
    return Sentence(text=body[start:end], start=start, end=end)


def split_sentences(body: Optional[str]) -> List[Sentence]:
    """
    Split a raw email body into ordered, trimmed, non-empty sentences.

    Lines are split first, then sentence-final punctuation, then ``;`` and
    ``:`` list separators. Leading list markers and wrapping quotes are
    removed. Never raises: empty or non-string input yields an empty list.

    Args:
        body: Raw plain-text body

    Returns:
        Sentences in body order, each carrying its span in ``body``
    """
    if not isinstance(body, str) or not body.strip():
        return []

    normalized = normalize_typography(body)
    sentences: List[Sentence] = []

    for line_match in _LINE.finditer(normalized):
        line = line_match.group()
        offset = line_match.start()
        segment_start = 0

        for boundary in _BOUNDARY.finditer(line):
            if _is_abbreviation(line, segment_start, boundary):
                continue
            sentence = _trim(body, normalized, offset + segment_start, offset + boundary.start())
            if sentence:
                sentences.append(sentence)
            segment_start = boundary.end()

        sentence = _trim(body, normalized, offset + segment_start, offset + len(line))
        if sentence:
            sentences.append(sentence)

    return sentences
