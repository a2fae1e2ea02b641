"""
Email body normalization.

Every provider hands the extraction engine the same kind of text: decoded,
HTML-free plain text with typographic punctuation folded to ASCII. Bodies
are normalized on the fly for analysis and never stored.
"""

import html
import logging
import quopri
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from bs4 import BeautifulSoup

from inbox_actions.email_processing.extraction.segmenter import normalize_typography

logger = logging.getLogger(__name__)

# Elements rendered as their own line so sentences never merge across them
BLOCK_ELEMENTS = [
    "p", "div", "br", "li", "tr", "h1", "h2", "h3", "h4", "h5", "h6",
    "blockquote", "section", "article", "table", "ul", "ol",
]

_QP_SOFT_BREAK = re.compile(r"=\r?\n")
_QP_ESCAPE = re.compile(r"=[0-9A-F]{2}")
_HTML_HINT = re.compile(r"<(?:html|body|div|p|br|span|table|td|a)\b", re.IGNORECASE)
_HORIZONTAL_SPACE = re.compile(r"[ \t]+")
_BLANK_LINES = re.compile(r"\n{3,}")


@dataclass
class ProcessedContent:
    """
    Normalized body ready for action extraction.
    """
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    processing_stats: Dict[str, Any] = field(default_factory=dict)


def looks_quoted_printable(text: str) -> bool:
    return bool(_QP_SOFT_BREAK.search(text)) or len(_QP_ESCAPE.findall(text)) >= 3


def decode_quoted_printable(text: str, charset: str = "utf-8") -> str:
    """Decode quoted-printable text, leaving it untouched when decoding fails."""
    try:
        return quopri.decodestring(text.encode(charset, errors="replace")).decode(charset, errors="replace")
    except (ValueError, LookupError) as e:
        logger.warning(f"Quoted-printable decoding failed: {str(e)}")
        return text


def html_to_text(content: str) -> str:
    """Convert an HTML body to plain text, one line per block element."""
    soup = BeautifulSoup(content, "html.parser")

    for element in soup(["script", "style", "head", "title"]):
        element.decompose()

    for element in soup.find_all(BLOCK_ELEMENTS):
        element.insert_before("\n")
        element.insert_after("\n")

    return soup.get_text()


class ContentPreprocessor:
    """
    Turns raw provider bodies into plain text for the extraction engine.

    Steps: quoted-printable decoding, HTML to text, entity decoding,
    typography normalization, whitespace cleanup. A body over
    ``max_chars`` is cut, the engine skips long sentences anyway.
    """

    def __init__(self, max_chars: int = 50000):
        self.max_chars = max_chars

    def preprocess_content(self, content: Optional[str], mime_type: Optional[str] = None) -> ProcessedContent:
        if not content:
            return ProcessedContent(content="", processing_stats={"original_length": 0})

        processing_stats = {"original_length": len(content)}
        text = content

        if looks_quoted_printable(text):
            text = decode_quoted_printable(text)
            processing_stats["quoted_printable"] = True

        is_html = (mime_type or "").lower() == "text/html" or bool(_HTML_HINT.search(text))
        if is_html:
            try:
                text = html_to_text(text)
            except Exception as e:
                logger.warning(f"HTML cleaning failed: {e}, returning original content")
            processing_stats["html"] = True

        text = html.unescape(text)
        text = normalize_typography(text)
        text = self._clean_whitespace(text)

        if len(text) > self.max_chars:
            text = text[:self.max_chars]
            processing_stats["truncated"] = True

        processing_stats["final_length"] = len(text)
        return ProcessedContent(
            content=text,
            metadata={"mime_type": "text/html" if is_html else "text/plain"},
            processing_stats=processing_stats,
        )

    @staticmethod
    def _clean_whitespace(text: str) -> str:
        lines = (_HORIZONTAL_SPACE.sub(" ", line).strip() for line in text.replace("\r\n", "\n").split("\n"))
        return _BLANK_LINES.sub("\n\n", "\n".join(lines)).strip()


def normalize_email_body(content: Optional[str], mime_type: Optional[str] = None) -> str:
    """Shortcut returning only the normalized text."""
    return ContentPreprocessor().preprocess_content(content, mime_type).content
