"""Plain-text extraction from PDF and EPUB files."""

import logging
import re
import zipfile

from bs4 import BeautifulSoup
from ebooklib import ITEM_DOCUMENT, epub
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from rsvp_pacer.errors import SourceReadError, UnsupportedFormat

logger = logging.getLogger(__name__)


def normalize_whitespace(text: str) -> str:
    """Collapse runs of spaces, keep paragraph breaks (at most one blank line)."""
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n[ \t]+", "\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def extract_pdf_text(path: str) -> str:
    try:
        reader = PdfReader(path)
    except (OSError, PdfReadError) as e:
        raise SourceReadError(f"PDF file cannot be read: {path}: {e}") from e
    if reader.is_encrypted:
        raise SourceReadError(f"PDF is encrypted and cannot be read: {path}")

    pages = []
    for i, page in enumerate(reader.pages):
        try:
            pages.append(page.extract_text() or "")
        except (PdfReadError, KeyError, ValueError) as e:
            logger.warning("Skipping unreadable page %d of %s: %s", i + 1, path, e)
    text = normalize_whitespace("\n\n".join(pages))
    if not text:
        raise SourceReadError(f"PDF contains no extractable text: {path}")
    return text


_BLOCK_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "p", "li", "blockquote", "pre", "div"]


def _html_to_text(content: bytes) -> str:
    soup = BeautifulSoup(content, "html.parser")
    for tag in soup(["script", "style", "nav"]):
        tag.decompose()
    # One line per innermost block so headings stay on their own line
    lines = []
    for block in soup.find_all(_BLOCK_TAGS):
        if block.find(_BLOCK_TAGS):
            continue
        line = " ".join(block.get_text().split())
        if line:
            lines.append(line)
    if not lines:
        lines = [soup.get_text(separator=" ", strip=True)]
    return normalize_whitespace("\n".join(lines))


def extract_epub_text(path: str) -> str:
    try:
        book = epub.read_epub(path)
    except (OSError, KeyError, zipfile.BadZipFile, epub.EpubException) as e:
        raise SourceReadError(f"EPUB file cannot be read: {path}: {e}") from e

    parts = []
    for item in book.get_items_of_type(ITEM_DOCUMENT):
        text = _html_to_text(item.get_content())
        if text:
            parts.append(text)
    if not parts:
        raise SourceReadError(f"EPUB contains no readable text: {path}")
    return "\n\n".join(parts)


EXTRACTORS = {
    ".pdf": extract_pdf_text,
    ".epub": extract_epub_text,
}


def extract_text(path: str, extension: str) -> str:
    extractor = EXTRACTORS.get(extension.lower())
    if extractor is None:
        raise UnsupportedFormat(extension)
    logger.debug("Extracting text from %s", path)
    return extractor(path)
