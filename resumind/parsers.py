# parsers.py
from __future__ import annotations
import io
import logging
import re
from typing import List

from pypdf import PdfReader
from pypdf.errors import PdfReadError

LOG = logging.getLogger("resumind.parsers")

# cap on the text sent to the model
MAX_TEXT_CHARS = 200000

_WS_RE = re.compile(r"[ \t]+")
_BLANKS_RE = re.compile(r"\n{3,}")

def _clean_text(b: bytes) -> str:
    """Fallback text decoding if the bytes are not a readable PDF."""
    return b.decode("utf-8", errors="ignore")

def _tidy(text: str) -> str:
    text = _WS_RE.sub(" ", text or "")
    return _BLANKS_RE.sub("\n\n", text).strip()

def extract_text_from_pdf(file_bytes: bytes) -> str:
    """Extract visible text from a PDF using pypdf.

    This ignores images (no OCR), but grabs all text from all pages.
    """
    try:
        reader = PdfReader(io.BytesIO(file_bytes))
        chunks: List[str] = []
        for page in reader.pages:
            try:
                t = page.extract_text() or ""
            except (PdfReadError, KeyError, ValueError):
                t = ""
            if t:
                chunks.append(t)
        text = "\n".join(chunks)
        LOG.debug("PDF text length: %d chars", len(text))
    except (PdfReadError, ValueError) as e:
        LOG.warning("PdfReader failed: %s", e)
        # Fall back to naive decoding if PDF parsing fails
        text = _clean_text(file_bytes)
    return _tidy(text)[:MAX_TEXT_CHARS]
