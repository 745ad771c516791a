# pdf2img.py
from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Optional

import fitz  # PyMuPDF

LOG = logging.getLogger("resumind.pdf2img")

# first page only, rendered at 4x for a crisp preview
RENDER_SCALE = 4


@dataclass
class ConversionResult:
    file: Optional[bytes]
    filename: str
    error: Optional[str] = None


def preview_name(pdf_name: str) -> str:
    base = re.sub(r"\.pdf$", "", pdf_name or "resume", flags=re.I)
    return f"{base}.png"


def convert_pdf_to_image(data: bytes, filename: str) -> ConversionResult:
    """Render page 1 of a PDF to PNG bytes. Never raises; failures land in ``error``."""
    name = preview_name(filename)
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            if doc.page_count == 0:
                return ConversionResult(None, name, "PDF has no pages")
            page = doc.load_page(0)
            pix = page.get_pixmap(matrix=fitz.Matrix(RENDER_SCALE, RENDER_SCALE))
            png = pix.tobytes("png")
    except Exception as e:  # PyMuPDF raises several unrelated types for broken files
        LOG.warning("PDF conversion failed for %s: %s", filename, e)
        return ConversionResult(None, name, f"Failed to convert PDF: {e}")
    LOG.info("rendered preview %s (%d bytes)", name, len(png))
    return ConversionResult(png, name)
