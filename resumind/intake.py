# intake.py
"""Validation for the resume file picked on the upload page.

Exactly one PDF, at most ``MAX_FILE_SIZE`` bytes. Rejections use the same
codes a drag-and-drop picker reports so the page can show a precise hint.
"""
from __future__ import annotations
import mimetypes
from dataclasses import dataclass
from typing import List, Optional

from resumind.helpers import format_size

PDF_MIME = "application/pdf"
PDF_EXT = ".pdf"
DEFAULT_MAX_SIZE = 20 * 1024 * 1024

TOO_MANY_FILES = "too-many-files"
INVALID_TYPE = "file-invalid-type"
TOO_LARGE = "file-too-large"
EMPTY = "file-empty"


class FileRejected(ValueError):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class AcceptedFile:
    filename: str
    mimetype: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def _is_pdf(filename: str, mimetype: Optional[str]) -> bool:
    mime = (mimetype or "").split(";")[0].strip().lower()
    if not mime or mime == "application/octet-stream":
        mime = mimetypes.guess_type(filename or "")[0] or ""
    return mime == PDF_MIME or (filename or "").lower().endswith(PDF_EXT)


def check_file(filename: str, mimetype: Optional[str], size: int, max_size: int = DEFAULT_MAX_SIZE) -> None:
    if not _is_pdf(filename, mimetype):
        raise FileRejected(INVALID_TYPE, "Only PDF resumes are supported.")
    if size > max_size:
        raise FileRejected(TOO_LARGE, f"The resume must be {format_size(max_size)} or smaller.")
    if size == 0:
        raise FileRejected(EMPTY, "The selected file is empty.")


def accept_upload(files: List, max_size: int = DEFAULT_MAX_SIZE) -> Optional[AcceptedFile]:
    """Pick the resume out of the uploaded file list.

    ``files`` holds werkzeug ``FileStorage`` objects. Returns ``None`` when
    nothing was selected and raises ``FileRejected`` for anything else that
    is not a single acceptable PDF.
    """
    picked = [f for f in files if f is not None and f.filename]
    if not picked:
        return None
    if len(picked) > 1:
        raise FileRejected(TOO_MANY_FILES, "Upload a single resume at a time.")

    f = picked[0]
    # size check before reading everything into memory
    f.stream.seek(0, 2)
    size = f.stream.tell()
    f.stream.seek(0)
    check_file(f.filename, f.mimetype, size, max_size)
    return AcceptedFile(filename=f.filename, mimetype=PDF_MIME, data=f.read())
