# blobs.py
"""Short-lived URLs for bytes read out of the file store.

A page that shows a stored PDF or preview gets an object URL under
``/blobs/<token>`` for each file. URLs belong to a ``ViewScope`` (one
mounted page). Closing the scope, either because the same user opened
another page or because the page sent its unload beacon, revokes every
URL it holds. A load that finishes after its scope was closed revokes what
it created instead of handing it out.
"""
from __future__ import annotations
import logging
import secrets
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from resumind.helpers import _now
from resumind.resumes import ResumeDataError, load_record

LOG = logging.getLogger("resumind.blobs")

URL_PREFIX = "/blobs/"


@dataclass
class Blob:
    data: bytes
    mimetype: str
    created_at: float = field(default_factory=_now)


def _token(url: str) -> str:
    return url[len(URL_PREFIX):] if url.startswith(URL_PREFIX) else url


class BlobRegistry:
    def __init__(self, max_age: Optional[float] = None):
        self.max_age = max_age
        self._lock = threading.Lock()
        self._blobs: Dict[str, Blob] = {}
        self.created = 0
        self.revoked = 0

    @property
    def live(self) -> int:
        with self._lock:
            return len(self._blobs)

    def create_object_url(self, data: bytes, mimetype: str) -> str:
        self.sweep()
        token = secrets.token_urlsafe(18)
        with self._lock:
            self._blobs[token] = Blob(data, mimetype, _now())
            self.created += 1
        return URL_PREFIX + token

    def revoke_object_url(self, url: str) -> bool:
        with self._lock:
            blob = self._blobs.pop(_token(url), None)
            if blob is not None:
                self.revoked += 1
        return blob is not None

    def resolve(self, token: str) -> Optional[Blob]:
        with self._lock:
            return self._blobs.get(token)

    def sweep(self) -> int:
        """Revoke URLs older than ``max_age``; returns how many went."""
        if not self.max_age:
            return 0
        cutoff = _now() - self.max_age
        with self._lock:
            stale = [t for t, b in self._blobs.items() if b.created_at < cutoff]
            for t in stale:
                del self._blobs[t]
            self.revoked += len(stale)
        if stale:
            LOG.info("expired %d blob urls", len(stale))
        return len(stale)


class ViewScope:
    """Object URLs handed to one mounted page."""

    def __init__(self, registry: BlobRegistry):
        self._registry = registry
        self._lock = threading.Lock()
        self._urls: List[str] = []
        self.id = secrets.token_urlsafe(12)
        self.cancelled = False

    @property
    def urls(self) -> List[str]:
        with self._lock:
            return list(self._urls)

    def track(self, url: str) -> bool:
        with self._lock:
            if not self.cancelled:
                self._urls.append(url)
                return True
        self._registry.revoke_object_url(url)
        return False

    def close(self) -> None:
        with self._lock:
            self.cancelled = True
            urls, self._urls = self._urls, []
        for url in urls:
            self._registry.revoke_object_url(url)


class ViewScopes:
    """The current scope of each user; opening a new page supersedes the old one."""

    def __init__(self, registry: BlobRegistry):
        self.registry = registry
        self._lock = threading.Lock()
        self._scopes: Dict[str, ViewScope] = {}

    def open(self, owner: str) -> ViewScope:
        scope = ViewScope(self.registry)
        with self._lock:
            previous = self._scopes.get(owner)
            self._scopes[owner] = scope
        if previous is not None:
            previous.close()
        return scope

    def release(self, owner: str, scope_id: Optional[str] = None) -> bool:
        """Close the owner's current scope.

        With ``scope_id`` only that page is released; a beacon from a page
        that was already superseded leaves the newer page alone.
        """
        with self._lock:
            scope = self._scopes.get(owner)
            if scope is None or (scope_id is not None and scope.id != scope_id):
                return False
            del self._scopes[owner]
        scope.close()
        return True


@dataclass
class ResumeAssets:
    record: Dict[str, Any]
    resume_url: str
    image_url: str

    @property
    def feedback(self) -> Optional[Dict[str, Any]]:
        fb = self.record.get("feedback")
        return fb if isinstance(fb, dict) else None


def load_resume_assets(kv, files, registry: BlobRegistry, scope: ViewScope, resume_id: str) -> Optional[ResumeAssets]:
    """Load a record and expose its PDF and preview as object URLs.

    Returns None when the record does not exist or the scope was closed
    while loading. Raises ResumeDataError when the record or its files are
    unusable; no URL created here outlives a failure or a cancellation.
    """
    record = load_record(kv, resume_id)
    if record is None:
        return None

    created: List[str] = []
    try:
        resume_blob = files.read(record["resumePath"])
        if not resume_blob:
            raise ResumeDataError("Unable to locate the resume PDF.")
        resume_url = registry.create_object_url(resume_blob, "application/pdf")
        created.append(resume_url)

        image_blob = files.read(record["imagePath"])
        if not image_blob:
            raise ResumeDataError("Unable to locate the resume preview.")
        image_url = registry.create_object_url(image_blob, "image/png")
        created.append(image_url)
    except BaseException:
        for url in created:
            registry.revoke_object_url(url)
        raise

    if scope.cancelled:
        for url in created:
            registry.revoke_object_url(url)
        return None
    for url in created:
        if not scope.track(url):
            # closed between the check and the hand-off
            for other in created:
                registry.revoke_object_url(other)
            return None
    return ResumeAssets(record, resume_url, image_url)


def load_card_preview(files, registry: BlobRegistry, scope: ViewScope, image_path: str) -> Optional[str]:
    try:
        blob = files.read(image_path)
    except OSError as e:
        LOG.error("Failed to read resume preview %s: %s", image_path, e)
        return None
    if not blob:
        return None
    url = registry.create_object_url(blob, "image/png")
    return url if scope.track(url) else None
