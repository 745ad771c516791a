# services.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable

from flask import current_app

from resumind.storage import UserKV, FileStore


@dataclass
class Services:
    """External collaborators the routes and the pipeline talk to."""
    kv_backend: Any
    file_store: FileStore
    ai: Any
    convert_pdf: Callable
    blobs: Any
    scopes: Any

    def kv_for(self, email: str) -> UserKV:
        return UserKV(self.kv_backend, (email or "").lower().strip())

    def files_for(self, email: str):
        return self.file_store.for_user(email)


def get_services() -> Services:
    return current_app.extensions["resumind"]
