# storage.py
from __future__ import annotations
import hashlib
import logging
import os
import re
import secrets
from datetime import datetime, timezone
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from cryptography.fernet import Fernet, InvalidToken
from pymongo import MongoClient, ASCENDING
from werkzeug.utils import secure_filename

LOG = logging.getLogger("resumind.storage")

# Namespace holding user accounts; every other namespace belongs to one user.
USERS_NS = "_users"


def _literal_prefix(pattern: str) -> str:
    """Longest leading part of a glob pattern with no wildcard in it."""
    m = re.search(r"[*?\[]", pattern)
    return pattern if m is None else pattern[: m.start()]


# -------- Key-value backends --------
class MemoryKV:
    """In-process store, used in development and tests."""

    def __init__(self):
        self._data: Dict[Tuple[str, str], str] = {}

    def get(self, ns: str, key: str) -> Optional[str]:
        return self._data.get((ns, key))

    def set(self, ns: str, key: str, value: str) -> bool:
        self._data[(ns, key)] = value
        return True

    def list(self, ns: str, pattern: str) -> List[Tuple[str, str]]:
        return sorted(
            (k, v) for (n, k), v in self._data.items()
            if n == ns and fnmatchcase(k, pattern)
        )


class MongoKV:
    """One document per (ns, key) in a single collection."""

    def __init__(self, uri: str, db_name: str, collection: str = "kv"):
        self._uri = uri
        self._db_name = db_name
        self._collection = collection
        self._client: Optional[MongoClient] = None
        self._col = None

    def _get_col(self):
        if self._col is not None:
            return self._col
        self._client = MongoClient(self._uri, serverSelectionTimeoutMS=5000)
        self._col = self._client[self._db_name][self._collection]
        # Ensure index once
        self._col.create_index([("ns", ASCENDING), ("key", ASCENDING)], unique=True, name="uniq_ns_key")
        return self._col

    def get(self, ns: str, key: str) -> Optional[str]:
        doc = self._get_col().find_one({"ns": ns, "key": key}, {"_id": 0, "value": 1})
        return doc.get("value") if doc else None

    def set(self, ns: str, key: str, value: str) -> bool:
        now = datetime.now(timezone.utc)
        self._get_col().update_one(
            {"ns": ns, "key": key},
            {"$set": {"value": value, "updated_at": now}, "$setOnInsert": {"created_at": now}},
            upsert=True,
        )
        return True

    def list(self, ns: str, pattern: str) -> List[Tuple[str, str]]:
        query: Dict[str, Any] = {"ns": ns}
        prefix = _literal_prefix(pattern)
        if prefix:
            query["key"] = {"$regex": "^" + re.escape(prefix)}
        cur = self._get_col().find(query, {"_id": 0, "key": 1, "value": 1}).sort("key", ASCENDING)
        # the prefix narrows the scan; the glob decides
        return [(d["key"], d.get("value")) for d in cur if fnmatchcase(d["key"], pattern)]


class UserKV:
    """Key-value view bound to one namespace (one signed-in user)."""

    def __init__(self, backend, ns: str):
        self._backend = backend
        self.ns = ns

    def get(self, key: str) -> Optional[str]:
        return self._backend.get(self.ns, key)

    def set(self, key: str, value: str) -> bool:
        return self._backend.set(self.ns, key, value)

    def list(self, pattern: str = "*", return_values: bool = False):
        items = self._backend.list(self.ns, pattern)
        if return_values:
            return [{"key": k, "value": v} for k, v in items]
        return [k for k, _ in items]


# -------- File store (uploads on local disk, optionally Fernet-encrypted) --------
def owner_dir(owner: str) -> str:
    return hashlib.sha256((owner or "").lower().strip().encode("utf-8")).hexdigest()[:24]


class FileStore:
    def __init__(self, root: str, fernet_key: Optional[str] = None):
        self.root = Path(root).resolve()
        self.fernet = Fernet(fernet_key.encode()) if fernet_key else None
        os.makedirs(self.root, exist_ok=True)

    def for_user(self, owner: str) -> "UserFiles":
        return UserFiles(self, owner_dir(owner))


class UserFiles:
    def __init__(self, store: FileStore, subdir: str):
        self._store = store
        self._subdir = subdir
        self._base = store.root / subdir

    def upload(self, filename: str, data: bytes) -> Optional[Dict[str, Any]]:
        """Write one file; returns {"path","name","size"} or None when the write fails."""
        safe_name = secure_filename(filename or "") or "file"
        rel_path = f"{self._subdir}/{secrets.token_hex(8)}_{safe_name}"
        payload = self._store.fernet.encrypt(data) if self._store.fernet else data
        try:
            os.makedirs(self._base, exist_ok=True)
            with open(self._store.root / rel_path, "wb") as fh:
                fh.write(payload)
        except OSError as e:
            LOG.error("write failed for %s: %s", rel_path, e)
            return None
        LOG.info("stored %s (%d bytes)", rel_path, len(data))
        return {"path": rel_path, "name": safe_name, "size": len(data)}

    def read(self, path: str) -> Optional[bytes]:
        if not path:
            return None
        full = (self._store.root / path).resolve()
        # only this user's directory is readable
        if self._base.resolve() not in full.parents or not full.is_file():
            return None
        with open(full, "rb") as fh:
            raw = fh.read()
        if not self._store.fernet:
            return raw
        try:
            return self._store.fernet.decrypt(raw)
        except InvalidToken:
            LOG.error("could not decrypt %s", path)
            return None


def build_kv(config) -> Any:
    backend = (config.get("KV_BACKEND") or "memory").lower()
    if backend == "mongo":
        return MongoKV(config["MONGO_URI"], config["MONGO_DB"])
    if backend == "memory":
        return MemoryKV()
    raise RuntimeError(f"unknown KV_BACKEND: {backend}")


def build_file_store(config) -> FileStore:
    return FileStore(config["UPLOAD_DIR"], config.get("FERNET_KEY"))
