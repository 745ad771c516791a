# auth_store.py
from __future__ import annotations
import json
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from passlib.hash import pbkdf2_sha256

from resumind.storage import USERS_NS


def _user_key(email: str) -> str:
    return f"user:{_norm_email(email)}"

def _norm_email(email: str) -> str:
    return (email or "").lower().strip()

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

# -------- Users --------
def find_user(kv, email: str) -> Optional[Dict[str, Any]]:
    raw = kv.get(USERS_NS, _user_key(email))
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None

def _hash_password(pw: str) -> str:
    return pbkdf2_sha256.hash(pw)

def verify_password(pw: str, pw_hash: str) -> bool:
    try:
        return pbkdf2_sha256.verify(pw, pw_hash)
    except (ValueError, TypeError):
        return False

def create_user(kv, email: str, password: str, name: str = "", roles: Optional[List[str]] = None) -> Dict[str, Any]:
    if find_user(kv, email):
        raise ValueError("email_already_exists")
    doc = {
        "email": _norm_email(email),
        "pw_hash": _hash_password(password),
        "name": (name or "").strip(),
        "roles": roles or ["user"],
        "created_at": _now_iso(),
        "updated_at": _now_iso(),
    }
    kv.set(USERS_NS, _user_key(email), json.dumps(doc))
    return doc

def seed_admin(kv, email: str, password: str, name: str = "Admin") -> Dict[str, Any]:
    existing = find_user(kv, email) or {}
    doc = {
        **existing,
        "email": _norm_email(email),
        "name": name,
        "roles": ["admin"],
        "pw_hash": _hash_password(password),
        "updated_at": _now_iso(),
    }
    doc.setdefault("created_at", _now_iso())
    kv.set(USERS_NS, _user_key(email), json.dumps(doc))
    return doc
