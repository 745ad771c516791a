# auth.py
from __future__ import annotations
import logging
import os
import re
from functools import wraps
from urllib.parse import urlparse

from flask import Blueprint, request, jsonify, redirect, render_template, url_for
from flask_jwt_extended import (
    create_access_token, get_jwt_identity, set_access_cookies,
    unset_jwt_cookies, verify_jwt_in_request,
)
from flask_jwt_extended.exceptions import JWTExtendedException
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from jwt.exceptions import PyJWTError

from resumind.auth_store import find_user, create_user, verify_password, seed_admin
from resumind.services import get_services

LOG = logging.getLogger("resumind.auth")

auth_bp = Blueprint("auth", __name__)

# rate limiter; will be bound to app in init_auth()
limiter = Limiter(key_func=get_remote_address, default_limits=["200/hour"])

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

def _password_ok(p: str) -> bool:
    # Min 8 chars, at least 1 letter & 1 digit
    return bool(len(p) >= 8 and re.search(r"[A-Za-z]", p) and re.search(r"\d", p))

def safe_next(target: str | None) -> str:
    """Only local absolute paths are valid redirect targets."""
    if not target or not target.startswith("/") or target.startswith("//") or "\\" in target:
        return "/"
    parsed = urlparse(target)
    if parsed.scheme or parsed.netloc:
        return "/"
    return target

def current_identity() -> str | None:
    try:
        verify_jwt_in_request(optional=True)
        return get_jwt_identity()
    except (JWTExtendedException, PyJWTError) as e:
        LOG.info("token rejected: %s", e)
        return None

def page_login_required(fn):
    """Send anonymous browsers to the sign-in page, remembering where they were going."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_identity():
            target = request.full_path if request.query_string else request.path
            return redirect(url_for("auth.auth_page", next=target))
        return fn(*args, **kwargs)
    return wrapper

def _credentials():
    if request.is_json:
        data = request.get_json(silent=True) or {}
    else:
        data = request.form
    return (
        (data.get("email") or "").strip().lower(),
        data.get("password") or "",
        (data.get("name") or "").strip(),
        safe_next(data.get("next") or request.args.get("next")),
    )

def _issue(email: str, roles, status: int, next_url: str):
    token = create_access_token(identity=email, additional_claims={"roles": roles, "email": email})
    if request.is_json:
        resp = jsonify({"access_token": token, "token_type": "Bearer"})
        resp.status_code = status
    else:
        resp = redirect(next_url)
    set_access_cookies(resp, token)
    return resp

def _fail(message: str, status: int, mode: str, next_url: str, email: str = ""):
    if request.is_json:
        return jsonify({"error": message}), status
    return render_template("auth.html", mode=mode, error=message, next=next_url, email=email), status

@auth_bp.get("/auth")
def auth_page():
    next_url = safe_next(request.args.get("next"))
    if current_identity():
        return redirect(next_url)
    mode = "register" if request.args.get("mode") == "register" else "login"
    return render_template("auth.html", mode=mode, error=None, next=next_url, email="")

@auth_bp.post("/auth/login")
@limiter.limit("10/minute")
def login():
    """
    Request: { "email": "...", "password": "..." } (JSON or form)
    Response: JSON token for API clients, cookie + redirect to `next` for browsers.
    """
    email, password, _, next_url = _credentials()
    if not email or not password:
        return _fail("email and password are required", 400, "login", next_url, email)

    user = find_user(get_services().kv_backend, email)
    if not user or not verify_password(password, user.get("pw_hash", "")):
        LOG.info("failed login for %s", email)
        return _fail("invalid credentials", 401, "login", next_url, email)

    return _issue(user["email"], user.get("roles", []), 200, next_url)

@auth_bp.post("/auth/register")
@limiter.limit("5/minute")
def register():
    """
    Request: { "email": "...", "password": "...", "name": "..." }
    Signs the new user in on success.
    """
    email, password, name, next_url = _credentials()
    if not email or not password:
        return _fail("email and password are required", 400, "register", next_url, email)
    if not EMAIL_RE.match(email):
        return _fail("invalid email format", 400, "register", next_url, email)
    if not _password_ok(password):
        return _fail("password too weak (min 8 chars, include letters & digits)", 400, "register", next_url, email)

    try:
        create_user(get_services().kv_backend, email, password, name=name, roles=["user"])
    except ValueError as e:
        if str(e) == "email_already_exists":
            # generic message to reduce enumeration risk
            return _fail("unable to create account", 409, "register", next_url, email)
        raise

    LOG.info("registered %s", email)
    return _issue(email, ["user"], 201, next_url)

@auth_bp.post("/auth/logout")
def logout():
    if request.is_json:
        resp = jsonify({"ok": True})
    else:
        resp = redirect(url_for("auth.auth_page"))
    unset_jwt_cookies(resp)
    return resp

def _maybe_seed_admin_from_env(app):
    admin_email = os.getenv("ADMIN_EMAIL") or ""
    admin_pw = os.getenv("ADMIN_PASSWORD") or ""
    if admin_email and admin_pw:
        seed_admin(app.extensions["resumind"].kv_backend, admin_email, admin_pw)

def init_auth(app):
    """
    Call once from the app factory, after services are attached:
        app.register_blueprint(auth_bp)
        init_auth(app)
    """
    limiter.init_app(app)
    _maybe_seed_admin_from_env(app)
