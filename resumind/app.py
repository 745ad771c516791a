# app.py
from __future__ import annotations
import io
import logging
import os
import secrets
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from flask import (
    Blueprint, Flask, abort, current_app, jsonify, redirect, render_template, request, send_file, url_for,
)
from flask_cors import CORS
from flask_jwt_extended import JWTManager, get_jwt_identity, jwt_required
from flask_socketio import SocketIO, emit, join_room
from flask_talisman import Talisman
from pymongo.errors import PyMongoError
from werkzeug.exceptions import RequestEntityTooLarge

# --- Load env BEFORE importing config (so config sees env) ---
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(ENV_PATH)

# --- Local modules ---
from resumind.config import config_for_env, validate_required_secrets
from resumind.helpers import format_size
from resumind.auth import auth_bp, init_auth, current_identity, page_login_required
from resumind.blobs import BlobRegistry, ViewScopes, load_card_preview, load_resume_assets
from resumind.intake import FileRejected, accept_upload
from resumind.llm_client import FeedbackClient
from resumind.pdf2img import convert_pdf_to_image
from resumind.pipeline import (
    RETRY_HINT, AnalysisError, SubmissionError, analyze_resume, validate_submission,
)
from resumind.presenters import register_filters
from resumind.resumes import (
    ResumeDataError, dashboard_stats, has_feedback, highlight_tip, list_records,
    load_record, overall_score,
)
from resumind.services import Services, get_services
from resumind.storage import build_file_store, build_kv

LOG = logging.getLogger("resumind.app")

socketio = SocketIO()
web = Blueprint("web", __name__)
api = Blueprint("api", __name__, url_prefix="/api")

LIST_ERROR = "Unable to load your resumes right now. Please try again."
LOAD_ERROR = "An unexpected error occurred while loading the resume."

UPLOAD_TIPS = [
    "Upload PDF resumes up to {size}.",
    "Add the job description so the AI can tailor recommendations.",
    "You will get structure, tone, and skills suggestions in minutes.",
]


# ------------------------------
# Pages
# ------------------------------
@web.get("/")
@page_login_required
def home():
    owner = get_jwt_identity()
    svc = get_services()
    records, error = [], None
    try:
        records = list_records(svc.kv_for(owner))
    except (ValueError, PyMongoError) as e:
        LOG.error("Failed to load resumes for %s: %s", owner, e)
        error = LIST_ERROR

    scope = svc.scopes.open(owner)
    files = svc.files_for(owner)
    cards = []
    for record in records:
        cards.append({
            "record": record,
            "reviewed": has_feedback(record),
            "score": overall_score(record),
            "tip": highlight_tip(record.get("feedback")),
            "preview_url": load_card_preview(files, svc.blobs, scope, record.get("imagePath")),
        })
    return render_template("home.html", cards=cards, stats=dashboard_stats(records), error=error, scope_id=scope.id)


def _render_upload(error: Optional[str] = None, status: Optional[str] = None,
                   form: Optional[Dict[str, Any]] = None, code: int = 200):
    max_size = format_size(current_app.config["MAX_FILE_SIZE"])
    return render_template(
        "upload.html",
        error=error,
        status=status,
        form=form or {},
        channel=secrets.token_hex(12),
        max_size=max_size,
        tips=[t.format(size=max_size) for t in UPLOAD_TIPS],
    ), code


@web.route("/upload", methods=["GET", "POST"])
@page_login_required
def upload():
    if request.method == "GET":
        return _render_upload()

    owner = get_jwt_identity()
    form = {
        "company_name": (request.form.get("company-name") or "").strip(),
        "job_title": (request.form.get("job-title") or "").strip(),
        "job_description": (request.form.get("job-description") or "").strip(),
    }
    channel = request.form.get("channel") or ""

    try:
        accepted = accept_upload(request.files.getlist("file"), current_app.config["MAX_FILE_SIZE"])
        validate_submission(accepted, form["job_title"])
    except (FileRejected, SubmissionError) as e:
        return _render_upload(error=str(e), form=form, code=400)

    def on_status(status: str) -> None:
        if channel:
            socketio.emit("status", {"status": status}, to=channel)

    try:
        resume_id = analyze_resume(
            get_services(), owner, accepted,
            form["company_name"], form["job_title"], form["job_description"],
            on_status=on_status,
        )
    except AnalysisError as e:
        on_status(RETRY_HINT)
        return _render_upload(error=str(e), status=RETRY_HINT, form=form, code=502)
    return redirect(url_for("web.resume_detail", resume_id=resume_id))


@web.get("/resume/<resume_id>")
@page_login_required
def resume_detail(resume_id: str):
    owner = get_jwt_identity()
    svc = get_services()
    scope = svc.scopes.open(owner)
    assets, error = None, None
    try:
        assets = load_resume_assets(svc.kv_for(owner), svc.files_for(owner), svc.blobs, scope, resume_id)
    except ResumeDataError as e:
        LOG.error("Failed to load resume %s: %s", resume_id, e)
        error = str(e)
    except (OSError, PyMongoError):
        LOG.exception("Failed to load resume %s", resume_id)
        error = LOAD_ERROR
    return render_template(
        "resume.html",
        resume_id=resume_id,
        assets=assets,
        feedback=assets.feedback if assets else None,
        error=error,
        scope_id=scope.id,
    )


# ------------------------------
# Object URLs
# ------------------------------
@web.get("/blobs/<token>")
def blob(token: str):
    found = get_services().blobs.resolve(token)
    if found is None:
        abort(404)
    return send_file(io.BytesIO(found.data), mimetype=found.mimetype, max_age=0)


@web.post("/blobs/release")
def release_blobs():
    """Unload beacon: the page is gone, drop its object URLs."""
    owner = current_identity()
    if owner:
        get_services().scopes.release(owner, request.form.get("scope") or None)
    return "", 204


@web.get("/health")
def health():
    return jsonify({"ok": True})


# ------------------------------
# JSON API
# ------------------------------
@api.get("/resumes")
@jwt_required()
def api_list_resumes():
    kv = get_services().kv_for(get_jwt_identity())
    try:
        records = list_records(kv)
    except (ValueError, PyMongoError) as e:
        LOG.error("Failed to load resumes: %s", e)
        return jsonify({"error": LIST_ERROR}), 500
    return jsonify({"resumes": records, "stats": dashboard_stats(records)})


@api.get("/resumes/<resume_id>")
@jwt_required()
def api_get_resume(resume_id: str):
    kv = get_services().kv_for(get_jwt_identity())
    try:
        record = load_record(kv, resume_id)
    except ResumeDataError as e:
        return jsonify({"error": str(e)}), 422
    if record is None:
        return jsonify({"error": "Unknown resume id"}), 404
    return jsonify(record)


@api.post("/resumes")
@jwt_required()
def api_create_resume():
    owner = get_jwt_identity()
    company_name = (request.form.get("companyName") or "").strip()
    job_title = (request.form.get("jobTitle") or "").strip()
    job_description = (request.form.get("jobDescription") or "").strip()
    try:
        accepted = accept_upload(request.files.getlist("file"), current_app.config["MAX_FILE_SIZE"])
        validate_submission(accepted, job_title)
    except FileRejected as e:
        return jsonify({"error": e.message, "code": e.code}), 400
    except SubmissionError as e:
        return jsonify({"error": str(e)}), 400

    statuses = []
    try:
        resume_id = analyze_resume(get_services(), owner, accepted, company_name, job_title,
                                   job_description, on_status=statuses.append)
    except AnalysisError as e:
        return jsonify({"error": str(e), "statuses": statuses}), 502
    record = load_record(get_services().kv_for(owner), resume_id)
    return jsonify({"id": resume_id, "statuses": statuses, "resume": record}), 201


# ------------------------------
# Status channel
# ------------------------------
@socketio.on("join_upload")
def on_join_upload(data):
    channel = (data or {}).get("channel")
    if not channel:
        emit("error", {"error": "missing channel"})
        return
    join_room(channel)


def _too_large(_e):
    message = f"The resume must be {format_size(current_app.config['MAX_FILE_SIZE'])} or smaller."
    if request.path.startswith("/api/"):
        return jsonify({"error": message, "code": "file-too-large"}), 413
    return _render_upload(error=message, code=413)


# ------------------------------
# App / Config
# ------------------------------
def _security_headers(app: Flask) -> None:
    csp = {
        "default-src": ["'self'"],
        "img-src": ["'self'", "data:", "blob:"],
        "style-src": ["'self'"],
        "script-src": ["'self'", "https://cdn.socket.io"],
        "connect-src": ["'self'", "ws:", "wss:"],
        "frame-src": ["'self'"],
        "frame-ancestors": ["'none'"],
    }
    strict = not (app.config.get("DEBUG") or app.config.get("TESTING"))
    Talisman(
        app,
        force_https=strict,
        content_security_policy=csp,
        session_cookie_secure=strict,
        session_cookie_samesite="Lax",
        frame_options="SAMEORIGIN",
        referrer_policy="strict-origin-when-cross-origin",
    )


def create_app(config_object=None, config: Optional[Dict[str, Any]] = None, **service_overrides) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or config_for_env())
    if config:
        app.config.update(config)
    app.config["MAX_CONTENT_LENGTH"] = app.config["MAX_FILE_SIZE"] + app.config["FORM_FIELDS_ALLOWANCE"]
    validate_required_secrets()  # raises only when ENV=prod and secrets missing

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    registry = BlobRegistry(max_age=app.config.get("BLOB_MAX_AGE_SECONDS"))
    services = Services(
        kv_backend=build_kv(app.config),
        file_store=build_file_store(app.config),
        ai=FeedbackClient(app.config["AI_BASE_URL"], app.config["AI_MODEL"]),
        convert_pdf=convert_pdf_to_image,
        blobs=registry,
        scopes=ViewScopes(registry),
    )
    for name, value in service_overrides.items():
        setattr(services, name, value)
    app.extensions["resumind"] = services

    JWTManager(app)
    CORS(
        app,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
        supports_credentials=False,
        allow_headers=["Authorization", "Content-Type"],
        methods=["GET", "POST", "OPTIONS"],
    )
    _security_headers(app)

    app.url_map.strict_slashes = False
    app.register_blueprint(auth_bp)
    app.register_blueprint(web)
    app.register_blueprint(api)
    app.register_error_handler(RequestEntityTooLarge, _too_large)
    init_auth(app)
    register_filters(app)
    app.jinja_env.globals["format_size"] = format_size

    socketio.init_app(app, cors_allowed_origins=app.config["CORS_ORIGINS"])
    LOG.info("resumind ready (kv=%s, uploads=%s)", app.config["KV_BACKEND"], app.config["UPLOAD_DIR"])
    return app


# ------------------------------
# Entrypoint
# ------------------------------
def main():
    app = create_app()
    socketio.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")), debug=app.config.get("DEBUG", False))


if __name__ == "__main__":
    main()
