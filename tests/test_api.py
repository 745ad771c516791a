import io
import json

from resumind.resumes import new_record, resume_key, save_record

from conftest import FEEDBACK, PASSWORD, USER


def _seed(services, resume_id, feedback=None):
    record = new_record(resume_id, f"u/{resume_id}.pdf", f"u/{resume_id}.png", "Acme", "Engineer", "")
    record["feedback"] = feedback
    save_record(services.kv_for(USER), record)
    return record


def test_api_requires_token(client):
    assert client.get("/api/resumes").status_code == 401
    assert client.post("/api/resumes").status_code == 401


def test_api_accepts_bearer_token(client, services):
    client.post("/auth/register", json={"email": USER, "password": PASSWORD})
    token = client.post("/auth/login", json={"email": USER, "password": PASSWORD}).get_json()["access_token"]
    client.delete_cookie("access_token_cookie")
    resp = client.get("/api/resumes", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200


def test_api_list_with_stats(logged_in, services):
    _seed(services, "a", FEEDBACK)
    _seed(services, "b")
    body = logged_in.get("/api/resumes").get_json()
    assert [r["id"] for r in body["resumes"]] == ["a", "b"]
    assert body["stats"] == {"total": 2, "average": 78}


def test_api_get_resume(logged_in, services):
    _seed(services, "a", FEEDBACK)
    assert logged_in.get("/api/resumes/a").get_json()["feedback"] == FEEDBACK
    assert logged_in.get("/api/resumes/zzz").status_code == 404

    services.kv_for(USER).set(resume_key("bad"), "{oops")
    resp = logged_in.get("/api/resumes/bad")
    assert resp.status_code == 422
    assert resp.get_json() == {"error": "Stored resume data is not valid JSON."}


def test_api_create_resume(logged_in, pdf_bytes):
    resp = logged_in.post(
        "/api/resumes",
        data={"jobTitle": "Engineer", "companyName": "Acme", "file": (io.BytesIO(pdf_bytes), "cv.pdf", "application/pdf")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["statuses"][-1] == "Analysis complete! Redirecting…"
    assert body["resume"]["id"] == body["id"]
    assert body["resume"]["feedback"] == FEEDBACK


def test_api_create_rejects_wrong_type(logged_in):
    resp = logged_in.post(
        "/api/resumes",
        data={"jobTitle": "Engineer", "file": (io.BytesIO(b"hello"), "cv.txt", "text/plain")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "file-invalid-type"


def test_api_create_reports_ai_failure(logged_in, ai, pdf_bytes):
    ai.response = None
    resp = logged_in.post(
        "/api/resumes",
        data={"jobTitle": "Engineer", "file": (io.BytesIO(pdf_bytes), "cv.pdf", "application/pdf")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 502
    assert resp.get_json()["error"] == "Failed to analyse your resume. Please try again."


def test_home_dashboard_without_records(logged_in):
    resp = logged_in.get("/")
    assert resp.status_code == 200
    assert '<span class="stat-value" id="stat-total">0</span>' in resp.get_data(as_text=True)
    assert '<span class="stat-value" id="stat-average">—</span>' in resp.get_data(as_text=True)
    assert "Ready for your first analysis?" in resp.get_data(as_text=True)


def test_home_dashboard_averages_reviewed_only(logged_in, services):
    _seed(services, "a", FEEDBACK)
    _seed(services, "b", dict(FEEDBACK, overallScore=61))
    _seed(services, "c")
    html = logged_in.get("/").get_data(as_text=True)
    assert '<span class="stat-value" id="stat-total">3</span>' in html
    assert '<span class="stat-value" id="stat-average">70</span>' in html
    assert "Add keywords from the job description" in html


def test_home_list_failure_shows_message(logged_in, services):
    kv = services.kv_for(USER)
    kv.set(resume_key("broken"), "not json")
    html = logged_in.get("/").get_data(as_text=True)
    assert "Unable to load your resumes right now. Please try again." in html


def test_health(client):
    assert client.get("/health").get_json() == {"ok": True}


def test_stored_record_shape(logged_in, services, pdf_bytes):
    logged_in.post(
        "/api/resumes",
        data={"jobTitle": "Engineer", "file": (io.BytesIO(pdf_bytes), "cv.pdf", "application/pdf")},
        content_type="multipart/form-data",
    )
    [item] = services.kv_for(USER).list("resume:*", return_values=True)
    assert set(json.loads(item["value"])) == {
        "id", "resumePath", "imagePath", "companyName", "jobTitle", "jobDescription", "feedback",
    }


def test_string_score_from_the_model_still_renders(logged_in, services):
    record = _seed(services, "a", dict(FEEDBACK, overallScore="85"))
    _seed(services, "b", dict(FEEDBACK, overallScore="unknown"))

    html = logged_in.get("/").get_data(as_text=True)
    assert '<span class="stat-value" id="stat-average">85</span>' in html
    assert logged_in.get("/api/resumes").get_json()["stats"] == {"total": 2, "average": 85}

    files = services.files_for(USER)
    record["resumePath"] = files.upload("cv.pdf", b"%PDF-1.4")["path"]
    record["imagePath"] = files.upload("cv.png", b"\x89PNG")["path"]
    save_record(services.kv_for(USER), record)
    detail = logged_in.get(f"/resume/{record['id']}").get_data(as_text=True)
    assert 'stroke-dashoffset="15"' in detail
    assert '<p class="overall-score">85<span' in detail


def test_non_object_record_shows_list_error(logged_in, services):
    _seed(services, "a", FEEDBACK)
    services.kv_for(USER).set(resume_key("odd"), "[]")
    html = logged_in.get("/").get_data(as_text=True)
    assert "Unable to load your resumes right now. Please try again." in html
    assert logged_in.get("/api/resumes").status_code == 500
