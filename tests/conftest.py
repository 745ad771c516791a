import json

import fitz
import pytest

from resumind.app import create_app
from resumind.config import TestConfig
from resumind.pdf2img import ConversionResult, preview_name

USER = "ada@example.com"
PASSWORD = "lovelace1815"

FEEDBACK = {
    "overallScore": 78,
    "ATS": {
        "score": 72,
        "tips": [
            {"type": "good", "tip": "Clear section headings"},
            {"type": "improve", "tip": "Add keywords from the job description"},
        ],
    },
    "toneAndStyle": {"score": 80, "tips": [{"type": "good", "tip": "Confident voice", "explanation": "Active verbs throughout."}]},
    "content": {"score": 65, "tips": [{"type": "improve", "tip": "Quantify impact", "explanation": "Add numbers to bullets."}]},
    "structure": {"score": 90, "tips": []},
    "skills": {"score": 45, "tips": [{"type": "improve", "tip": "List tools", "explanation": "Name the frameworks you used."}]},
}


def make_pdf(text: str = "Ada Lovelace\nAnalytical Engine programmer") -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


class FakeAI:
    """Stands in for the feedback client; remembers each call."""

    def __init__(self, response=None):
        self.response = response
        self.calls = []
        self.before_reply = None

    def feedback(self, path, instructions, files):
        self.calls.append({"path": path, "instructions": instructions})
        if self.before_reply:
            self.before_reply(path)
        return self.response


def fake_convert(data, filename):
    return ConversionResult(b"\x89PNG\r\n\x1a\nfake", preview_name(filename))


@pytest.fixture
def pdf_bytes():
    return make_pdf()


@pytest.fixture
def ai():
    return FakeAI({"message": {"role": "assistant", "content": json.dumps(FEEDBACK)}})


@pytest.fixture
def app(tmp_path, ai):
    return create_app(
        TestConfig,
        config={"UPLOAD_DIR": str(tmp_path / "uploads")},
        ai=ai,
        convert_pdf=fake_convert,
    )


@pytest.fixture
def services(app):
    return app.extensions["resumind"]


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def logged_in(client):
    resp = client.post("/auth/register", json={"email": USER, "password": PASSWORD, "name": "Ada"})
    assert resp.status_code == 201
    return client
