# resumes.py
"""Resume records as stored in the key-value store.

Each record is JSON text under ``resume:<uuid>``. It is written once with
``feedback: null`` and overwritten once the AI feedback is in. Key names
stay camelCase in the stored JSON.
"""
from __future__ import annotations
import json
from typing import Any, Dict, List, Optional

from resumind.helpers import round_half_up

KEY_PREFIX = "resume:"


class ResumeDataError(ValueError):
    pass


def resume_key(resume_id: str) -> str:
    return f"{KEY_PREFIX}{resume_id}"


def new_record(resume_id: str, resume_path: str, image_path: str,
               company_name: str, job_title: str, job_description: str) -> Dict[str, Any]:
    return {
        "id": resume_id,
        "resumePath": resume_path,
        "imagePath": image_path,
        "companyName": company_name or "",
        "jobTitle": job_title,
        "jobDescription": job_description or "",
        "feedback": None,
    }


def save_record(kv, record: Dict[str, Any]) -> None:
    kv.set(resume_key(record["id"]), json.dumps(record))


def load_record(kv, resume_id: str) -> Optional[Dict[str, Any]]:
    raw = kv.get(resume_key(resume_id))
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        raise ResumeDataError("Stored resume data is not valid JSON.")
    if not isinstance(data, dict) or not data.get("resumePath") or not data.get("imagePath"):
        raise ResumeDataError("Stored resume data is incomplete.")
    return data


def list_records(kv) -> List[Dict[str, Any]]:
    items = kv.list(f"{KEY_PREFIX}*", return_values=True) or []
    records = []
    for item in items:
        data = json.loads(item["value"])
        if not isinstance(data, dict):
            raise ResumeDataError(f"Stored resume data is incomplete: {item['key']}")
        records.append(data)
    return records


def has_feedback(record: Dict[str, Any]) -> bool:
    return isinstance(record.get("feedback"), dict)


def feedback_score(feedback: Optional[Dict[str, Any]]) -> Optional[int]:
    """``overallScore`` as an int, or None when the model sent something non-numeric."""
    if not isinstance(feedback, dict):
        return None
    value = feedback.get("overallScore")
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def overall_score(record: Dict[str, Any]) -> int:
    return feedback_score(record.get("feedback")) or 0


def highlight_tip(feedback: Optional[Dict[str, Any]]) -> Optional[str]:
    """Prefer an improvement tip; fall back to the first ATS tip."""
    if not isinstance(feedback, dict):
        return None
    tips = (feedback.get("ATS") or {}).get("tips") or []
    if not tips:
        return None
    improve = next((t for t in tips if t.get("type") == "improve"), None)
    return (improve or tips[0]).get("tip")


def average_overall_score(records: List[Dict[str, Any]]) -> Optional[int]:
    total, count = 0, 0
    for record in records:
        score = feedback_score(record.get("feedback"))
        if score is not None:
            total += score
            count += 1
    if count == 0:
        return None
    return round_half_up(total / count)


def dashboard_stats(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"total": len(records), "average": average_overall_score(records)}
