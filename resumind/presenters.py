# presenters.py
from typing import Any, Dict, List, Optional

from resumind.constants import FEEDBACK_SECTIONS
from resumind.resumes import feedback_score

SECTION_TITLES = {
    "toneAndStyle": "Tone & Style",
    "content": "Content",
    "structure": "Structure",
    "skills": "Skills",
}

def ats_band(score: int) -> Dict[str, str]:
    if score > 69:
        return {"tone": "good", "icon": "ats-good.svg", "subtitle": "Great Job!"}
    if score > 49:
        return {"tone": "warning", "icon": "ats-warning.svg", "subtitle": "Good Start"}
    return {"tone": "bad", "icon": "ats-bad.svg", "subtitle": "Needs Improvement"}

def category_band(score: int) -> str:
    if score > 70:
        return "good"
    if score > 49:
        return "warning"
    return "bad"

def score_badge(score: int) -> Dict[str, str]:
    if score > 70:
        return {"tone": "good", "label": "Strong"}
    if score > 49:
        return {"tone": "warning", "label": "Good Start"}
    return {"tone": "bad", "label": "Needs Work"}

def gauge_colors(score: int) -> Dict[str, str]:
    if score >= 80:
        return {"start": "#10b981", "end": "#34d399"}  # green
    if score >= 60:
        return {"start": "#3b82f6", "end": "#60a5fa"}  # blue
    if score >= 40:
        return {"start": "#f59e0b", "end": "#fbbf24"}  # amber
    return {"start": "#ef4444", "end": "#f87171"}  # red

def _score(section: Optional[Dict[str, Any]]) -> int:
    try:
        return int((section or {}).get("score") or 0)
    except (TypeError, ValueError):
        return 0

def ats_summary(feedback: Dict[str, Any]) -> Dict[str, Any]:
    ats = feedback.get("ATS") or {}
    score = _score(ats)
    return {"score": score, "tips": ats.get("tips") or [], "band": ats_band(score)}

def summary_categories(feedback: Dict[str, Any]) -> List[Dict[str, Any]]:
    out = []
    for key in FEEDBACK_SECTIONS:
        section = feedback.get(key) or {}
        score = _score(section)
        out.append({
            "key": key,
            "title": SECTION_TITLES[key],
            "score": score,
            "band": category_band(score),
            "badge": score_badge(score),
            "tips": section.get("tips") or [],
        })
    return out

def register_filters(app):
    app.jinja_env.globals.update(
        ats_summary=ats_summary,
        summary_categories=summary_categories,
        gauge_colors=gauge_colors,
        score_badge=score_badge,
        feedback_score=feedback_score,
    )
