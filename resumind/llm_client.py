from __future__ import annotations
import json
import logging
import os
from typing import Any, Dict, Optional

from openai import OpenAI, OpenAIError

from resumind.parsers import extract_text_from_pdf

LOG = logging.getLogger("resumind.llm_client")


class FeedbackParseError(ValueError):
    pass


class FeedbackClient:
    """Chat-completion client for resume feedback (OpenRouter or any OpenAI-compatible API)."""

    def __init__(self, base_url: str, model: str, api_key: Optional[str] = None):
        self.base_url = base_url
        self.model = model
        self._api_key = api_key
        self._client: OpenAI | None = None

    def get_client(self) -> OpenAI:
        if self._client is None:
            api_key = self._api_key or os.getenv("OPENROUTER_API_KEY") or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise RuntimeError("OPENROUTER_API_KEY or OPENAI_API_KEY must be set")
            self._client = OpenAI(base_url=self.base_url, api_key=api_key)
        return self._client

    def feedback(self, path: str, instructions: str, files) -> Optional[Dict[str, Any]]:
        """Ask the model to review the resume stored at ``path``.

        Returns a chat-style response ``{"message": {"role", "content"}}`` or
        None when the file is missing or the model produced nothing.
        """
        pdf_bytes = files.read(path)
        if not pdf_bytes:
            LOG.warning("resume not found at %s", path)
            return None

        raw_text = extract_text_from_pdf(pdf_bytes)
        user_prompt = instructions + "\n\nResume (raw text):\n" + raw_text

        LOG.info("Calling LLM for feedback, model=%s raw_text length=%d", self.model, len(raw_text))
        try:
            completion = self.get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You are an ATS and resume review expert. Return ONLY valid JSON."},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except OpenAIError as e:
            LOG.error("LLM call failed: %s", e)
            return None

        if not completion.choices:
            return None
        content = completion.choices[0].message.content
        if not content:
            return None
        LOG.debug("LLM response snippet: %s...", content[:200])
        return {"message": {"role": "assistant", "content": content}}


def message_text(response: Dict[str, Any]) -> str:
    """Content of a chat response: the string itself, or the first text block."""
    content = (response.get("message") or {}).get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list) and content:
        first = content[0]
        if isinstance(first, dict):
            return first.get("text") or ""
        return str(first)
    return ""


def _strip_fences(content: str) -> str:
    # Some models wrap JSON in markdown fences like ```json ... ```; strip them.
    cleaned = (content or "").strip()
    if cleaned.startswith("```"):
        cleaned = "\n".join(cleaned.splitlines()[1:])
    if cleaned.endswith("```"):
        cleaned = "\n".join(cleaned.splitlines()[:-1])
    return cleaned.strip()


def parse_feedback(text: str) -> Dict[str, Any]:
    cleaned = _strip_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        # Some models append commentary after the JSON; cut at the last closing brace.
        last_brace = cleaned.rfind("}")
        try:
            data = json.loads(cleaned[: last_brace + 1]) if last_brace != -1 else None
        except json.JSONDecodeError:
            data = None
        if data is None:
            raise FeedbackParseError("The AI response was not valid JSON.")
    if not isinstance(data, dict):
        raise FeedbackParseError("The AI response was not a feedback object.")
    return data
