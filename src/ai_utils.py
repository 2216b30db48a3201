"""
Completion-service helpers: client construction and JSON recovery from model text
"""
from __future__ import annotations
import json
import re
from typing import Any, Dict, Optional

from openai import OpenAI

from errors import ResponseParseError

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def create_openai_client(
    api_key: Optional[str],
    base_url: Optional[str] = None,
    timeout: float = 60.0,
) -> OpenAI:
    """Any OpenAI-compatible endpoint works through base_url (e.g. Groq)."""
    if not api_key:
        raise ValueError("OpenAI API key is required")
    # one attempt per analysis; failures go to the heuristic fallback
    return OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def extract_json_block(text: str) -> str:
    """Slice from the first '{' to the last '}' of the response."""
    cleaned = strip_code_fences(text)
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        raise ResponseParseError("No JSON object found in model response")
    return cleaned[start:end + 1]


def parse_json_response(text: Optional[str]) -> Dict[str, Any]:
    if not text or not text.strip():
        raise ResponseParseError("Empty model response")
    block = extract_json_block(text)
    try:
        data = json.loads(block)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Failed to parse model JSON output: {e}") from e
    if not isinstance(data, dict):
        raise ResponseParseError("Model JSON is not an object")
    return data


def truncate(text: str, max_chars: int) -> str:
    return text if len(text) <= max_chars else text[:max_chars]
