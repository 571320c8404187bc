"""JSON extraction from model replies."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


def parse_json_object(raw: str) -> dict[str, Any]:
    """
    Extract a JSON object from a model response.

    Accepts bare JSON, JSON inside a markdown code fence, or JSON surrounded by
    prose (first `{` to last `}`). Raises ValueError when nothing parses to an
    object.
    """
    text = (raw or "").strip()
    if not text:
        raise ValueError("Empty model response")

    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1).strip()

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            raise ValueError("Model response does not contain a JSON object") from None
        try:
            parsed = json.loads(text[start : end + 1])
        except json.JSONDecodeError as e:
            raise ValueError(f"Model response is not valid JSON: {e.msg}") from e

    if not isinstance(parsed, dict):
        raise ValueError("Model response JSON is not an object")
    return parsed
