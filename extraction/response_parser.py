"""
Parse the extraction model's text into JSON.
Tolerates a markdown code fence around the JSON; nothing else is repaired.
"""
from __future__ import annotations

import json
import re
from typing import Any

from core.constants import MSG_MALFORMED_RESPONSE
from core.exceptions import MalformedResponseError

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


def strip_code_fence(text: str) -> str:
    """Return the content of the first ```json fence, or the stripped text."""
    stripped = (text or "").strip()
    m = _FENCE.search(stripped)
    if m:
        return m.group(1).strip()
    return stripped


def parse_model_json(text: str, trace_id: str = "") -> Any:
    """
    Parse model output as JSON.
    Raises MalformedResponseError (user-facing message) when the text is empty or not valid JSON.
    """
    body = strip_code_fence(text)
    if not body:
        raise MalformedResponseError(MSG_MALFORMED_RESPONSE, trace_id=trace_id)
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(MSG_MALFORMED_RESPONSE, trace_id=trace_id) from e
