from __future__ import annotations

import json
import re

_FENCE_MARKERS = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str | None) -> str:
    return _FENCE_MARKERS.sub("", str(text or "")).strip()


def parse_model_json(raw: str | None) -> dict | None:
    """
    Pull a JSON object out of a chat-completion reply.

    Returns None for empty replies, anything that does not parse, and JSON
    that is not an object. Never raises.
    """
    text = strip_code_fences(raw)
    if not text:
        return None

    try:
        parsed = json.loads(text)
        return parsed if isinstance(parsed, dict) else None
    except ValueError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        try:
            parsed = json.loads(text[start:end + 1])
            return parsed if isinstance(parsed, dict) else None
        except ValueError:
            return None

    return None
