from __future__ import annotations
import json
import re
from typing import Any, Dict, Optional

_OBJECT_RX = re.compile(r"\{[\s\S]*\}")


def strip_code_fences(s: str) -> str:
    s = s.strip()
    if s.startswith("```") and s.endswith("```"):
        lines = s.splitlines()
        if len(lines) >= 2:
            return "\n".join(lines[1:-1]).strip()
    return s


def decode_json_object(content: Optional[str]) -> Optional[Dict[str, Any]]:
    """Best-effort decode of the first JSON object in a model reply.

    Returns None when nothing parseable is found; a parsed `{"found": false}`
    is still returned, so callers can tell "the model said no" apart from
    "the reply could not be read".
    """
    if not content:
        return None
    s = strip_code_fences(content)
    try:
        obj = json.loads(s)
        if isinstance(obj, dict):
            return obj
    except ValueError:
        pass

    # outermost braces, then the same slice with trailing commas removed
    m = _OBJECT_RX.search(s)
    if not m:
        return None
    c = m.group(0)
    for attempt in (c, re.sub(r",\s*([\]}])", r"\1", c)):
        try:
            obj = json.loads(attempt)
        except ValueError:
            continue
        if isinstance(obj, dict):
            return obj
    return None
