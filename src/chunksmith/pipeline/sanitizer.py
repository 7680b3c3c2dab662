"""Strip conversational wrapping from generation-service replies.

Models often answer with a fenced code block, or with a sentence before and
after the JSON. sanitize() trims that wrapping so the remainder can be handed
to json.loads(). It only trims boundaries and never parses; if no brace pair
is found the trimmed text is returned and the caller's parse step reports
the failure.
"""

from __future__ import annotations

import json
import re
from typing import Any

from chunksmith.errors import ManifestParseError

_FENCE = "```"
_LANG_TAG_RE = re.compile(r"^[A-Za-z0-9_+.-]+$")
# optional language tag, then whatever follows it on the opening fence line
_OPENING_RE = re.compile(r"^[A-Za-z0-9_+.-]*\s*(.*)$", re.DOTALL)


def sanitize(raw: str) -> str:
    """Return *raw* without code fences and surrounding prose.

    Idempotent: sanitize(sanitize(x)) == sanitize(x).
    """
    text = (raw or "").strip()

    # Nested or repeated fences: strip until nothing changes.
    previous = None
    while text != previous:
        previous = text
        text = _strip_fences(text)

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text


def _strip_fences(text: str) -> str:
    if text.startswith(_FENCE):
        fence_line, sep, rest = text.partition("\n")
        opening = fence_line[len(_FENCE) :].strip()
        if not opening:
            # "```" alone on its line may be followed by a bare language tag line
            tag_line, tag_sep, after = rest.partition("\n")
            if tag_sep and _LANG_TAG_RE.match(tag_line.strip()):
                rest = after
        else:
            # "```json {...}": keep the content after the tag
            inline = _OPENING_RE.match(opening).group(1)
            if inline:
                rest = inline + sep + rest
        text = rest.strip()
    if text.endswith(_FENCE):
        text = text[: -len(_FENCE)].strip()
    return text


def parse_json_object(raw: str) -> dict[str, Any]:
    """Sanitize *raw* and decode it as a JSON object.

    Raises:
        ManifestParseError: If the sanitized text is not a JSON object.
    """
    cleaned = sanitize(raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        preview = cleaned[:200]
        raise ManifestParseError(f"Reply is not valid JSON ({exc.msg}): {preview!r}") from exc
    if not isinstance(data, dict):
        raise ManifestParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data
