from __future__ import annotations

from typing import Any


def message_text(content: Any) -> str:
    """Flatten model output content, which may be a list of parts, to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text") or "")
        return "".join(parts)
    return ""
