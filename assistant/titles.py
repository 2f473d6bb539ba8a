from __future__ import annotations

import logging
import re
from typing import Any, Dict, List

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from assistant.core.content import message_text
from assistant.core.prompt import TITLE_PROMPT


logger = logging.getLogger("nic.titles")

MAX_TITLE_WORDS = 5
DEFAULT_TITLE = "Nutrition Chat"

_COMMON_WORDS = {
    "how", "what", "much", "many", "the", "and", "for", "are", "there",
    "does", "can", "you", "tell", "about", "with", "have", "need", "want",
    "is", "in", "of", "a", "an", "me", "my",
}


def should_generate_title(messages: List[Dict[str, Any]]) -> bool:
    """True only for the first user turn of a conversation."""
    roles = [(m.get("role") or "").lower() for m in messages]
    return roles.count("user") == 1 and "assistant" not in roles


def clean_title(text: Any) -> str:
    lines = [line for line in text.splitlines() if line.strip()] if isinstance(text, str) else []
    if not lines:
        return ""
    words = re.findall(r"[\w'-]+", lines[0])
    words = [w.strip("'-") for w in words if w.strip("'-")]
    return " ".join(words[:MAX_TITLE_WORDS])


def fallback_title(message: str) -> str:
    words = re.findall(r"\b[A-Za-z]{3,}\b", message)
    meaningful = [w.title() for w in words if w.lower() not in _COMMON_WORDS]
    if meaningful:
        return " ".join(meaningful[:MAX_TITLE_WORDS])
    return DEFAULT_TITLE


async def generate_title(model: BaseChatModel, message: str) -> str:
    try:
        reply = await model.ainvoke(
            [SystemMessage(content=TITLE_PROMPT), HumanMessage(content=message)]
        )
        title = clean_title(message_text(reply.content))
    except Exception as exc:
        logger.warning("Title generation failed: %s", exc)
        title = ""

    if not title:
        title = fallback_title(message)
    return title
