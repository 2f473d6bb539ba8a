from __future__ import annotations

import logging
from typing import Any, List

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, SystemMessage

from assistant.core.content import message_text
from assistant.core.errors import UpstreamError
from assistant.core.prompt import EXTRACTION_PROMPT


logger = logging.getLogger("nic.extractor")


def parse_food_list(text: Any) -> List[str]:
    if not isinstance(text, str):
        return []
    return [item.strip() for item in text.split(",") if item.strip()]


async def extract_food_items(model: BaseChatModel, message: BaseMessage) -> List[str]:
    """Ask the auxiliary model which foods the latest message mentions.

    A reply without any text yields no items; a failing
    model call aborts the request.
    """
    try:
        reply = await model.ainvoke([SystemMessage(content=EXTRACTION_PROMPT), message])
    except Exception as exc:
        raise UpstreamError(f"Food extraction call failed: {exc}") from exc

    items = parse_food_list(message_text(reply.content))
    logger.info("Extracted %s food item(s): %s", len(items), items)
    return items
