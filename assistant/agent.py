from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, List, Tuple

import httpx
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from assistant.composer import compose_messages
from assistant.core.content import message_text
from assistant.core.errors import ConfigurationError, UpstreamError
from assistant.core.prompt import CONNECTIVITY_EXPECTED, CONNECTIVITY_PROMPT
from assistant.tools.food_extractor import extract_food_items
from assistant.tools.nutrition_lookup import lookup_nutrition
from config.settings import Settings


logger = logging.getLogger("nic.agent")


class ModelFactory:
    """Builds the Gemini chat models used by one request.

    Models are created lazily so that a request with missing credentials
    is rejected before any client is constructed.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _build(self, model: str) -> BaseChatModel:
        if not self.settings.google_api_key:
            raise ConfigurationError(
                "GOOGLE_API_KEY not set. Please configure it in environment or .env"
            )
        return ChatGoogleGenerativeAI(
            model=model,
            google_api_key=self.settings.google_api_key,
            temperature=self.settings.temperature,
            top_p=self.settings.top_p,
        )

    def primary(self) -> BaseChatModel:
        return self._build(self.settings.gemini_model)

    def extractor(self) -> BaseChatModel:
        return self._build(self.settings.extraction_model)

    def titler(self) -> BaseChatModel:
        return self._build(self.settings.title_model)


def to_lc_messages(history: List[dict]) -> List[BaseMessage]:
    messages: List[BaseMessage] = []
    for item in history or []:
        role = (item.get("role") or "").lower()
        content = item.get("content") or ""
        if role in ("assistant", "ai", "bot"):
            messages.append(AIMessage(content=content))
        elif role == "system":
            messages.append(SystemMessage(content=content))
        else:
            # Unknown roles are sent as user turns
            messages.append(HumanMessage(content=content))
    return messages


async def prepare_conversation(
    messages: List[Dict[str, Any]],
    models: ModelFactory,
    client: httpx.AsyncClient,
    settings: Settings,
) -> List[BaseMessage]:
    """Extract foods, look them up and prepend the nutrition system prompt."""
    history = to_lc_messages(messages)
    items = await extract_food_items(models.extractor(), history[-1])
    entries = await lookup_nutrition(client, items, settings)
    return compose_messages(history, entries)


async def complete(model: BaseChatModel, composed: List[BaseMessage]) -> str:
    try:
        reply = await model.ainvoke(composed)
    except Exception as exc:
        raise UpstreamError(f"Chat completion failed: {exc}") from exc
    return message_text(reply.content)


async def stream_reply(
    model: BaseChatModel, composed: List[BaseMessage]
) -> AsyncIterator[str]:
    async for chunk in model.astream(composed):
        text = message_text(chunk.content)
        if text:
            yield text


async def start_stream(
    model: BaseChatModel, composed: List[BaseMessage]
) -> Tuple[str, AsyncIterator[str]]:
    """Start the completion stream and wait for its first chunk.

    Returns the first chunk and the iterator for the rest. A completion
    that fails before producing anything raises UpstreamError, so the
    caller can still answer with an error status.
    """
    chunks = stream_reply(model, composed)
    try:
        first = await chunks.__anext__()
    except StopAsyncIteration:
        first = ""
    except Exception as exc:
        raise UpstreamError(f"Chat completion failed: {exc}") from exc
    return first, chunks


async def check_connectivity(model: BaseChatModel) -> str:
    reply = await model.ainvoke([HumanMessage(content=CONNECTIVITY_PROMPT)])
    text = message_text(reply.content).strip().strip("'\"")
    if text == CONNECTIVITY_EXPECTED:
        return "Connectivity verified"
    return "Unexpected API response"
