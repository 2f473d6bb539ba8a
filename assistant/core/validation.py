from __future__ import annotations

from typing import Any, Dict, List

from assistant.core.errors import ConfigurationError, MessageValidationError
from config.settings import Settings


MAX_MESSAGES = 50


def check_credentials(settings: Settings) -> None:
    missing = settings.missing_credentials()
    if missing:
        raise ConfigurationError(f"Missing API keys: {', '.join(missing)}")


def validate_messages(body: Any) -> List[Dict[str, Any]]:
    """Return the caller's message list after the request-level checks.

    Individual messages are only required to be objects with text content,
    which is what the model calls need; roles are mapped later.
    """
    messages = body.get("messages") if isinstance(body, dict) else None
    if not isinstance(messages, list):
        raise MessageValidationError("'messages' must be an array.")
    if len(messages) > MAX_MESSAGES:
        raise MessageValidationError(
            f"Too many messages provided. Limit to {MAX_MESSAGES}."
        )
    if not messages:
        raise MessageValidationError("'messages' must not be empty.")

    for index, message in enumerate(messages):
        if not isinstance(message, dict) or not isinstance(message.get("content"), str):
            raise MessageValidationError(
                f"Message {index} must be an object with string 'content'."
            )
    return messages
