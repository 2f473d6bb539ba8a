from __future__ import annotations

from typing import List, Optional

from langchain_core.messages import BaseMessage, SystemMessage

from assistant.core.prompt import NO_DATA_PLACEHOLDER, NUTRITIONIST_PROMPT, NUTRITION_DATA_HEADER
from assistant.tools.nutrition_lookup import Nutrient, NutritionEntry


def _format_value(value: Optional[float]) -> str:
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _format_nutrient(nutrient: Nutrient) -> str:
    parts = [f"{nutrient.name}:", _format_value(nutrient.value), nutrient.unit]
    return " ".join(part for part in parts if part)


def format_nutrition_summary(entries: List[NutritionEntry]) -> str:
    lines = [
        f"{entry.item} → {', '.join(_format_nutrient(n) for n in entry.nutrients)}"
        for entry in entries
    ]
    return "\n".join(lines) or NO_DATA_PLACEHOLDER


def compose_messages(
    messages: List[BaseMessage], entries: List[NutritionEntry]
) -> List[BaseMessage]:
    return [
        SystemMessage(content=NUTRITIONIST_PROMPT),
        SystemMessage(content=f"{NUTRITION_DATA_HEADER}\n{format_nutrition_summary(entries)}"),
        *messages,
    ]
