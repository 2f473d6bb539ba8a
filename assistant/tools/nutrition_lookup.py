from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, model_validator

from config.settings import Settings


logger = logging.getLogger("nic.nutrition")

MAX_NUTRIENTS = 5


class Nutrient(BaseModel):
    name: str = Field("", description="FDC nutrientName")
    value: Optional[float] = Field(None, description="Amount per 100 g or per serving")
    unit: str = Field("", description="FDC unitName")

    @model_validator(mode="before")
    @classmethod
    def _from_fdc(cls, values):
        # FDC search results use nutrientName/unitName; accept either shape.
        if isinstance(values, dict) and "nutrientName" in values:
            return {
                "name": values.get("nutrientName") or "",
                "value": values.get("value"),
                "unit": values.get("unitName") or "",
            }
        return values


class NutritionEntry(BaseModel):
    item: str
    nutrients: List[Nutrient] = Field(default_factory=list)


def _simplify_food(item: str, raw: Dict[str, Any]) -> Optional[NutritionEntry]:
    foods = raw.get("foods") or []
    if not foods:
        return None
    nutrients = foods[0].get("foodNutrients") or []
    return NutritionEntry(
        item=item,
        nutrients=[Nutrient.model_validate(n) for n in nutrients[:MAX_NUTRIENTS]],
    )


async def search_food(
    client: httpx.AsyncClient, item: str, settings: Settings
) -> Optional[NutritionEntry]:
    params = {
        "query": item,
        "api_key": settings.fdc_api_key,
        "pageSize": 1,
    }
    response = await client.get(f"{settings.fdc_base_url}/foods/search", params=params)
    response.raise_for_status()
    return _simplify_food(item, response.json())


async def lookup_nutrition(
    client: httpx.AsyncClient, items: List[str], settings: Settings
) -> List[NutritionEntry]:
    """Look up each item in turn, keeping only items FDC has a match for."""
    results: List[NutritionEntry] = []
    for item in items:
        try:
            entry = await search_food(client, item, settings)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Nutrition lookup failed for %r: %s", item, exc)
            continue
        if entry is None:
            logger.info("No FDC match for %r", item)
            continue
        results.append(entry)

    logger.info("Nutrition lookup matched %s of %s item(s)", len(results), len(items))
    return results
