from .food_extractor import extract_food_items, parse_food_list
from .nutrition_lookup import NutritionEntry, Nutrient, lookup_nutrition, search_food

__all__ = [
    "extract_food_items",
    "parse_food_list",
    "lookup_nutrition",
    "search_food",
    "Nutrient",
    "NutritionEntry",
]
