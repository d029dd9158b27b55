"""
JSON-LD helpers: parse every ld+json script once, then answer product
questions (name, brand, ingredients, nutrition) from the flattened nodes.
"""
import json
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from suppscore.parsing.heuristics import looks_like_ingredient_list
from suppscore.utils.text import collapse_whitespace, sanitize_text


# schema.org NutritionInformation property -> label row name
NUTRITION_FIELDS = [
    ("servingSize", "Serving Size"),
    ("calories", "Calories"),
    ("fatContent", "Total Fat"),
    ("saturatedFatContent", "Saturated Fat"),
    ("transFatContent", "Trans Fat"),
    ("cholesterolContent", "Cholesterol"),
    ("sodiumContent", "Sodium"),
    ("carbohydrateContent", "Total Carbohydrate"),
    ("fiberContent", "Dietary Fiber"),
    ("sugarContent", "Total Sugars"),
    ("proteinContent", "Protein"),
]


def flatten_jsonld(data: Any) -> List[Dict[str, Any]]:
    """
    Flatten JSON-LD structure into a list of schema nodes.

    Handles single objects, @graph containers and arrays.
    """
    nodes = []

    if isinstance(data, dict):
        if "@graph" in data:
            for item in data["@graph"]:
                nodes.extend(flatten_jsonld(item))
        if "@type" in data:
            nodes.append(data)

    elif isinstance(data, list):
        for item in data:
            nodes.extend(flatten_jsonld(item))

    return nodes


def parse_all_jsonld(soup: BeautifulSoup) -> Dict[str, List[Dict[str, Any]]]:
    """
    Parse ALL JSON-LD scripts and organize nodes by @type.

    Scripts with invalid JSON are skipped.
    """
    nodes_by_type: Dict[str, List[Dict[str, Any]]] = {}

    for script in soup.find_all("script", type="application/ld+json"):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw.strip())
        except json.JSONDecodeError:
            continue

        for node in flatten_jsonld(data):
            schema_type = node.get("@type")
            types = schema_type if isinstance(schema_type, list) else [schema_type]
            for t in types:
                if isinstance(t, str):
                    nodes_by_type.setdefault(t, []).append(node)

    return nodes_by_type


def products(nodes_by_type: Dict[str, List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    return nodes_by_type.get("Product", []) + nodes_by_type.get("ProductGroup", [])


def product_name(nodes_by_type: Dict[str, List[Dict[str, Any]]]) -> Optional[str]:
    for node in products(nodes_by_type):
        name = node.get("name")
        if isinstance(name, str) and name.strip():
            return collapse_whitespace(name)
    return None


def product_brand(nodes_by_type: Dict[str, List[Dict[str, Any]]]) -> Optional[str]:
    for node in products(nodes_by_type):
        for key in ("brand", "manufacturer"):
            value = node.get(key)
            if isinstance(value, dict):
                value = value.get("name")
            if isinstance(value, list) and value:
                value = value[0].get("name") if isinstance(value[0], dict) else value[0]
            if isinstance(value, str) and value.strip():
                return collapse_whitespace(value)
    return None


def _html_fragment_lines(fragment: str) -> List[str]:
    text = BeautifulSoup(fragment, "lxml").get_text("\n") if "<" in fragment else fragment
    return [collapse_whitespace(line) for line in re.split(r"[\r\n]+", text) if line.strip()]


def product_ingredients(nodes_by_type: Dict[str, List[Dict[str, Any]]]) -> Optional[str]:
    """
    Ingredients from ``hasIngredient``/``ingredients``, ``nutrition.ingredients``
    or an ingredient-looking line of the product description.
    """
    for node in products(nodes_by_type):
        for key in ("hasIngredient", "ingredients", "recipeIngredient"):
            value = node.get(key)
            if isinstance(value, list):
                names = []
                for item in value:
                    if isinstance(item, dict):
                        item = item.get("name")
                    if isinstance(item, str) and item.strip():
                        names.append(item.strip())
                if names:
                    return "Ingredients: " + ", ".join(names)
            elif isinstance(value, str) and value.strip():
                return sanitize_text(value)

        nutrition = node.get("nutrition")
        if isinstance(nutrition, dict) and isinstance(nutrition.get("ingredients"), str):
            return sanitize_text(nutrition["ingredients"])

        description = node.get("description")
        if isinstance(description, str):
            for line in _html_fragment_lines(description):
                if re.match(r"^\s*(other\s+)?ingredients?\s*:", line, re.I) and looks_like_ingredient_list(line):
                    return line
    return None


def product_nutrition(nodes_by_type: Dict[str, List[Dict[str, Any]]]) -> Optional[str]:
    """Render a NutritionInformation node as tab-separated label rows."""
    candidates = list(nodes_by_type.get("NutritionInformation", []))
    for node in products(nodes_by_type):
        if isinstance(node.get("nutrition"), dict):
            candidates.append(node["nutrition"])

    for nutrition in candidates:
        rows = []
        for key, label in NUTRITION_FIELDS:
            value = nutrition.get(key)
            if isinstance(value, (str, int, float)) and str(value).strip():
                rows.append(f"{label}\t{value}")
        if rows:
            return "Nutrition Facts\n" + "\n".join(rows)
    return None
