"""
Category Resolver

Guesses a category for a budget line name. Resolution order, first match wins:

1. Exact name match against the user's categories (case-insensitive)
2. The name contains one of the user's category names
3. Keyword table (groceries, toiletries, transport, utilities, housing,
   entertainment), mapped to a generic label. The label is returned as
   written even when no user category carries it, so a brand-new user
   still sees a sensible suggestion
4. Nothing matched: "" so the user assigns it by hand

DESIGN DECISION: User categories always win over the keyword table.
The table only helps brand-new users who have no categories yet.
"""

from typing import Iterable, Optional

from budgetbook.models.budget import Category


# Keyword -> generic category label. Order matters: first hit wins.
KEYWORD_CATEGORY_RULES: dict[str, str] = {
    "pepper": "Food", "onions": "Food", "elubo": "Food", "plantain": "Food",
    "ginger": "Food", "ewedu": "Food", "efo": "Food", "ponmo": "Food",
    "ata": "Food", "veggies": "Food", "fruits": "Food", "panla": "Food",
    "soup": "Food", "rice": "Food", "beans": "Food", "yam": "Food",
    "grocer": "Food", "market": "Food", "food": "Food", "egg": "Food",
    "milk": "Food", "milo": "Food", "snack": "Food", "frozen": "Food",
    "toothpaste": "Toiletries", "detergent": "Toiletries", "hypo": "Toiletries",
    "transport": "Transport", "uber": "Transport", "bolt": "Transport",
    "fuel": "Transport",
    "data": "Utilities", "airtime": "Utilities", "internet": "Utilities",
    "phone": "Utilities",
    "rent": "Housing", "house": "Housing",
    "netflix": "Entertainment", "movie": "Entertainment",
}


def _find_by_name(
    label: str,
    categories: Iterable[Category],
) -> Optional[Category]:
    wanted = label.lower()
    for category in categories:
        if category.name.lower() == wanted:
            return category
    return None


def keyword_label(name: str) -> str:
    """Return the generic label of the first keyword found in `name`, or ''."""
    lower_name = name.lower()
    for keyword, label in KEYWORD_CATEGORY_RULES.items():
        if keyword in lower_name:
            return label
    return ""


def resolve_category(name: str, categories: Iterable[Category]) -> str:
    """
    Best-guess category name for a budget line.

    Args:
        name: Item name as parsed from the pasted line
        categories: The user's known categories, in display order

    Returns:
        The stored name of the matched category, a generic keyword label,
        or "" when nothing matched.
    """
    known = list(categories)
    lower_name = name.lower()

    exact = _find_by_name(name, known)
    if exact:
        return exact.name

    for category in known:
        category_name = category.name.lower()
        # An empty name is a substring of everything
        if category_name and category_name in lower_name:
            return category.name

    # A user category named exactly like the label is that same string,
    # so the label is returned as is. Other spellings ("food") don't match.
    return keyword_label(name)
