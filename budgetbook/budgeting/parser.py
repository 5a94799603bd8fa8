"""
Bulk Budget Text Parser

Turns pasted text like

    Pepper 40,000
    Onions 10,000
    Transport

into one BudgetLineProposal per non-blank line, in the order the lines
appear. The trailing number of a line is its amount; everything before it
is the name.

IMPORTANT: Parsing never fails. A line without a trailing amount still
becomes a proposal (whole line as the name, amount "0") so the user can
fix it in the review step.
"""

import re
from typing import Iterable, Optional

from budgetbook.budgeting.categorizer import resolve_category
from budgetbook.models.budget import BudgetLineProposal, Category


# Lazy name so the amount is the longest numeric suffix of the line.
# The amount may hold commas and at most one decimal point.
_LINE_PATTERN = re.compile(r"^(?P<name>.*?)\s*(?P<amount>[\d,]*\.?[\d,]*)\s*$")

DEFAULT_AMOUNT = "0"


def parse_budget_line(line: str) -> tuple[str, str]:
    """
    Split one line into (name, amount).

    The amount comes back without thousands separators. Lines with no
    trailing number give (stripped line, "0").

    >>> parse_budget_line("Pepper 40,000")
    ('Pepper', '40000')
    >>> parse_budget_line("Item 2 Pack 500")
    ('Item 2 Pack', '500')
    """
    stripped = line.strip()
    match = _LINE_PATTERN.match(stripped)
    if match:
        amount = match.group("amount").replace(",", "")
        if any(ch.isdigit() for ch in amount):
            return match.group("name").strip(), amount
    return stripped, DEFAULT_AMOUNT


def parse_budget_text(
    text: str,
    categories: Optional[Iterable[Category]] = None,
) -> list[BudgetLineProposal]:
    """
    Parse a block of pasted text into budget line proposals.

    Args:
        text: Freeform text, one budget line per text line
        categories: The user's categories, used to guess each line's category

    Returns:
        Proposals in input order, one per non-blank line.
    """
    known = list(categories or [])
    proposals = []

    lines = [line for line in text.splitlines() if line.strip()]
    for index, line in enumerate(lines):
        name, amount = parse_budget_line(line)
        proposals.append(BudgetLineProposal(
            item_id=f"item-{index}",
            source_name=name,
            category=resolve_category(name, known),
            amount=amount,
        ))

    return proposals
