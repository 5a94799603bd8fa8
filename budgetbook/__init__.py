"""
Budget Book - Source Package

A personal budgeting assistant: paste a shopping list to create a month of
budgets at once, manage categories, and turn receipt photos into
transactions.

DESIGN PRINCIPLES:
1. Parser/AI proposes → Human reviews → System saves
2. Fail early, fail visibly
3. No silent corrections
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Book Team"
