"""
Grocery Tracker - Core Package

Household sharing and budget-period logic for a grocery-spending tracker.

DESIGN PRINCIPLES:
1. Absence is not an error (no household, no comparison -> None / empty)
2. One broken member record never hides the whole household
3. Every collaborator (storage, identity, notifications) is injected
4. Every significant household action is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Grocery Tracker Team"
