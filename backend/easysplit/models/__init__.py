"""Models package - Import all models for SQLAlchemy registration."""
from easysplit.models.menu import Menu, MenuItem
from easysplit.models.split import BillSplit

__all__ = [
    "Menu",
    "MenuItem",
    "BillSplit",
]
