"""
Bill split model: people, items, quantity links and computed totals under a share code.
"""
from sqlalchemy import Column, String, Numeric, JSON
from easysplit.db.base import BaseModel


class BillSplit(BaseModel):
    """
    Persisted bill split.

    Sub-collections are validated by the pydantic schemas before they reach
    the JSON columns. ``totals`` is a cache recomputed on every write.
    Updates replace everything in place; there is no version column, so the
    last writer wins.
    """
    __tablename__ = "bill_splits"

    code = Column(String(8), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=True)
    menu_code = Column(String(8), nullable=True, index=True)  # Soft reference, menus may be deleted later
    people = Column(JSON, nullable=False)
    items = Column(JSON, nullable=False)
    quantities = Column(JSON, nullable=False)
    draft_data = Column(JSON, nullable=True)
    currency = Column(String(8), nullable=False)
    service_charge = Column(Numeric(5, 2), nullable=False, default=0)
    tip_percent = Column(Numeric(5, 2), nullable=False, default=0)
    totals = Column(JSON, nullable=False)
