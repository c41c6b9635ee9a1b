"""
Menu model: a reusable list of named, priced items addressable by a share code.
"""
from sqlalchemy import Column, String, Numeric, ForeignKey, Integer
from sqlalchemy.orm import relationship
from easysplit.db.base import BaseModel


class Menu(BaseModel):
    """Menu template with no participants or assignments."""
    __tablename__ = "menus"

    code = Column(String(8), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=True)
    currency = Column(String(8), nullable=False, default="£")

    # Relationships
    items = relationship(
        "MenuItem",
        back_populates="menu",
        cascade="all, delete-orphan",
        order_by="MenuItem.id",
    )


class MenuItem(BaseModel):
    """A single priced line on a menu."""
    __tablename__ = "menu_items"

    menu_id = Column(Integer, ForeignKey("menus.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    # Relationships
    menu = relationship("Menu", back_populates="items")
