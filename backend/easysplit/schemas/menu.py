"""
Pydantic schemas for Menu entity.
"""
from pydantic import Field
from typing import List, Optional
from datetime import datetime
from easysplit.core.config import settings
from easysplit.schemas.common import CamelModel


class MenuItemCreate(CamelModel):
    """Schema for a menu line on create/update."""
    name: str = Field(min_length=1)
    price: float = Field(gt=0, allow_inf_nan=False)


class MenuCreate(CamelModel):
    """Schema for menu creation and full replacement."""
    name: Optional[str] = None
    currency: str = Field(default=settings.DEFAULT_CURRENCY, min_length=1)
    items: List[MenuItemCreate] = Field(min_length=1)


class MenuItemResponse(CamelModel):
    """Schema for menu item response."""
    id: int
    menu_id: int
    name: str
    price: float


class MenuResponse(CamelModel):
    """Schema for menu response."""
    id: int
    code: str
    name: Optional[str] = None
    currency: str
    created_at: datetime


class MenuCreatedResponse(CamelModel):
    code: str
    menu: MenuResponse


class MenuWithItemsResponse(CamelModel):
    menu: MenuResponse
    items: List[MenuItemResponse]
