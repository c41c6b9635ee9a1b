"""
Pydantic schemas for Split entity and the values it is built from.
"""
import json
from pydantic import Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime
from easysplit.schemas.common import CamelModel


class Person(CamelModel):
    """A participant; ids are client-generated and unique within one split."""
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)


def _check_unique_people(people: List[Person]) -> List[Person]:
    seen = set()
    for person in people:
        if person.id in seen:
            raise ValueError(f"Duplicate person id {person.id}")
        seen.add(person.id)
    return people


class BillSplitItem(CamelModel):
    """A billable line. ``price`` is the full price, not per share."""
    id: int
    menu_id: Optional[int] = None
    name: str
    price: float = Field(ge=0, allow_inf_nan=False)


class ItemQuantity(CamelModel):
    """Link between one item and one person; fractional quantities are shares."""
    item_id: int
    person_id: str = Field(min_length=1)
    quantity: float = Field(gt=0, allow_inf_nan=False)


class PersonTotal(CamelModel):
    """Computed amounts for one person, rounded to 2 decimal places."""
    person: Person
    subtotal: float = Field(ge=0, allow_inf_nan=False)
    service: float = Field(ge=0, allow_inf_nan=False)
    tip: float = Field(ge=0, allow_inf_nan=False)
    total: float = Field(ge=0, allow_inf_nan=False)
    extra_contribution: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    base_total: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class OrderItem(CamelModel):
    """
    One ordered instance of an item in the rich editing model.

    ``assigned_to`` lists the people who split its cost evenly; ``owner_id``
    is whoever added it.
    """
    instance_id: str
    original_id: int
    name: str
    price: float = Field(ge=0, allow_inf_nan=False)
    assigned_to: List[str] = []
    owner_id: Optional[str] = None


class DraftData(CamelModel):
    """Editor state kept alongside a split so other devices can resume editing."""
    order_items: List[OrderItem] = []


class SplitBase(CamelModel):
    """Fields shared by split requests and responses."""
    name: Optional[str] = None
    menu_code: Optional[str] = None
    people: List[Person] = Field(min_length=1)
    items: List[BillSplitItem] = Field(min_length=1)
    quantities: List[ItemQuantity] = Field(min_length=1)
    draft_data: Optional[DraftData] = None
    currency: str = Field(min_length=1)
    service_charge: float = Field(ge=0, le=100, allow_inf_nan=False)
    tip_percent: float = Field(ge=0, le=100, allow_inf_nan=False)
    totals: List[PersonTotal] = Field(min_length=1)

    @field_validator("people")
    @classmethod
    def unique_people(cls, v):
        return _check_unique_people(v)

    @field_validator("menu_code", mode="before")
    @classmethod
    def normalize_menu_code(cls, v):
        """Blank means no menu; codes are stored uppercase."""
        if v is None:
            return None
        v = str(v).strip().upper()
        return v or None

    @field_validator("draft_data", mode="before")
    @classmethod
    def parse_draft_data(cls, v):
        """Older clients send draftData as a JSON string."""
        if isinstance(v, str):
            return json.loads(v) if v.strip() else None
        return v


class SplitCreate(SplitBase):
    """Schema for split creation and full in-place replacement."""
    pass


class SplitResponse(SplitBase):
    """Schema for split response."""
    id: int
    code: str
    created_at: datetime
    updated_at: datetime


class SplitCreatedResponse(CamelModel):
    code: str
    split: SplitResponse


class SplitCalculateRequest(CamelModel):
    """Stateless recomputation request."""
    people: List[Person] = Field(min_length=1)
    items: List[BillSplitItem] = Field(min_length=1)
    quantities: List[ItemQuantity] = []
    service_charge: float = Field(default=0, ge=0, le=100, allow_inf_nan=False)
    tip_percent: float = Field(default=0, ge=0, le=100, allow_inf_nan=False)
    currency: str = ""
    extra_contributions: Dict[str, float] = {}  # person id -> extra amount

    @field_validator("people")
    @classmethod
    def unique_people(cls, v):
        return _check_unique_people(v)


class SplitCalculateResponse(CamelModel):
    totals: List[PersonTotal]
    grand_total: float
