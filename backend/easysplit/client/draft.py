"""
Local editing state for a split.

A draft holds people, ordered items with their assignees, rates and extra
contributions. Totals are recomputed by the allocation engine on demand, and
``to_payload()`` flattens the draft into the persisted split shape, where each
assignee of an item shared by k people gets a quantity of 1/k.
"""
import logging
import math
import uuid
from typing import Callable, Dict, Iterable, List, Optional
from easysplit.core.config import settings
from easysplit.schemas.menu import MenuWithItemsResponse
from easysplit.schemas.split import (
    BillSplitItem, DraftData, ItemQuantity, OrderItem, Person,
    SplitCreate, SplitResponse
)
from easysplit.services import allocation_service

logger = logging.getLogger(__name__)

# Fractional parts below this are float noise from 1/k quantities
QUANTITY_EPSILON = 1e-6


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _check_percentage(value: float, label: str) -> float:
    value = float(value)
    if not math.isfinite(value) or value < 0 or value > 100:
        raise ValueError(f"{label} must be between 0 and 100")
    return value


class SplitDraft:
    """Mutable draft of one split. Every mutation notifies ``listeners``."""

    def __init__(self, currency: str = None, service_charge: float = 0, tip_percent: float = 0,
                 name: Optional[str] = None, menu_code: Optional[str] = None):
        self.name = name
        self.menu_code = menu_code
        self.currency = currency or settings.DEFAULT_CURRENCY
        self.service_charge = _check_percentage(service_charge, "Service charge")
        self.tip_percent = _check_percentage(tip_percent, "Tip")
        self.people: List[Person] = []
        self.order_items: List[OrderItem] = []
        self.menu_items = []
        self.extra_contributions: Dict[str, float] = {}
        self.listeners: List[Callable[[], None]] = []
        self.revision = 0
        self.saved_revision = 0

    # Change tracking

    @property
    def is_dirty(self) -> bool:
        return self.revision != self.saved_revision

    def mark_saved(self, revision: int) -> None:
        """Record a successful save of the state at ``revision``."""
        self.saved_revision = max(self.saved_revision, revision)

    def _changed(self) -> None:
        self.revision += 1
        for listener in list(self.listeners):
            listener()

    # Lookups

    def person(self, person_id: str) -> Person:
        for person in self.people:
            if person.id == person_id:
                return person
        raise KeyError(f"Unknown person {person_id}")

    def item(self, instance_id: str) -> OrderItem:
        for item in self.order_items:
            if item.instance_id == instance_id:
                return item
        raise KeyError(f"Unknown item {instance_id}")

    # People

    def add_person(self, name: str, person_id: str = None) -> Person:
        name = (name or "").strip()
        if not name:
            raise ValueError("Please enter a person's name")
        if person_id is not None and any(p.id == person_id for p in self.people):
            raise ValueError(f"Duplicate person id {person_id}")
        person = Person(id=person_id or _new_id(), name=name)
        self.people.append(person)
        self._changed()
        return person

    def rename_person(self, person_id: str, name: str) -> None:
        name = (name or "").strip()
        if not name:
            raise ValueError("Please enter a person's name")
        self.person(person_id).name = name
        self._changed()

    def remove_person(self, person_id: str) -> None:
        """
        Remove a person and every assignment that references them.

        Items left with no assignees stay on the bill unassigned and are billed
        to nobody until someone is assigned again.
        """
        self.person(person_id)
        self.people = [p for p in self.people if p.id != person_id]
        for item in self.order_items:
            item.assigned_to = [pid for pid in item.assigned_to if pid != person_id]
            if item.owner_id == person_id:
                item.owner_id = None
        self.extra_contributions.pop(person_id, None)
        self._changed()

    # Items

    def add_item(self, name: str, price: float, owner_id: Optional[str] = None,
                 original_id: int = 0) -> OrderItem:
        """Add an ordered item. The person who adds it is assigned to it."""
        name = (name or "").strip()
        price = float(price)
        if not name or not math.isfinite(price) or price <= 0:
            raise ValueError("Please enter a valid item name and price")
        if owner_id is not None:
            self.person(owner_id)
        item = OrderItem(
            instance_id=_new_id(),
            original_id=original_id,
            name=name,
            price=price,
            assigned_to=[owner_id] if owner_id else [],
            owner_id=owner_id,
        )
        self.order_items.append(item)
        self._changed()
        return item

    def load_menu(self, menu: MenuWithItemsResponse) -> None:
        """Seed the draft's choices, currency and menu reference from a saved menu."""
        self.menu_code = menu.menu.code
        self.currency = menu.menu.currency
        self.menu_items = list(menu.items)
        self._changed()

    def order_from_menu(self, menu_item_id: int, owner_id: Optional[str] = None) -> OrderItem:
        for menu_item in self.menu_items:
            if menu_item.id == menu_item_id:
                return self.add_item(menu_item.name, menu_item.price, owner_id, original_id=menu_item.id)
        raise KeyError(f"Unknown menu item {menu_item_id}")

    def remove_item(self, instance_id: str) -> None:
        self.item(instance_id)
        self.order_items = [i for i in self.order_items if i.instance_id != instance_id]
        self._changed()

    # Assignments

    def assign(self, instance_id: str, person_id: str) -> None:
        item = self.item(instance_id)
        self.person(person_id)
        if person_id not in item.assigned_to:
            item.assigned_to = item.assigned_to + [person_id]
            self._changed()

    def unassign(self, instance_id: str, person_id: str) -> None:
        item = self.item(instance_id)
        if person_id in item.assigned_to:
            item.assigned_to = [pid for pid in item.assigned_to if pid != person_id]
            self._changed()

    def toggle_assignment(self, instance_id: str, person_id: str) -> bool:
        """Returns True if the person is assigned afterwards."""
        if person_id in self.item(instance_id).assigned_to:
            self.unassign(instance_id, person_id)
            return False
        self.assign(instance_id, person_id)
        return True

    def split_evenly(self, instance_id: str, person_ids: Iterable[str]) -> None:
        """Share one item evenly between exactly ``person_ids``."""
        item = self.item(instance_id)
        assignees = []
        for person_id in person_ids:
            self.person(person_id)
            if person_id not in assignees:
                assignees.append(person_id)
        item.assigned_to = assignees
        self._changed()

    def join_shared_items(self, person_id: str, instance_ids: Iterable[str]) -> None:
        """Add a person to several already-ordered items at once."""
        self.person(person_id)
        for instance_id in instance_ids:
            item = self.item(instance_id)
            if person_id not in item.assigned_to:
                item.assigned_to = item.assigned_to + [person_id]
        self._changed()

    # Rates and contributions

    def set_rates(self, service_charge: float = None, tip_percent: float = None) -> None:
        if service_charge is not None:
            self.service_charge = _check_percentage(service_charge, "Service charge")
        if tip_percent is not None:
            self.tip_percent = _check_percentage(tip_percent, "Tip")
        self._changed()

    def set_extra_contribution(self, person_id: str, amount: float) -> None:
        self.person(person_id)
        amount = float(amount or 0)
        if not math.isfinite(amount) or amount < 0:
            raise ValueError("Extra contribution must be a positive amount")
        if amount == 0:
            self.extra_contributions.pop(person_id, None)
        else:
            self.extra_contributions[person_id] = amount
        self._changed()

    # Computation

    def settlement(self) -> allocation_service.Settlement:
        """Raises ExcessContributionError if extras exceed what others owe."""
        return allocation_service.settle_order_items(
            self.people,
            self.order_items,
            self.service_charge,
            self.tip_percent,
            extra_contributions=self.extra_contributions,
            currency=self.currency,
        )

    def totals(self):
        return self.settlement().totals

    def to_payload(self) -> SplitCreate:
        """Flatten into the persisted shape. Raises ValueError if there is nothing to save."""
        if not self.people:
            raise ValueError("Add at least one person")
        if not self.order_items:
            raise ValueError("Add at least one item")

        items = []
        quantities = []
        for index, order_item in enumerate(self.order_items, start=1):
            items.append(BillSplitItem(id=index, name=order_item.name, price=order_item.price))
            assignees = list(dict.fromkeys(order_item.assigned_to))
            for person_id in assignees:
                quantities.append(ItemQuantity(item_id=index, person_id=person_id, quantity=1 / len(assignees)))
        if not quantities:
            raise ValueError("Assign at least one item to someone")

        return SplitCreate(
            name=self.name,
            menu_code=self.menu_code,
            people=[Person(id=p.id, name=p.name) for p in self.people],
            items=items,
            quantities=quantities,
            draft_data=DraftData(order_items=[i.model_copy(deep=True) for i in self.order_items]),
            currency=self.currency,
            service_charge=self.service_charge,
            tip_percent=self.tip_percent,
            totals=self.totals(),
        )

    @classmethod
    def from_split(cls, split: SplitResponse) -> "SplitDraft":
        """
        Resume editing a saved split.

        Uses the saved draft state when present. Otherwise items are rebuilt
        from the quantity links: whole quantities become items owned by that
        person alone, fractional shares of one item become one shared item.
        """
        draft = cls(
            currency=split.currency,
            service_charge=split.service_charge,
            tip_percent=split.tip_percent,
            name=split.name,
            menu_code=split.menu_code,
        )
        draft.people = [Person(id=p.id, name=p.name) for p in split.people]
        known = {p.id for p in draft.people}

        if split.draft_data and split.draft_data.order_items:
            draft.order_items = [i.model_copy(deep=True) for i in split.draft_data.order_items]
        else:
            draft.order_items = _rebuild_order_items(split)

        for item in draft.order_items:
            item.assigned_to = [pid for pid in item.assigned_to if pid in known]
        for total in split.totals:
            if total.extra_contribution and total.person.id in known:
                draft.extra_contributions[total.person.id] = total.extra_contribution
        return draft


def _rebuild_order_items(split: SplitResponse) -> List[OrderItem]:
    order_items = []
    for item in split.items:
        links = [q for q in split.quantities if q.item_id == item.id]
        shared = []
        for link in links:
            whole = int(link.quantity + QUANTITY_EPSILON)
            for n in range(whole):
                order_items.append(OrderItem(
                    instance_id=f"{item.id}-{link.person_id}-{n}",
                    original_id=item.id,
                    name=item.name,
                    price=item.price,
                    assigned_to=[link.person_id],
                    owner_id=link.person_id,
                ))
            if link.quantity - whole > QUANTITY_EPSILON:
                shared.append(link.person_id)
        if shared or not links:
            order_items.append(OrderItem(
                instance_id=f"{item.id}-shared" if shared else str(item.id),
                original_id=item.id,
                name=item.name,
                price=item.price,
                assigned_to=shared,
            ))
    return order_items
