"""
Tests for the per-person allocation engine.
"""
import pytest
from easysplit.schemas.split import BillSplitItem, ItemQuantity, OrderItem, Person
from easysplit.services.allocation_service import (
    compute_person_totals, compute_quantity_totals, settle, settle_order_items
)

ALICE = Person(id="p1", name="Alice")
BOB = Person(id="p2", name="Bob")
CHARLIE = Person(id="p3", name="Charlie")


def order_item(name, price, assigned_to):
    return OrderItem(instance_id=name, original_id=0, name=name, price=price, assigned_to=assigned_to)


@pytest.fixture
def dinner():
    return [
        order_item("Pizza", 30, ["p1", "p2"]),
        order_item("Drinks", 15, ["p3"]),
        order_item("Dessert", 10, ["p1", "p2", "p3"]),
    ]


def by_name(totals):
    return {t.person.name: t for t in totals}


def test_reference_scenario(dinner):
    """Pizza/2 + Dessert/3 for Alice and Bob, Drinks + Dessert/3 for Charlie."""
    totals = by_name(compute_person_totals([ALICE, BOB, CHARLIE], dinner, 0, 0))

    assert totals["Alice"].subtotal == 18.33
    assert totals["Alice"].total == 18.33
    assert totals["Bob"].total == 18.33
    assert totals["Charlie"].total == 18.33


def test_reference_scenario_grand_total_is_sum_of_prices(dinner):
    settlement = settle_order_items([ALICE, BOB, CHARLIE], dinner, 0, 0)

    assert settlement.grand_total == 55.00


def test_even_split_between_assignees():
    totals = by_name(compute_person_totals(
        [ALICE, BOB, CHARLIE], [order_item("Pizza", 30, ["p1", "p2"])], 0, 0
    ))

    assert totals["Alice"].subtotal == 15.00
    assert totals["Bob"].subtotal == 15.00
    assert totals["Charlie"].subtotal == 0


def test_duplicate_assignee_counted_once():
    totals = compute_person_totals([ALICE, BOB], [order_item("Pizza", 30, ["p1", "p1", "p2"])], 0, 0)

    assert [t.subtotal for t in totals] == [15.00, 15.00]


def test_unassigned_item_is_billed_to_nobody():
    items = [order_item("Pizza", 30, ["p1"]), order_item("Orphan", 99, [])]

    totals = compute_person_totals([ALICE, BOB], items, 0, 0)

    assert sum(t.subtotal for t in totals) == 30.00
    assert settle_order_items([ALICE, BOB], items, 0, 0).grand_total == 30.00


def test_person_with_no_items_is_all_zero(dinner):
    dave = Person(id="p4", name="Dave")

    totals = by_name(compute_person_totals([ALICE, BOB, CHARLIE, dave], dinner, 12.5, 10))

    assert totals["Dave"].subtotal == 0
    assert totals["Dave"].service == 0
    assert totals["Dave"].tip == 0
    assert totals["Dave"].total == 0


def test_service_and_tip_apply_to_subtotal():
    totals = by_name(compute_person_totals(
        [ALICE, BOB], [order_item("Pizza", 30, ["p1", "p2"])], 10, 5
    ))

    assert totals["Alice"].subtotal == 15.00
    assert totals["Alice"].service == 1.50
    assert totals["Alice"].tip == 0.75
    assert totals["Alice"].total == 17.25


def test_zero_rates_give_exact_zero_fields():
    total = compute_person_totals([ALICE], [order_item("Pizza", 30, ["p1"])], 0, 0)[0]

    assert total.service == 0
    assert total.tip == 0
    assert total.extra_contribution is None


def test_engine_is_deterministic(dinner):
    first = compute_person_totals([ALICE, BOB, CHARLIE], dinner, 12.5, 7)
    second = compute_person_totals([ALICE, BOB, CHARLIE], dinner, 12.5, 7)

    assert [t.model_dump() for t in first] == [t.model_dump() for t in second]


def test_rounds_half_away_from_zero():
    totals = compute_person_totals(
        [ALICE, BOB], [order_item("Tea", 0.125, ["p1"]), order_item("Cake", 2.675, ["p2"])], 0, 0
    )

    assert totals[0].subtotal == 0.13
    assert totals[1].subtotal == 2.68


def test_rounds_once_per_field_not_per_item():
    items = [order_item(f"Mint {n}", 0.005, ["p1"]) for n in range(3)]

    total = compute_person_totals([ALICE], items, 0, 0)[0]

    assert total.subtotal == 0.02


def test_subtotals_conserve_item_prices():
    items = [
        order_item("A", 19.99, ["p1", "p2", "p3"]),
        order_item("B", 7.45, ["p2"]),
        order_item("C", 12.10, ["p1", "p3"]),
    ]

    totals = compute_person_totals([ALICE, BOB, CHARLIE], items, 0, 0)

    assert abs(sum(t.subtotal for t in totals) - (19.99 + 7.45 + 12.10)) <= 0.01 * len(items)


def test_quantity_totals_multiply_price_by_quantity():
    items = [BillSplitItem(id=1, name="Beer", price=5), BillSplitItem(id=2, name="Pizza", price=30)]
    quantities = [
        ItemQuantity(item_id=1, person_id="p1", quantity=3),
        ItemQuantity(item_id=2, person_id="p1", quantity=0.5),
        ItemQuantity(item_id=2, person_id="p2", quantity=0.5),
    ]

    totals = compute_quantity_totals([ALICE, BOB], items, quantities, 0, 0)

    assert totals[0].subtotal == 30.00
    assert totals[1].subtotal == 15.00


def test_quantity_links_to_unknown_items_are_ignored():
    items = [BillSplitItem(id=1, name="Beer", price=5)]
    quantities = [
        ItemQuantity(item_id=1, person_id="p1", quantity=1),
        ItemQuantity(item_id=42, person_id="p1", quantity=1),
        ItemQuantity(item_id=1, person_id="ghost", quantity=1),
    ]

    totals = compute_quantity_totals([ALICE], items, quantities, 0, 0)

    assert totals[0].subtotal == 5.00


def test_quantity_representation_matches_reference_scenario():
    items = [
        BillSplitItem(id=1, name="Pizza", price=30),
        BillSplitItem(id=2, name="Drinks", price=15),
        BillSplitItem(id=3, name="Dessert", price=10),
    ]
    quantities = [
        ItemQuantity(item_id=1, person_id="p1", quantity=0.5),
        ItemQuantity(item_id=1, person_id="p2", quantity=0.5),
        ItemQuantity(item_id=2, person_id="p3", quantity=1),
    ] + [ItemQuantity(item_id=3, person_id=p, quantity=1 / 3) for p in ("p1", "p2", "p3")]

    settlement = settle([ALICE, BOB, CHARLIE], items, quantities, 0, 0)

    assert [t.total for t in settlement.totals] == [18.33, 18.33, 18.33]
    assert settlement.grand_total == 55.00
