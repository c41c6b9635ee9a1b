"""
Allocation engine for splitting a bill between people.

Computes each person's subtotal, service, tip and total from priced items and
their assignments, and redistributes voluntary extra contributions so they
reduce what everyone else owes.

Every function here is pure. Amounts are accumulated as Decimal at full
precision and each output field is rounded once, half away from zero.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
from easysplit.core.exceptions import ExcessContributionError, InvalidContributionError
from easysplit.core.utils import to_decimal, round_money, money_to_float
from easysplit.schemas.split import Person, PersonTotal

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
HUNDRED = Decimal(100)


class PersonAmounts:
    """Unrounded amounts owed by one person before any redistribution."""

    def __init__(self, person, subtotal: Decimal, service_pct: Decimal, tip_pct: Decimal):
        self.person = person
        self.subtotal = subtotal
        self.service = subtotal * service_pct / HUNDRED
        self.tip = subtotal * tip_pct / HUNDRED

    @property
    def base_total(self) -> Decimal:
        return self.subtotal + self.service + self.tip


class Settlement:
    """Rounded per-person totals plus the grand total of the unrounded amounts."""

    def __init__(self, totals: List[PersonTotal], grand_total: float):
        self.totals = totals
        self.grand_total = grand_total


def _as_person(person) -> Person:
    if isinstance(person, Person):
        return person
    return Person(id=person.id, name=person.name)


def _order_item_amounts(people, items, service_pct: Decimal, tip_pct: Decimal) -> List[PersonAmounts]:
    """Each item's price is shared evenly between its distinct assignees."""
    subtotals: Dict[str, Decimal] = {person.id: ZERO for person in people}
    for item in items:
        assignees = set(item.assigned_to or [])
        if not assignees:
            continue
        share = to_decimal(item.price) / max(1, len(assignees))
        for person_id in assignees:
            if person_id in subtotals:
                subtotals[person_id] += share
    return [PersonAmounts(p, subtotals[p.id], service_pct, tip_pct) for p in people]


def _quantity_amounts(people, items, quantities, service_pct: Decimal, tip_pct: Decimal) -> List[PersonAmounts]:
    """Each link contributes price * quantity to its person."""
    prices = {item.id: to_decimal(item.price) for item in items}
    subtotals: Dict[str, Decimal] = {person.id: ZERO for person in people}
    for link in quantities:
        price = prices.get(link.item_id)
        if price is None or link.person_id not in subtotals:
            continue
        subtotals[link.person_id] += price * to_decimal(link.quantity)
    return [PersonAmounts(p, subtotals[p.id], service_pct, tip_pct) for p in people]


def _to_person_total(amounts: PersonAmounts, total: Optional[Decimal] = None,
                     extra: Optional[Decimal] = None) -> PersonTotal:
    person_total = PersonTotal(
        person=_as_person(amounts.person),
        subtotal=money_to_float(amounts.subtotal),
        service=money_to_float(amounts.service),
        tip=money_to_float(amounts.tip),
        total=money_to_float(amounts.base_total if total is None else total),
    )
    if extra is not None:
        person_total.extra_contribution = money_to_float(extra)
        person_total.base_total = money_to_float(amounts.base_total)
    return person_total


def compute_person_totals(people, items, service_charge_pct, tip_pct) -> List[PersonTotal]:
    """
    Compute what each person owes for order items with ``assigned_to`` lists.

    An item assigned to nobody is unbilled and contributes to no one.
    """
    amounts = _order_item_amounts(people, items, to_decimal(service_charge_pct), to_decimal(tip_pct))
    return [_to_person_total(a) for a in amounts]


def compute_quantity_totals(people, items, quantities, service_charge_pct, tip_pct) -> List[PersonTotal]:
    """
    Compute what each person owes from flattened item/person quantity links.

    The quantities for an item are not required to sum to 1.
    """
    amounts = _quantity_amounts(
        people, items, quantities, to_decimal(service_charge_pct), to_decimal(tip_pct)
    )
    return [_to_person_total(a) for a in amounts]


def _redistribute(base_totals: Mapping[str, Decimal], extras: Mapping[str, Decimal]) -> Dict[str, Decimal]:
    """
    Spread the sum of extra contributions over the people who contributed none.

    Each pass offers every active recipient an even share of what is left. A
    recipient whose remaining balance is smaller than the share is reduced to
    zero and dropped, and the unapplied part is offered again to the rest.
    Returns the reduction for every non-contributor.
    """
    remaining = sum(extras.values(), ZERO)
    reductions = {person_id: ZERO for person_id in base_totals if extras.get(person_id, ZERO) == 0}
    active = list(reductions)

    while remaining > 0 and active:
        share = remaining / len(active)
        saturated = False
        for person_id in active:
            room = base_totals[person_id] - reductions[person_id]
            applied = min(share, room)
            reductions[person_id] += applied
            remaining -= applied
            if applied < share:
                saturated = True

        if not saturated:
            break
        active = [pid for pid in active if reductions[pid] < base_totals[pid]]

    if round_money(remaining) > 0:
        logger.debug("Extra contribution of %s left unapplied, no recipients remain", remaining)
    return reductions


def _check_contributions(base_totals: Mapping[str, Decimal], extras: Mapping[str, Decimal],
                         currency: str = "") -> None:
    for person_id, extra in extras.items():
        if not extra.is_finite() or extra < 0:
            raise InvalidContributionError(f"Extra contribution for {person_id} must be a non-negative amount")

    total_extra = sum(extras.values(), ZERO)
    recipients_total = sum(
        (base for person_id, base in base_totals.items() if extras.get(person_id, ZERO) == 0),
        ZERO,
    )
    if round_money(total_extra) > round_money(recipients_total):
        raise ExcessContributionError(total_extra, recipients_total, currency)


def _base_and_extra(entries: Iterable[PersonTotal]):
    base_totals: Dict[str, Decimal] = {}
    extras: Dict[str, Decimal] = {}
    for entry in entries:
        base = entry.base_total if entry.base_total is not None else entry.total
        base_totals[entry.person.id] = to_decimal(base)
        extras[entry.person.id] = to_decimal(entry.extra_contribution or 0)
    return base_totals, extras


def validate_extra_contributions(base_totals: Sequence[PersonTotal], currency: str = "") -> None:
    """Raise ExcessContributionError when extras exceed what non-contributors owe."""
    _check_contributions(*_base_and_extra(base_totals), currency=currency)


def apply_redistribution(base_totals: Sequence[PersonTotal]) -> List[PersonTotal]:
    """
    Apply extra contributions to a list of per-person totals.

    Each entry's ``base_total`` (or ``total`` when absent) is what the person
    owes before redistribution. Contributors pay base plus extra, everyone else
    pays their base minus their reduction, never below zero. Callers are
    expected to run validate_extra_contributions first.
    """
    bases, extras = _base_and_extra(base_totals)
    reductions = _redistribute(bases, extras)

    results = []
    for entry in base_totals:
        person_id = entry.person.id
        base, extra = bases[person_id], extras[person_id]
        if extra > 0:
            final = base + extra
        else:
            final = max(ZERO, base - reductions.get(person_id, ZERO))
        result = entry.model_copy()
        result.total = money_to_float(final)
        result.extra_contribution = money_to_float(extra)
        result.base_total = money_to_float(base)
        results.append(result)
    return results


def _settle(amounts: List[PersonAmounts], extra_contributions: Optional[Mapping[str, float]],
            currency: str) -> Settlement:
    extra_contributions = extra_contributions or {}
    bases = {a.person.id: a.base_total for a in amounts}
    extras = {a.person.id: to_decimal(extra_contributions.get(a.person.id, 0)) for a in amounts}
    _check_contributions(bases, extras, currency)

    reductions = _redistribute(bases, extras)
    totals = []
    grand_total = ZERO
    for a in amounts:
        extra = extras[a.person.id]
        if extra > 0:
            final = a.base_total + extra
        else:
            final = max(ZERO, a.base_total - reductions[a.person.id])
        grand_total += final
        totals.append(_to_person_total(a, total=final, extra=extra))
    return Settlement(totals, money_to_float(grand_total))


def settle(people, items, quantities, service_charge_pct, tip_pct,
           extra_contributions: Optional[Mapping[str, float]] = None, currency: str = "") -> Settlement:
    """
    Full computation for a persisted split: quantity totals, contribution
    precondition, then redistribution.

    ``extra_contributions`` maps person id to the extra amount that person adds.
    """
    amounts = _quantity_amounts(
        people, items, quantities, to_decimal(service_charge_pct), to_decimal(tip_pct)
    )
    return _settle(amounts, extra_contributions, currency)


def settle_order_items(people, order_items, service_charge_pct, tip_pct,
                       extra_contributions: Optional[Mapping[str, float]] = None,
                       currency: str = "") -> Settlement:
    """Same as settle() for the rich editing model's assigned order items."""
    amounts = _order_item_amounts(
        people, order_items, to_decimal(service_charge_pct), to_decimal(tip_pct)
    )
    return _settle(amounts, extra_contributions, currency)
