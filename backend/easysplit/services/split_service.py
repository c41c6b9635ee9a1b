"""
Split service: persistence for bill splits.

Stored totals are a cache of the allocation engine's output. They are
recomputed from the submitted items, quantities, rates and extra
contributions on every write, so a split can never be saved with totals
that its own inputs contradict.
"""
import logging
from typing import Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from easysplit.core.exceptions import MenuReferenceError
from easysplit.core.utils import normalize_code
from easysplit.models.split import BillSplit
from easysplit.schemas.split import SplitBase, SplitCalculateRequest, SplitCreate, SplitResponse
from easysplit.services import allocation_service
from easysplit.services.code_service import save_with_unique_code
from easysplit.services.menu_service import get_menu

logger = logging.getLogger(__name__)


def _extra_contributions(data: SplitBase) -> Dict[str, float]:
    return {t.person.id: t.extra_contribution or 0 for t in data.totals}


def _check_menu_reference(db: Session, menu_code: Optional[str]) -> None:
    if menu_code and not get_menu(db, menu_code):
        raise MenuReferenceError(menu_code)


def _recompute(data: SplitBase) -> allocation_service.Settlement:
    """Raises ExcessContributionError before anything is written."""
    return allocation_service.settle(
        data.people,
        data.items,
        data.quantities,
        data.service_charge,
        data.tip_percent,
        extra_contributions=_extra_contributions(data),
        currency=data.currency,
    )


def _apply(split: BillSplit, data: SplitCreate, settlement: allocation_service.Settlement) -> None:
    split.name = data.name or None
    split.menu_code = data.menu_code
    split.people = [p.model_dump(by_alias=True) for p in data.people]
    split.items = [i.model_dump(by_alias=True) for i in data.items]
    split.quantities = [q.model_dump(by_alias=True) for q in data.quantities]
    split.draft_data = data.draft_data.model_dump(by_alias=True) if data.draft_data else None
    split.currency = data.currency
    split.service_charge = data.service_charge
    split.tip_percent = data.tip_percent
    split.totals = [t.model_dump(by_alias=True) for t in settlement.totals]


def create_split(db: Session, data: SplitCreate) -> Tuple[str, BillSplit]:
    """Validate, recompute and persist a new split under a fresh code."""
    _check_menu_reference(db, data.menu_code)
    settlement = _recompute(data)

    def build(code: str) -> BillSplit:
        split = BillSplit(code=code)
        _apply(split, data, settlement)
        return split

    split = save_with_unique_code(db, build)

    logger.info("Created split %s for %d people", split.code, len(data.people))
    return split.code, split


def get_split(db: Session, code: str) -> Optional[BillSplit]:
    """Get a split by code (case-insensitive)."""
    return db.query(BillSplit).filter(BillSplit.code == normalize_code(code)).first()


def update_split(db: Session, code: str, data: SplitCreate) -> Optional[BillSplit]:
    """
    Replace every field of a split in place, keeping its code.

    No version is checked: concurrent editors overwrite each other and the
    last write wins.
    """
    split = get_split(db, code)
    if not split:
        return None

    _check_menu_reference(db, data.menu_code)
    settlement = _recompute(data)

    _apply(split, data, settlement)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(split)

    logger.info("Updated split %s", split.code)
    return split


def get_splits_by_menu_code(db: Session, menu_code: str) -> List[BillSplit]:
    """Past splits seeded from a menu, newest first."""
    return (
        db.query(BillSplit)
        .filter(BillSplit.menu_code == normalize_code(menu_code))
        .order_by(BillSplit.created_at.desc(), BillSplit.id.desc())
        .all()
    )


def calculate(data: SplitCalculateRequest) -> allocation_service.Settlement:
    """Recompute totals without persisting anything."""
    return allocation_service.settle(
        data.people,
        data.items,
        data.quantities,
        data.service_charge,
        data.tip_percent,
        extra_contributions=data.extra_contributions,
        currency=data.currency,
    )


def to_response(split: BillSplit) -> SplitResponse:
    """Parse the stored JSON columns back into typed values."""
    return SplitResponse.model_validate(split)


def grand_total(split: BillSplit) -> float:
    """Grand total of a stored split, recomputed from its inputs."""
    response = to_response(split)
    return _recompute(response).grand_total
