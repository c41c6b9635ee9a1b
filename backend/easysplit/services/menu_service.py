"""
Menu service: persistence for reusable item lists.
"""
import logging
from typing import Optional, Tuple
from sqlalchemy.orm import Session
from easysplit.core.utils import normalize_code
from easysplit.models.menu import Menu, MenuItem
from easysplit.schemas.menu import MenuCreate
from easysplit.services.code_service import save_with_unique_code

logger = logging.getLogger(__name__)


def _build_items(data: MenuCreate):
    return [MenuItem(name=item.name, price=item.price) for item in data.items]


def create_menu(db: Session, data: MenuCreate) -> Tuple[str, Menu]:
    """Persist a menu and its items in one transaction under a fresh code."""
    menu = save_with_unique_code(db, lambda code: Menu(
        code=code,
        name=data.name or None,
        currency=data.currency,
        items=_build_items(data),
    ))

    logger.info("Created menu %s with %d items", menu.code, len(menu.items))
    return menu.code, menu


def get_menu(db: Session, code: str) -> Optional[Menu]:
    """Get a menu by code (case-insensitive)."""
    return db.query(Menu).filter(Menu.code == normalize_code(code)).first()


def update_menu(db: Session, code: str, data: MenuCreate) -> Optional[Menu]:
    """
    Replace a menu's name, currency and full item list.

    The old items are deleted and the new ones inserted in the same
    transaction, so readers never see a half-replaced list.
    """
    menu = get_menu(db, code)
    if not menu:
        return None

    menu.name = data.name or None
    menu.currency = data.currency
    menu.items = _build_items(data)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(menu)

    logger.info("Updated menu %s", menu.code)
    return menu


def delete_menu(db: Session, code: str) -> bool:
    """Delete a menu and its items. Returns False if there was nothing to delete."""
    menu = get_menu(db, code)
    if not menu:
        return False

    deleted_code = menu.code
    db.delete(menu)
    db.commit()
    logger.info("Deleted menu %s", deleted_code)
    return True
