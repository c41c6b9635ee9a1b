"""
Menu management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from easysplit.db.session import get_db
from easysplit.schemas.menu import MenuCreate, MenuCreatedResponse, MenuWithItemsResponse
from easysplit.schemas.split import SplitResponse
from easysplit.api.dependencies import lookup_rate_limiter, valid_code
from easysplit.services import menu_service, split_service

router = APIRouter(prefix="/menus", tags=["menus"])


def _menu_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Menu not found"
    )


@router.post("", response_model=MenuCreatedResponse)
async def create_menu(
    menu_data: MenuCreate,
    db: Session = Depends(get_db)
):
    """Save a menu under a new share code."""
    code, menu = menu_service.create_menu(db, menu_data)
    return {"code": code, "menu": menu}


@router.get(
    "/{code}",
    response_model=MenuWithItemsResponse,
    dependencies=[Depends(lookup_rate_limiter)]
)
async def get_menu(
    code: str = Depends(valid_code),
    db: Session = Depends(get_db)
):
    """Get a menu and its items by code."""
    menu = menu_service.get_menu(db, code)
    if not menu:
        raise _menu_not_found()
    return {"menu": menu, "items": menu.items}


@router.patch("/{code}", response_model=MenuWithItemsResponse)
async def update_menu(
    menu_data: MenuCreate,
    code: str = Depends(valid_code),
    db: Session = Depends(get_db)
):
    """Replace a menu's name, currency and items."""
    menu = menu_service.update_menu(db, code, menu_data)
    if not menu:
        raise _menu_not_found()
    return {"menu": menu, "items": menu.items}


@router.delete("/{code}")
async def delete_menu(
    code: str = Depends(valid_code),
    db: Session = Depends(get_db)
):
    """Delete a menu and its items."""
    if not menu_service.delete_menu(db, code):
        raise _menu_not_found()
    return {"success": True}


@router.get(
    "/{code}/splits",
    response_model=List[SplitResponse],
    dependencies=[Depends(lookup_rate_limiter)]
)
async def get_menu_splits(
    code: str = Depends(valid_code),
    db: Session = Depends(get_db)
):
    """Past splits started from this menu, newest first."""
    return [split_service.to_response(s) for s in split_service.get_splits_by_menu_code(db, code)]
