from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from routers.market_routes import get_price_service
from schemas.general import ok
from schemas.wishlist import WishlistItemCreate
from services.auth import get_current_user
from services.price_service import PriceService
from services.wishlist_service import (
    WishlistItemExistsError,
    WishlistItemNotFoundError,
    add_item,
    item_to_dict,
    list_items,
    live_prices,
    remove_item,
)
from utils.common_helpers import normalize_symbol

router = APIRouter()


@router.get("")
def get_wishlist(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return ok([item_to_dict(i) for i in list_items(db, user.id)])


@router.post("")
def add_to_wishlist(
    payload: WishlistItemCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        item = add_item(db, user.id, symbol=payload.symbol, note=payload.note)
    except WishlistItemExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return ok(item_to_dict(item), status_code=201)


@router.get("/prices")
async def get_wishlist_prices(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    prices: PriceService = Depends(get_price_service),
):
    return ok(await live_prices(db, user.id, prices))


@router.delete("/{symbol}")
def remove_from_wishlist(
    symbol: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        sym = normalize_symbol(symbol)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    try:
        remove_item(db, user.id, symbol=sym)
    except WishlistItemNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return ok({"message": f"{sym} removed from wishlist"})
