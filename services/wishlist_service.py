from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.wishlist import WishlistItem
from services.logo_service import logo_url
from services.market_status import market_status
from services.price_service import PriceService

logger = logging.getLogger(__name__)


class WishlistError(ValueError):
    pass


class WishlistItemExistsError(WishlistError):
    pass


class WishlistItemNotFoundError(WishlistError):
    pass


def item_to_dict(item: WishlistItem) -> Dict[str, Any]:
    return {
        "symbol": item.symbol,
        "note": item.note,
        "addedAt": item.created_at.isoformat() if item.created_at else None,
        "logo": logo_url(item.symbol),
    }


def list_items(db: Session, user_id: int) -> List[WishlistItem]:
    return (
        db.query(WishlistItem)
        .filter(WishlistItem.user_id == user_id)
        .order_by(WishlistItem.created_at.asc(), WishlistItem.id.asc())
        .all()
    )


def add_item(db: Session, user_id: int, *, symbol: str, note: str | None = None) -> WishlistItem:
    exists = (
        db.query(WishlistItem)
        .filter(WishlistItem.user_id == user_id, WishlistItem.symbol == symbol)
        .first()
    )
    if exists:
        raise WishlistItemExistsError(f"{symbol} is already in your wishlist")

    item = WishlistItem(user_id=user_id, symbol=symbol, note=note)
    db.add(item)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise WishlistItemExistsError(f"{symbol} is already in your wishlist") from e
    db.refresh(item)
    return item


def remove_item(db: Session, user_id: int, *, symbol: str) -> None:
    item = (
        db.query(WishlistItem)
        .filter(WishlistItem.user_id == user_id, WishlistItem.symbol == symbol)
        .first()
    )
    if not item:
        raise WishlistItemNotFoundError(f"{symbol} is not in your wishlist")
    db.delete(item)
    db.commit()


async def live_prices(db: Session, user_id: int, prices: PriceService) -> List[Dict[str, Any]]:
    """Wishlist rows with a fresh quote each; quote is None when no upstream answered."""
    items = list_items(db, user_id)
    quotes = await prices.get_quotes(i.symbol for i in items)
    status = market_status()

    out: List[Dict[str, Any]] = []
    for item in items:
        q = quotes.get(item.symbol)
        row = item_to_dict(item)
        row["quote"] = {**q.to_dict(), "marketStatus": status} if q else None
        out.append(row)
    return out
