# routers/portfolio_routes.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

import crud
from database import get_db
from models.holding import to_dto as holding_dto
from models.transaction import to_dto as transaction_dto
from models.user import User
from routers.market_routes import get_price_service
from schemas.general import ok
from schemas.portfolio import AddStockRequest, UpdateStockRequest
from services.accounting import AccountingError, TransactionKind
from services.auth import get_current_user
from services.portfolio_service import (
    ConcurrentModificationError,
    HoldingNotFoundError,
    TradeOutcome,
    buy,
    get_portfolio,
    reconcile,
    remove_holding,
    sell,
)
from services.price_service import PriceService
from utils.common_helpers import normalize_symbol

router = APIRouter()


def _symbol_or_400(raw: str) -> str:
    try:
        return normalize_symbol(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _trade_or_http(fn, *args) -> TradeOutcome:
    try:
        return fn(*args)
    except HoldingNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except AccountingError as exc:
        # insufficient units: message carries the available quantity
        raise HTTPException(status_code=400, detail=str(exc))
    except ConcurrentModificationError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.get("/stocks")
async def list_stocks(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    prices: PriceService = Depends(get_price_service),
):
    return ok(await get_portfolio(db, user.id, prices))


@router.post("/stocks")
def add_stock(
    payload: AddStockRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    outcome = _trade_or_http(buy, db, user.id, payload.symbol, payload.units, payload.buy_price)
    return ok(holding_dto(outcome.holding), status_code=201)


@router.get("/stocks/{symbol}")
def get_stock(
    symbol: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    holding = crud.get_holding(db, user.id, _symbol_or_400(symbol))
    if not holding:
        raise HTTPException(status_code=404, detail="Stock not found")
    return ok(holding_dto(holding))


@router.put("/stocks/{symbol}")
def update_stock(
    symbol: str,
    payload: UpdateStockRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    sym = _symbol_or_400(symbol)
    fn = buy if payload.action == TransactionKind.BUY else sell
    outcome = _trade_or_http(fn, db, user.id, sym, payload.units, payload.price)

    if outcome.closed:
        return ok(
            {
                "message": "All units sold. Stock removed from portfolio.",
                "realizedPnl": outcome.realized_pnl,
                "transaction": transaction_dto(outcome.transaction),
            }
        )
    return ok({**holding_dto(outcome.holding), "transaction": transaction_dto(outcome.transaction)})


@router.delete("/stocks/{symbol}")
def delete_stock(
    symbol: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        remove_holding(db, user.id, _symbol_or_400(symbol))
    except HoldingNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ConcurrentModificationError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return ok({"message": "Stock deleted successfully"})


@router.get("/transactions")
def list_transactions(
    symbol: str | None = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    sym = _symbol_or_400(symbol) if symbol else None
    rows = crud.list_transactions(db, user.id, sym, newest_first=True)
    return ok([transaction_dto(t) for t in rows])


@router.get("/reconcile")
def reconcile_ledger(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return ok(reconcile(db, user.id))
