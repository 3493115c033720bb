# services/portfolio_service.py
"""
Portfolio operations over the holding store and the transaction log.

Every BUY/SELL is one unit of work: the engine computes the complete new
state first, then the holding change and the log row are staged in the same
session and committed together. Any failure rolls both back.
"""
from __future__ import annotations

import logging
import math
import time
from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

import crud
from models.holding import Holding, to_dto
from models.transaction import Transaction
from services.accounting import (
    AccountingError,
    Position,
    Valuation,
    apply_buy,
    apply_sell,
    replay,
    summarize,
    value_position,
)
from services.logo_service import logo_url
from services.price_service import PriceService
from utils.common_helpers import round_money

logger = logging.getLogger(__name__)

# Stored vs replayed figures closer than this are the same number.
RECONCILE_TOLERANCE = 1e-6


class PortfolioServiceError(Exception):
    """Domain-level error for portfolio mutations."""


class HoldingNotFoundError(PortfolioServiceError):
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__("Stock not found")


class ConcurrentModificationError(PortfolioServiceError):
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"{symbol} was modified by another request. Please retry.")


@dataclass
class TradeOutcome:
    holding: Optional[Holding]   # None after a closing sale
    transaction: Transaction
    realized_pnl: float

    @property
    def closed(self) -> bool:
        return self.holding is None


def _commit(db: Session, symbol: str, *, creating: bool = False) -> None:
    """
    Commit the staged unit of work or roll all of it back.

    StaleDataError means another request updated or deleted the row first.
    An IntegrityError is a conflict only when we inserted the holding: the
    (user_id, symbol) unique key lost a race with another first BUY.
    """
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        raise ConcurrentModificationError(symbol) from e
    except IntegrityError as e:
        db.rollback()
        if creating:
            raise ConcurrentModificationError(symbol) from e
        raise
    except SQLAlchemyError:
        db.rollback()
        raise


# -----------------------
# Mutations
# -----------------------

def buy(db: Session, user_id: int, symbol: str, units: float, price: float) -> TradeOutcome:
    """Open a holding or add to it. A missing holding is created."""
    holding = crud.get_holding(db, user_id, symbol)
    current = holding.to_position() if holding else None

    position, trade = apply_buy(current, symbol, units, price)

    creating = holding is None
    if creating:
        holding = crud.add_holding(db, user_id, position)
    else:
        holding.apply_position(position)
    tx = crud.append_transaction(db, user_id, trade)

    _commit(db, symbol, creating=creating)
    db.refresh(holding)
    logger.info("trade kind=BUY user_id=%s symbol=%s", user_id, symbol)
    return TradeOutcome(holding=holding, transaction=tx, realized_pnl=0.0)


def sell(db: Session, user_id: int, symbol: str, units: float, price: float) -> TradeOutcome:
    """
    Sell from an existing holding. Raises HoldingNotFoundError or
    InsufficientUnitsError before anything is staged.
    """
    holding = crud.get_holding(db, user_id, symbol)
    if holding is None:
        raise HoldingNotFoundError(symbol)

    result = apply_sell(holding.to_position(), units, price)

    if result.closed:
        db.delete(holding)
    else:
        holding.apply_position(result.position)
    tx = crud.append_transaction(db, user_id, result.trade)

    _commit(db, symbol)
    logger.info("trade kind=SELL user_id=%s symbol=%s closed=%s", user_id, symbol, result.closed)

    if result.closed:
        return TradeOutcome(holding=None, transaction=tx, realized_pnl=result.realized_pnl)
    db.refresh(holding)
    return TradeOutcome(holding=holding, transaction=tx, realized_pnl=result.realized_pnl)


def remove_holding(db: Session, user_id: int, symbol: str) -> None:
    """Drop a holding outright. The transaction log keeps its history."""
    if not crud.delete_holding(db, user_id, symbol):
        raise HoldingNotFoundError(symbol)
    _commit(db, symbol)
    logger.info("holding removed user_id=%s symbol=%s", user_id, symbol)


# -----------------------
# Reads
# -----------------------

def _valuation_row(h: Holding, v: Valuation, price_status: str) -> Dict[str, Any]:
    row = to_dto(h)
    row.update(
        {
            "currentPrice": round_money(v.current_price),
            "totalCost": round_money(v.total_cost),
            "currentValue": round_money(v.current_value),
            "unrealizedPnl": round_money(v.unrealized_pnl),
            "unrealizedPnlPercent": round_money(v.unrealized_pnl_percent),
            "netPnl": round_money(v.net_pnl),
            "netPnlPercent": round_money(v.net_pnl_percent),
            "logo": logo_url(h.symbol),
            "priceStatus": price_status,
        }
    )
    return row


def _summary_dict(valuations: List[Valuation]) -> Dict[str, float]:
    s = summarize(valuations)
    return {
        "totalInvested": round_money(s.total_invested),
        "currentValue": round_money(s.current_value),
        "unrealizedPnl": round_money(s.unrealized_pnl),
        "realizedPnl": round_money(s.realized_pnl),
        "netPnl": round_money(s.net_pnl),
        "netPnlPercent": round_money(s.net_pnl_percent),
    }


async def get_portfolio(db: Session, user_id: int, prices: PriceService) -> Dict[str, Any]:
    """
    Holdings valued at live prices plus the portfolio summary.
    A holding without a live price is valued at its average cost (break-even).
    """
    rows = crud.list_holdings(db, user_id)
    as_of = int(time.time())

    if not rows:
        return {"stocks": [], "summary": _summary_dict([]), "asOf": as_of}

    live = await prices.get_prices(h.symbol for h in rows)

    stocks: List[Dict[str, Any]] = []
    valuations: List[Valuation] = []
    for h in rows:
        position = h.to_position()
        price = live.get(h.symbol)
        if price is None:
            logger.warning("using average cost as price fallback symbol=%s", h.symbol)
            price, status = position.average_cost, "fallback"
        else:
            status = "live"

        v = value_position(position, price)
        valuations.append(v)
        stocks.append(_valuation_row(h, v, status))

    return {"stocks": stocks, "summary": _summary_dict(valuations), "asOf": as_of}


def _position_dict(p: Optional[Position]) -> Optional[Dict[str, float]]:
    if p is None:
        return None
    d = asdict(p)
    return {
        "quantity": d["quantity"],
        "averageCost": d["average_cost"],
        "realizedPnl": d["realized_pnl"],
    }


def _same(a: Optional[Position], b: Optional[Position]) -> bool:
    if a is None or b is None:
        return a is b
    return all(
        math.isclose(x, y, rel_tol=RECONCILE_TOLERANCE, abs_tol=RECONCILE_TOLERANCE)
        for x, y in (
            (a.quantity, b.quantity),
            (a.average_cost, b.average_cost),
            (a.realized_pnl, b.realized_pnl),
        )
    )


def reconcile(db: Session, user_id: int) -> List[Dict[str, Any]]:
    """
    Compare each stored holding with the position replayed from the log.

    Holdings removed with DELETE (outside the log) show up as
    stored=None / replayed=<position>, which is the point of the report.
    """
    stored = {h.symbol: h.to_position() for h in crud.list_holdings(db, user_id)}

    trades_by_symbol = defaultdict(list)
    for t in crud.list_transactions(db, user_id, newest_first=False):
        trades_by_symbol[t.symbol].append(t.to_trade())

    report: List[Dict[str, Any]] = []
    for symbol in sorted(set(stored) | set(trades_by_symbol)):
        entry: Dict[str, Any] = {"symbol": symbol, "stored": _position_dict(stored.get(symbol))}
        try:
            replayed = replay(trades_by_symbol.get(symbol, [])).get(symbol)
        except AccountingError as e:
            entry.update({"replayed": None, "consistent": False, "error": str(e)})
            report.append(entry)
            continue

        entry["replayed"] = _position_dict(replayed)
        entry["consistent"] = _same(stored.get(symbol), replayed)
        report.append(entry)

    return report
