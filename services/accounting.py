"""
Position accounting: weighted-average cost basis, realized and unrealized P/L.

Everything here is pure. Callers load a holding, hand its state to
``apply_buy`` / ``apply_sell`` and persist whatever comes back; nothing in
this module touches the database or the network.

Conventions
-----------
- A ``Position`` is the engine's view of one stored holding.
- Average cost only moves on BUY. A SELL realizes ``(price - avg) * units``
  on the sold lot and leaves the basis of the remaining units alone.
- A SELL that empties the position returns ``position=None``; the caller
  deletes the holding instead of storing quantity 0.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

# Float residue from repeated partial sells (e.g. 0.3 - 0.1 - 0.2).
QUANTITY_EPSILON = 1e-9


class TransactionKind(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class AccountingError(ValueError):
    """Base class for trades the engine refuses to apply."""


class InvalidTradeError(AccountingError):
    pass


class InsufficientUnitsError(AccountingError):
    def __init__(self, requested: float, available: float):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot sell {_fmt_units(requested)} units. "
            f"Only {_fmt_units(available)} available."
        )


def _fmt_units(x: float) -> str:
    # 10.0 -> "10", 2.5 -> "2.5"
    return f"{x:g}" if float(x).is_integer() else repr(float(x))


# ----------------------------- Types -----------------------------

@dataclass(frozen=True)
class Position:
    symbol: str
    quantity: float
    average_cost: float
    realized_pnl: float = 0.0


@dataclass(frozen=True)
class TradeRecord:
    symbol: str
    kind: TransactionKind
    units: float
    price: float
    realized_pnl: float = 0.0


@dataclass(frozen=True)
class SellResult:
    position: Optional[Position]   # None => closing sale, delete the holding
    trade: TradeRecord
    realized_pnl: float            # P/L of this sale only

    @property
    def closed(self) -> bool:
        return self.position is None


@dataclass(frozen=True)
class Valuation:
    symbol: str
    quantity: float
    average_cost: float
    realized_pnl: float
    current_price: float
    total_cost: float
    current_value: float
    unrealized_pnl: float
    unrealized_pnl_percent: float
    net_pnl: float
    net_pnl_percent: float


@dataclass(frozen=True)
class PortfolioSummary:
    total_invested: float = 0.0
    current_value: float = 0.0
    unrealized_pnl: float = 0.0
    realized_pnl: float = 0.0
    net_pnl: float = 0.0
    net_pnl_percent: float = 0.0


# --------------------------- Guards ------------------------------

def _check_trade_inputs(units: float, price: float) -> None:
    if units is None or price is None:
        raise InvalidTradeError("units and price are required")
    if not (math.isfinite(units) and math.isfinite(price)):
        raise InvalidTradeError("units and price must be finite numbers")
    if units < 0:
        raise InvalidTradeError("units must not be negative")
    if price < 0:
        raise InvalidTradeError("price must not be negative")


# ------------------------- Mutations -----------------------------

def new_average_price(old_units: float, old_avg: float, new_units: float, buy_price: float) -> float:
    """(old_units * old_avg + new_units * buy_price) / total_units, or 0 for an empty total."""
    total_units = old_units + new_units
    if total_units == 0:
        return 0.0
    return (old_units * old_avg + new_units * buy_price) / total_units


def apply_buy(
    position: Optional[Position],
    symbol: str,
    units: float,
    price: float,
) -> Tuple[Position, TradeRecord]:
    _check_trade_inputs(units, price)

    if position is None:
        position = Position(symbol=symbol, quantity=0.0, average_cost=0.0, realized_pnl=0.0)

    updated = replace(
        position,
        quantity=position.quantity + units,
        average_cost=new_average_price(position.quantity, position.average_cost, units, price),
    )
    trade = TradeRecord(
        symbol=position.symbol,
        kind=TransactionKind.BUY,
        units=units,
        price=price,
        realized_pnl=0.0,
    )
    return updated, trade


def realized_pnl_for_sale(sell_price: float, avg_price: float, units: float) -> float:
    return (sell_price - avg_price) * units


def apply_sell(position: Position, units: float, price: float) -> SellResult:
    _check_trade_inputs(units, price)

    # Checked before anything else is computed: a rejected sale has no effects.
    if units > position.quantity + QUANTITY_EPSILON:
        raise InsufficientUnitsError(requested=units, available=position.quantity)
    # within epsilon above the holding: record exactly what was held
    units = min(units, position.quantity)

    delta = realized_pnl_for_sale(price, position.average_cost, units)
    remaining = position.quantity - units
    trade = TradeRecord(
        symbol=position.symbol,
        kind=TransactionKind.SELL,
        units=units,
        price=price,
        realized_pnl=delta,
    )

    if abs(remaining) <= QUANTITY_EPSILON:
        return SellResult(position=None, trade=trade, realized_pnl=delta)

    updated = replace(
        position,
        quantity=remaining,
        realized_pnl=position.realized_pnl + delta,
    )
    return SellResult(position=updated, trade=trade, realized_pnl=delta)


# ------------------------- Valuation -----------------------------

def value_position(position: Position, current_price: float) -> Valuation:
    qty = position.quantity
    avg = position.average_cost

    total_cost = avg * qty
    current_value = current_price * qty
    unrealized = (current_price - avg) * qty
    unrealized_pct = (current_price - avg) / avg * 100.0 if avg > 0 else 0.0
    net = unrealized + position.realized_pnl
    net_pct = net / total_cost * 100.0 if total_cost > 0 else 0.0

    return Valuation(
        symbol=position.symbol,
        quantity=qty,
        average_cost=avg,
        realized_pnl=position.realized_pnl,
        current_price=current_price,
        total_cost=total_cost,
        current_value=current_value,
        unrealized_pnl=unrealized,
        unrealized_pnl_percent=unrealized_pct,
        net_pnl=net,
        net_pnl_percent=net_pct,
    )


def summarize(valuations: Iterable[Valuation]) -> PortfolioSummary:
    items = list(valuations)
    if not items:
        return PortfolioSummary()

    total_invested = math.fsum(v.total_cost for v in items)
    net = math.fsum(v.net_pnl for v in items)

    return PortfolioSummary(
        total_invested=total_invested,
        current_value=math.fsum(v.current_value for v in items),
        unrealized_pnl=math.fsum(v.unrealized_pnl for v in items),
        realized_pnl=math.fsum(v.realized_pnl for v in items),
        net_pnl=net,
        net_pnl_percent=net / total_invested * 100.0 if total_invested > 0 else 0.0,
    )


# -------------------------- Replay -------------------------------

def replay(trades: Iterable[TradeRecord]) -> Dict[str, Position]:
    """
    Fold a chronologically ordered trade log into the positions it implies.

    Closed positions are dropped, exactly as the store deletes them. Realized
    P/L is recomputed from the replayed average cost, not copied from the log,
    so a drifted log entry shows up as a mismatch against stored holdings.
    """
    positions: Dict[str, Position] = {}
    for t in trades:
        current = positions.get(t.symbol)
        if t.kind == TransactionKind.BUY:
            positions[t.symbol], _ = apply_buy(current, t.symbol, t.units, t.price)
            continue

        if current is None:
            raise InsufficientUnitsError(requested=t.units, available=0.0)
        result = apply_sell(current, t.units, t.price)
        if result.closed:
            positions.pop(t.symbol, None)
        else:
            positions[t.symbol] = result.position
    return positions
