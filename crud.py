# crud.py
"""Holding store and transaction log. Every query is scoped by user_id."""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from models import Holding, Transaction, User
from services.accounting import Position, TradeRecord


# ---------- users ----------

def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


def create_user(db: Session, email: str, name: str, hashed_password: str) -> User:
    user = User(email=email.lower(), name=name, hashed_password=hashed_password)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# ---------- holdings ----------

def list_holdings(db: Session, user_id: int) -> List[Holding]:
    return (
        db.query(Holding)
        .filter(Holding.user_id == user_id)
        .order_by(Holding.symbol.asc())
        .all()
    )


def get_holding(db: Session, user_id: int, symbol: str) -> Optional[Holding]:
    return (
        db.query(Holding)
        .filter(Holding.user_id == user_id, Holding.symbol == symbol)
        .first()
    )


def add_holding(db: Session, user_id: int, position: Position) -> Holding:
    """Stage a new holding row; the caller commits."""
    holding = Holding(
        user_id=user_id,
        symbol=position.symbol,
        quantity=position.quantity,
        average_cost=position.average_cost,
        realized_pnl=position.realized_pnl,
    )
    db.add(holding)
    return holding


def delete_holding(db: Session, user_id: int, symbol: str) -> bool:
    """Stage the delete; the caller commits."""
    holding = get_holding(db, user_id, symbol)
    if not holding:
        return False
    db.delete(holding)
    return True


# ---------- transaction log ----------

def append_transaction(db: Session, user_id: int, trade: TradeRecord) -> Transaction:
    """Stage a log row; the caller commits together with the holding change."""
    row = Transaction(
        user_id=user_id,
        symbol=trade.symbol,
        kind=trade.kind,
        units=trade.units,
        price=trade.price,
        realized_pnl=trade.realized_pnl,
    )
    db.add(row)
    return row


def list_transactions(
    db: Session,
    user_id: int,
    symbol: Optional[str] = None,
    *,
    newest_first: bool = True,
) -> List[Transaction]:
    query = db.query(Transaction).filter(Transaction.user_id == user_id)
    if symbol:
        query = query.filter(Transaction.symbol == symbol)
    if newest_first:
        query = query.order_by(Transaction.occurred_at.desc(), Transaction.id.desc())
    else:
        query = query.order_by(Transaction.occurred_at.asc(), Transaction.id.asc())
    return query.all()
