# models/transaction.py
from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import DateTime, Enum, Float, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base
from services.accounting import TradeRecord, TransactionKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Transaction(Base):
    """Append-only trade log. Rows are inserted once and never updated."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_user_occurred", "user_id", "occurred_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    symbol: Mapped[str] = mapped_column(String(20))
    kind: Mapped[TransactionKind] = mapped_column(Enum(TransactionKind, name="transaction_kind"))
    units: Mapped[float] = mapped_column(Float, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    realized_pnl: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    owner = relationship("User", back_populates="transactions")

    def to_trade(self) -> TradeRecord:
        return TradeRecord(
            symbol=self.symbol,
            kind=TransactionKind(self.kind),
            units=float(self.units),
            price=float(self.price),
            realized_pnl=float(self.realized_pnl or 0.0),
        )


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    symbol: str
    kind: TransactionKind
    units: float
    price: float
    realized_pnl: float | None = None
    occurred_at: datetime


def to_dto(t: Transaction) -> dict:
    dto = TransactionOut.model_validate(t)
    if dto.kind == TransactionKind.BUY:
        # BUY rows carry no realized P/L
        dto.realized_pnl = None
    return dto.model_dump(by_alias=True, mode="json", exclude_none=True)
