# models/holding.py
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base
from services.accounting import Position


class Holding(Base):
    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint("user_id", "symbol", name="uq_holdings_user_symbol"),
        CheckConstraint("quantity > 0", name="ck_holdings_quantity_positive"),
        CheckConstraint("average_cost >= 0", name="ck_holdings_average_cost_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    symbol: Mapped[str] = mapped_column(String(20))
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    average_cost: Mapped[float] = mapped_column(Float, nullable=False)
    realized_pnl: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # optimistic lock: UPDATE/DELETE only match the version we read
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    owner = relationship("User", back_populates="holdings")

    def to_position(self) -> Position:
        return Position(
            symbol=self.symbol,
            quantity=float(self.quantity),
            average_cost=float(self.average_cost),
            realized_pnl=float(self.realized_pnl or 0.0),
        )

    def apply_position(self, position: Position) -> None:
        self.quantity = position.quantity
        self.average_cost = position.average_cost
        self.realized_pnl = position.realized_pnl


class HoldingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    symbol: str
    quantity: float
    average_cost: float
    realized_pnl: float
    created_at: datetime | None = None
    updated_at: datetime | None = None


def to_dto(h: Holding) -> dict:
    return HoldingOut.model_validate(h).model_dump(by_alias=True, mode="json")
