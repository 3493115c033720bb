from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from services.accounting import TransactionKind
from utils.common_helpers import normalize_symbol


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AddStockRequest(_Body):
    """POST /api/portfolio/stocks: open a holding or buy more of it."""
    symbol: str
    units: float = Field(gt=0, allow_inf_nan=False)
    buy_price: float = Field(gt=0, allow_inf_nan=False)

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, value: str) -> str:
        return normalize_symbol(value)


class UpdateStockRequest(_Body):
    action: TransactionKind
    units: float = Field(gt=0, allow_inf_nan=False)
    price: float = Field(gt=0, allow_inf_nan=False)

    @field_validator("action", mode="before")
    @classmethod
    def validate_action(cls, value):
        action = str(value or "").strip().upper()
        if action not in (TransactionKind.BUY.value, TransactionKind.SELL.value):
            raise ValueError("Invalid action. Must be BUY or SELL.")
        return action
