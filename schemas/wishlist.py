from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from utils.common_helpers import normalize_symbol


class WishlistItemCreate(BaseModel):
    symbol: str
    note: Optional[str] = Field(default=None, max_length=500)

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, value: str) -> str:
        return normalize_symbol(value)
