# services/market_types.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Quote:
    symbol: str
    current_price: float
    change: Optional[float] = None
    change_percent: Optional[float] = None
    previous_close: Optional[float] = None
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": self.current_price,
            "change": self.change,
            "changePercent": self.change_percent,
            "previousClose": self.previous_close,
            "source": self.source,
        }


@dataclass(frozen=True)
class SymbolMatch:
    symbol: str
    name: str
