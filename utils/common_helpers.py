import math
import re
from typing import Any, Dict, Optional

import httpx

# Tickers: letters/digits plus the separators exchanges use (BRK.B, ^GSPC, EURUSD=X, BINANCE:BTCUSDT, RDS-A)
_SYMBOL_RE = re.compile(r"^[A-Z0-9.^=:\-]{1,20}$")


def normalize_symbol(value: Optional[str]) -> str:
    """Trim + uppercase. Raises ValueError for anything that isn't a plausible ticker."""
    symbol = (value or "").strip().upper()
    if not symbol or len(symbol) > 20:
        raise ValueError("symbol must be 1-20 characters")
    if not _SYMBOL_RE.match(symbol):
        raise ValueError("symbol contains invalid characters")
    return symbol


def safe_float(x: Any) -> Optional[float]:
    try:
        if x is None:
            return None
        f = float(x)
        return f if math.isfinite(f) else None
    except (TypeError, ValueError):
        return None


def parse_percent(x: Any) -> Optional[float]:
    """'1.2345%' -> 1.2345 (Alpha Vantage sends change percent as a string)."""
    if isinstance(x, str):
        x = x.strip().rstrip("%")
    return safe_float(x)


def safe_json(resp: httpx.Response) -> Optional[Dict[str, Any]]:
    try:
        data = resp.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def round_money(x: float, d: int = 8) -> float:
    return round(float(x), d)
