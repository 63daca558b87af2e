# spreadhunter/risk_engine.py
import logging
import math
import re
from typing import Iterable, List, Optional

from .errors import InvalidInputError
from .models import Ticker

SYMBOL_PATTERN = re.compile(r"^[A-Z0-9]+/[A-Z0-9]+$")
DEFAULT_MIN_PROFIT_PERCENTAGE = 0.01  # percent


class RiskEngine:
    """
    Gatekeeper for everything that reaches the calculators.
    Rejects bad input before any network call, filters anomalous quotes and
    decides whether a computed opportunity clears the profit threshold.
    """
    def __init__(self, config: dict, logger: logging.Logger):
        self.cfg = config['arbitrage']
        self.logger = logger
        self.min_profit_percentage = float(self.cfg.get('min_profit_percentage', DEFAULT_MIN_PROFIT_PERCENTAGE))
        self.max_data_age: Optional[float] = self.cfg.get('max_data_age_seconds')

    def validate_trade_amount(self, amount: float, label: str = "trade amount") -> float:
        try:
            value = float(amount)
        except (TypeError, ValueError):
            raise InvalidInputError(f"Invalid {label}: {amount!r}")
        if not math.isfinite(value) or value <= 0:
            raise InvalidInputError(f"Invalid {label}: must be a positive number, got {amount!r}")
        return value

    def validate_symbol(self, symbol: str) -> str:
        normalized = (symbol or "").strip().upper()
        if not SYMBOL_PATTERN.match(normalized):
            raise InvalidInputError(f"Invalid symbol {symbol!r}: expected BASE/QUOTE, e.g. BTC/USDT")
        return normalized

    def validate_symbols(self, symbols: Iterable[str]) -> List[str]:
        cleaned = [self.validate_symbol(s) for s in (symbols or [])]
        if not cleaned:
            raise InvalidInputError("Symbol list is empty")
        return cleaned

    def validate_market_data(self, ticker: Ticker) -> bool:
        """
        Filter out stale or anomalous quotes.
        Zero or negative prices mean the exchange has no usable book for the symbol.
        """
        if not ticker.is_usable:
            return False
        if self.max_data_age is not None and ticker.age > self.max_data_age:
            return False
        return True

    def passes_profit_threshold(self, net_profit: float, net_profit_percentage: float) -> bool:
        return net_profit > 0 and net_profit_percentage >= self.min_profit_percentage
