# spreadhunter/errors.py
from typing import Optional


class ArbitrageError(Exception):
    """Base class for every error raised by spreadhunter."""


class ExchangeFetchError(ArbitrageError):
    """
    An exchange could not deliver data (down, symbol not listed, timeout).
    Callers drop that exchange for the current cycle.
    """
    def __init__(self, exchange_id: str, message: str):
        super().__init__(f"{exchange_id}: {message}")
        self.exchange_id = exchange_id


class InsufficientDataError(ArbitrageError):
    """Fewer than two exchanges produced usable data for a symbol."""
    def __init__(self, symbol: str, responded: int):
        super().__init__(
            f"Not enough exchanges available for {symbol}: {responded} responded, need at least 2"
        )
        self.symbol = symbol
        self.responded = responded


class InvalidInputError(ArbitrageError, ValueError):
    """Rejected before any network call is made."""


class NoOpportunityError(ArbitrageError):
    """The calculation succeeded but nothing profitable qualified."""
    def __init__(self, symbol: str, amount: Optional[float] = None):
        super().__init__(f"No profitable arbitrage opportunity found for {symbol}")
        self.symbol = symbol
        self.amount = amount


class InvalidStatusTransition(ArbitrageError, ValueError):
    pass


class TradeNotFoundError(ArbitrageError, LookupError):
    def __init__(self, trade_id: str):
        super().__init__(f"Unknown trade id: {trade_id}")
        self.trade_id = trade_id
