# tests/conftest.py
import logging
import time
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pytest

from spreadhunter.config import DEFAULT_CONFIG, deep_merge
from spreadhunter.errors import ExchangeFetchError
from spreadhunter.exchanges import ExchangeAdapter
from spreadhunter.models import OrderBook, Ticker, TradingFees
from spreadhunter.pricing import cumulative_levels

Levels = Sequence[Tuple[float, float]]


def make_book(symbol: str, exchange_id: str, bids: Levels = (), asks: Levels = (), name: Optional[str] = None) -> OrderBook:
    return OrderBook(
        symbol=symbol,
        exchange_id=exchange_id,
        exchange_name=name or exchange_id.capitalize(),
        bids=cumulative_levels(bids, descending=True),
        asks=cumulative_levels(asks, descending=False),
        timestamp=time.time(),
    )


def make_ticker(symbol: str, exchange_id: str, bid: float, ask: float, last: Optional[float] = None,
                name: Optional[str] = None) -> Ticker:
    return Ticker(
        symbol=symbol,
        exchange_id=exchange_id,
        exchange_name=name or exchange_id.capitalize(),
        bid=bid,
        ask=ask,
        last=last if last is not None else (bid + ask) / 2,
        volume=1000.0,
        timestamp=time.time(),
    )


class FakeAdapter(ExchangeAdapter):
    """In-memory exchange. Symbols without data raise ExchangeFetchError like a real connector would."""

    def __init__(self, exchange_id: str, books: Optional[Dict[str, Tuple[Levels, Levels]]] = None,
                 tickers: Optional[Dict[str, Tuple[float, float]]] = None, fees: Optional[TradingFees] = None,
                 available: bool = True, name: Optional[str] = None, last_prices: Optional[Dict[str, float]] = None):
        self.exchange_id = exchange_id
        self.name = name or exchange_id.capitalize()
        self.books = books or {}
        self.tickers = tickers or {}
        self.last_prices = last_prices or {}
        self.fees = fees or TradingFees()
        self.available = available
        self.calls: List[Tuple[str, str]] = []
        self.closed = False

    def get_id(self) -> str:
        return self.exchange_id

    def get_name(self) -> str:
        return self.name

    async def is_available(self) -> bool:
        self.calls.append(('is_available', ''))
        return self.available

    async def fetch_ticker(self, symbol: str) -> Ticker:
        self.calls.append(('fetch_ticker', symbol))
        if symbol in self.tickers:
            bid, ask = self.tickers[symbol]
            return make_ticker(symbol, self.exchange_id, bid, ask, last=self.last_prices.get(symbol), name=self.name)
        if symbol in self.last_prices:
            last = self.last_prices[symbol]
            return make_ticker(symbol, self.exchange_id, last, last, last=last, name=self.name)
        raise ExchangeFetchError(self.exchange_id, f"no ticker for {symbol}")

    async def fetch_order_book(self, symbol: str, depth: int = 50) -> OrderBook:
        self.calls.append(('fetch_order_book', symbol))
        if symbol not in self.books:
            raise ExchangeFetchError(self.exchange_id, f"no order book for {symbol}")
        bids, asks = self.books[symbol]
        return make_book(symbol, self.exchange_id, bids, asks, name=self.name)

    def get_trading_fees(self) -> TradingFees:
        return self.fees

    async def close(self):
        self.closed = True


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every requested pause."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float):
        self.delays.append(delay)


def make_config(overrides: Optional[dict] = None) -> dict:
    return deep_merge(DEFAULT_CONFIG, overrides or {})


def symbols_of(results: Iterable) -> List[str]:
    return [r.symbol for r in results]


@pytest.fixture
def logger():
    return logging.getLogger("spreadhunter.tests")


@pytest.fixture
def config():
    return make_config()
