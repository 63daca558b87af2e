# spreadhunter/exchanges.py
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

import ccxt.async_support as ccxt

from .errors import ExchangeFetchError, InvalidInputError
from .models import ExchangeInfo, OrderBook, Ticker, TradingFees
from .pricing import cumulative_levels

DEFAULT_FEE_RATE = 0.001  # 0.1%
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_ORDER_BOOK_DEPTH = 50


def _num(value) -> float:
    return float(value) if value is not None else 0.0


class ExchangeAdapter(ABC):
    """
    Uniform view of one exchange: ticker, order book, fees and an availability check.
    Fetch methods raise ExchangeFetchError; they never return partial garbage.
    Scanners treat every adapter the same way and never branch on its id.
    """

    @abstractmethod
    def get_id(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def get_name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def is_available(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def fetch_ticker(self, symbol: str) -> Ticker:
        raise NotImplementedError

    @abstractmethod
    async def fetch_order_book(self, symbol: str, depth: int = DEFAULT_ORDER_BOOK_DEPTH) -> OrderBook:
        raise NotImplementedError

    @abstractmethod
    def get_trading_fees(self) -> TradingFees:
        raise NotImplementedError

    async def close(self):
        pass


class CcxtExchangeAdapter(ExchangeAdapter):
    """
    ExchangeAdapter backed by a ccxt async client.
    Every network call is bounded by `timeout_ms`, on top of ccxt's own timeout,
    so one hung exchange cannot hold up a whole batch.
    """
    def __init__(self, client, name: str, logger: logging.Logger,
                 timeout_ms: float = DEFAULT_TIMEOUT_MS, fee_overrides: Optional[Dict[str, float]] = None):
        self.client = client
        self._name = name
        self.logger = logger
        self.timeout = timeout_ms / 1000
        self.fee_overrides = fee_overrides or {}
        self._fees: Optional[TradingFees] = None

    def get_id(self) -> str:
        return self.client.id

    def get_name(self) -> str:
        return self._name

    async def _guarded(self, action: str, coro):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ExchangeFetchError(self.get_id(), f"{action} timed out after {self.timeout:.1f}s") from e
        except ccxt.BaseError as e:
            raise ExchangeFetchError(self.get_id(), f"{action} failed: {e}") from e

    async def is_available(self) -> bool:
        """
        Loads (or reuses) the market list. A successful load also drops the
        cached fee schedule so it is re-derived from fresh metadata.
        """
        name = self.get_name().upper()
        try:
            await asyncio.wait_for(self.client.load_markets(), timeout=self.timeout)
            self._fees = None
            return True

        # subclasses of AuthenticationError first
        except ccxt.AccountSuspended:
            self.logger.error(f"❌ {name:<10} | ACCOUNT SUSPENDED.")
        except ccxt.PermissionDenied:
            self.logger.error(f"❌ {name:<10} | PERMISSION DENIED: key or IP not allowed.")
        except ccxt.AuthenticationError:
            self.logger.error(f"❌ {name:<10} | AUTH FAILED: credentials rejected.")
        except (ccxt.RequestTimeout, asyncio.TimeoutError):
            self.logger.warning(f"❌ {name:<10} | TIMEOUT: Exchange API is slow or down.")
        except ccxt.ExchangeNotAvailable:
            self.logger.warning(f"❌ {name:<10} | MAINTENANCE: Exchange is currently offline.")
        except Exception as e:
            self.logger.error(f"❌ {name:<10} | UNKNOWN ERROR: {e}")
        return False

    async def fetch_ticker(self, symbol: str) -> Ticker:
        raw = await self._guarded(f"fetch_ticker({symbol})", self.client.fetch_ticker(symbol))
        ts = raw.get('timestamp')
        return Ticker(
            symbol=symbol,
            exchange_id=self.get_id(),
            exchange_name=self.get_name(),
            bid=_num(raw.get('bid')),
            ask=_num(raw.get('ask')),
            last=_num(raw.get('last')),
            volume=_num(raw.get('baseVolume')),
            timestamp=ts / 1000 if ts else time.time(),
        )

    async def fetch_order_book(self, symbol: str, depth: int = DEFAULT_ORDER_BOOK_DEPTH) -> OrderBook:
        raw = await self._guarded(f"fetch_order_book({symbol})", self.client.fetch_order_book(symbol, depth))
        ts = raw.get('timestamp')
        # Some venues ignore the limit; keep the book bounded to what was asked for
        bids = cumulative_levels(raw.get('bids') or [], descending=True)[:depth]
        asks = cumulative_levels(raw.get('asks') or [], descending=False)[:depth]
        return OrderBook(
            symbol=symbol,
            exchange_id=self.get_id(),
            exchange_name=self.get_name(),
            bids=bids,
            asks=asks,
            timestamp=ts / 1000 if ts else time.time(),
            nonce=raw.get('nonce'),
        )

    def get_trading_fees(self) -> TradingFees:
        if self._fees is None:
            trading = (getattr(self.client, 'fees', None) or {}).get('trading') or {}
            maker = self.fee_overrides.get('maker', trading.get('maker'))
            taker = self.fee_overrides.get('taker', trading.get('taker'))
            self._fees = TradingFees(
                maker=float(maker) if maker is not None else DEFAULT_FEE_RATE,
                taker=float(taker) if taker is not None else DEFAULT_FEE_RATE,
                percentage=bool(trading.get('percentage', True)),
            )
        return self._fees

    async def get_exchange_info(self) -> ExchangeInfo:
        await self._guarded("load_markets", self.client.load_markets())
        has = getattr(self.client, 'has', None) or {}

        order_types: List[str] = []
        if has.get('createOrder'):
            order_types += ['market', 'limit']
        if has.get('createStopOrder'):
            order_types.append('stop')
        if has.get('createStopLimitOrder'):
            order_types.append('stop-limit')

        capabilities = ('fetchTicker', 'fetchOrderBook', 'fetchTrades', 'fetchOHLCV',
                        'createOrder', 'cancelOrder', 'fetchBalance', 'fetchMarkets')
        required = getattr(self.client, 'requiredCredentials', None) or {}
        urls = getattr(self.client, 'urls', None) or {}

        return ExchangeInfo(
            id=self.get_id(),
            name=self.get_name(),
            countries=list(getattr(self.client, 'countries', None) or []),
            url=str(urls.get('www') or ''),
            version=getattr(self.client, 'version', None),
            rate_limit=float(getattr(self.client, 'rateLimit', 0) or 0),
            has={cap: bool(has.get(cap)) for cap in capabilities},
            fees=self.get_trading_fees(),
            supported_order_types=order_types,
            timeframes=list((getattr(self.client, 'timeframes', None) or {}).keys()),
            required_credentials={k: bool(required.get(k)) for k in ('apiKey', 'secret', 'password')},
        )

    async def close(self):
        await self.client.close()


def create_adapter(exchange_id: str, config: dict, logger: logging.Logger) -> CcxtExchangeAdapter:
    ex_class = getattr(ccxt, exchange_id, None)
    if ex_class is None:
        raise InvalidInputError(f"Unknown exchange id: {exchange_id}")

    ex_cfg = config['exchanges'].get(exchange_id) or {}
    timeout_ms = config['network']['timeout_ms']
    client = ex_class({
        'timeout': timeout_ms,
        'enableRateLimit': True,
        'options': {'defaultType': 'spot'},
    })

    overrides = {}
    if ex_cfg.get('maker_fee') is not None:
        overrides['maker'] = ex_cfg['maker_fee']
    if ex_cfg.get('taker_fee') is not None:
        overrides['taker'] = ex_cfg['taker_fee']

    return CcxtExchangeAdapter(
        client,
        name=ex_cfg.get('name') or exchange_id.capitalize(),
        logger=logger,
        timeout_ms=timeout_ms,
        fee_overrides=overrides,
    )


def build_adapters(config: dict, logger: logging.Logger, only: Optional[Iterable[str]] = None) -> List[ExchangeAdapter]:
    """Builds one adapter per enabled exchange in the config (optionally restricted to `only`)."""
    wanted = set(only) if only is not None else None
    adapters: List[ExchangeAdapter] = []
    for exchange_id, ex_cfg in config['exchanges'].items():
        if wanted is not None and exchange_id not in wanted:
            continue
        if not (ex_cfg or {}).get('enabled', True):
            continue
        try:
            adapters.append(create_adapter(exchange_id, config, logger))
        except InvalidInputError as e:
            logger.error(f"Skipping exchange: {e}")
    return adapters


async def warm_up(adapters: Iterable[ExchangeAdapter]) -> List[str]:
    """Loads markets on every adapter once, concurrently. Returns the ids that answered."""
    adapters = list(adapters)
    results = await asyncio.gather(*(a.is_available() for a in adapters), return_exceptions=True)
    return [a.get_id() for a, ok in zip(adapters, results) if ok is True]


async def shutdown_adapters(adapters: Iterable[ExchangeAdapter], logger: logging.Logger):
    """Gracefully closes all connector sessions."""
    adapters = list(adapters)
    results = await asyncio.gather(*(a.close() for a in adapters), return_exceptions=True)
    for adapter, res in zip(adapters, results):
        if isinstance(res, Exception):
            logger.warning(f"Error closing {adapter.get_name()}: {res}")


def fee_comparison(infos: Iterable[ExchangeInfo]) -> List[dict]:
    return [
        {
            'exchange': info.name,
            'maker_fee': f"{info.fees.maker * 100:.2f}%",
            'taker_fee': f"{info.fees.taker * 100:.2f}%",
            'maker_fee_raw': info.fees.maker,
            'taker_fee_raw': info.fees.taker,
        }
        for info in infos
    ]
