# spreadhunter/spread_scanner.py
"""
Fast ticker-based spread scanner.

Compares best bid/ask across exchanges without touching order book depth, so
there is no amount dependency and no slippage. Each exchange pair is priced
under three fee assumptions:

- maker + maker: limit orders on both legs
- taker + taker: market orders on both legs
- hybrid: limit buy (maker) + market sell (taker)

It is a pre-filter: symbols that look interesting here are worth a full
order book pass.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .exchanges import ExchangeAdapter
from .models import ExchangeQuote, FeeScenario, SpreadOpportunity, Ticker, TickerSpreadResult, TradingFees
from .risk_engine import RiskEngine

MAKER_LABEL = "Both limit orders (maker+maker)"
TAKER_LABEL = "Both market orders (taker+taker)"
HYBRID_LABEL = "Limit buy + Market sell (maker+taker)"


@dataclass(frozen=True, slots=True)
class PricedTicker:
    ticker: Ticker
    fees: TradingFees


def _scenario(label: str, gross_spread_percent: float, fee_rate_sum: float) -> FeeScenario:
    fee_percent = fee_rate_sum * 100
    net = gross_spread_percent - fee_percent
    # $1000 notional * net% / 100
    return FeeScenario(label=label, fee_percent=fee_percent, percent=net, profit_per_1000_usd=net * 10)


def compute_spreads(entries: Sequence[PricedTicker]) -> List[SpreadOpportunity]:
    """
    All ordered cross-exchange spreads, widest gross spread first.
    Pure: the same input always yields the same output.
    """
    spreads: List[SpreadOpportunity] = []
    for buy_from in entries:
        for sell_to in entries:
            if buy_from.ticker.exchange_id == sell_to.ticker.exchange_id:
                continue

            buy_price = buy_from.ticker.ask
            sell_price = sell_to.ticker.bid
            gross = (sell_price - buy_price) / buy_price * 100

            maker = _scenario(MAKER_LABEL, gross, buy_from.fees.maker + sell_to.fees.maker)
            taker = _scenario(TAKER_LABEL, gross, buy_from.fees.taker + sell_to.fees.taker)
            hybrid = _scenario(HYBRID_LABEL, gross, buy_from.fees.maker + sell_to.fees.taker)

            spreads.append(SpreadOpportunity(
                buy_exchange=buy_from.ticker.exchange_name,
                buy_exchange_id=buy_from.ticker.exchange_id,
                sell_exchange=sell_to.ticker.exchange_name,
                sell_exchange_id=sell_to.ticker.exchange_id,
                buy_price=buy_price,
                sell_price=sell_price,
                gross_spread_percent=gross,
                maker=maker,
                taker=taker,
                hybrid=hybrid,
                is_profitable_with_maker=maker.percent > 0,
                is_profitable_with_taker=taker.percent > 0,
            ))

    spreads.sort(key=lambda s: s.gross_spread_percent, reverse=True)
    return spreads


def _quote(entry: PricedTicker) -> ExchangeQuote:
    t = entry.ticker
    return ExchangeQuote(
        exchange=t.exchange_name,
        exchange_id=t.exchange_id,
        bid=t.bid,
        ask=t.ask,
        spread_percent=(t.ask - t.bid) / t.bid * 100,
        volume=t.volume,
        maker_fee=entry.fees.maker,
        taker_fee=entry.fees.taker,
    )


class SpreadScanner:
    def __init__(self, adapters: Sequence[ExchangeAdapter], config: dict, logger: logging.Logger,
                 risk: Optional[RiskEngine] = None):
        self.adapters = list(adapters)
        self.logger = logger
        self.risk = risk or RiskEngine(config, logger)

    async def _fetch_one(self, adapter: ExchangeAdapter, symbol: str) -> PricedTicker:
        ticker = await adapter.fetch_ticker(symbol)
        return PricedTicker(ticker=ticker, fees=adapter.get_trading_fees())

    async def fetch_tickers(self, symbol: str) -> List[PricedTicker]:
        results = await asyncio.gather(
            *(self._fetch_one(a, symbol) for a in self.adapters),
            return_exceptions=True,
        )
        entries: List[PricedTicker] = []
        for adapter, res in zip(self.adapters, results):
            if isinstance(res, Exception):
                self.logger.debug(f"Ticker {symbol} from {adapter.get_name()} skipped: {res}")
            elif self.risk.validate_market_data(res.ticker):
                entries.append(res)
        return entries

    async def scan_symbol(self, symbol: str) -> TickerSpreadResult:
        entries = await self.fetch_tickers(symbol)
        if len(entries) < 2:
            return TickerSpreadResult(
                symbol=symbol,
                exchange_count=len(entries),
                quotes=[_quote(e) for e in entries],
            )

        spreads = compute_spreads(entries)
        return TickerSpreadResult(
            symbol=symbol,
            exchange_count=len(entries),
            quotes=[_quote(e) for e in entries],
            best_spread=spreads[0] if spreads else None,
            all_spreads=spreads,
            positive_spreads=sum(1 for s in spreads if s.gross_spread_percent > 0),
        )
