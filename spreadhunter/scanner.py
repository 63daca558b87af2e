# spreadhunter/scanner.py
import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from .arbitrage import ArbitrageEngine
from .errors import InsufficientDataError
from .exchanges import warm_up
from .models import MultiSymbolScanResult, SymbolScanResult, TickerSpreadResult, TickerSpreadScanResult
from .spread_scanner import SpreadScanner

T = TypeVar('T')


async def run_in_batches(
    items: Sequence[str],
    worker: Callable[[str], Awaitable[T]],
    batch_size: int,
    delay_s: float,
    on_error: Callable[[str, Exception], T],
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> List[T]:
    """
    Runs `worker` over `items` in fixed-size batches.
    Items inside a batch run concurrently; batches run one after another with a
    fixed pause in between. A failing item is turned into a result by `on_error`
    and never aborts the batch. Results keep the input order.
    """
    results: List[T] = []
    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        outcomes = await asyncio.gather(*(worker(item) for item in batch), return_exceptions=True)
        for item, out in zip(batch, outcomes):
            if isinstance(out, Exception):
                results.append(on_error(item, out))
            elif isinstance(out, BaseException):
                raise out
            else:
                results.append(out)

        if start + batch_size < len(items):
            await sleep(delay_s)
    return results


class MultiSymbolScanner:
    """
    Scans many symbols at once, either with full order books or with tickers only.
    Batching plus a static pause between batches keeps the aggregate request
    rate under the exchanges' limits.
    """
    def __init__(self, arbitrage: ArbitrageEngine, spreads: SpreadScanner, config: dict, logger: logging.Logger,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.arbitrage = arbitrage
        self.spreads = spreads
        self.cfg = config['scanner']
        self.spread_cfg = config['spread_scanner']
        self.logger = logger
        self.risk = arbitrage.risk
        self._sleep = sleep

    def _require_exchanges(self, available: List[str]):
        # Individual outages are tolerated per symbol; losing (almost) every exchange is not
        if len(available) < 2:
            raise InsufficientDataError("all symbols", len(available))
        self.logger.debug(f"Exchanges online: {', '.join(available)}")

    # --- order book scan ---

    async def _estimate_base_amount(self, symbol: str, amount_usd: float) -> float:
        """Converts a USD notional to base units using the first exchange that quotes a last price."""
        for adapter in self.arbitrage.adapters:
            try:
                ticker = await adapter.fetch_ticker(symbol)
            except Exception as e:
                self.logger.debug(f"No reference price for {symbol} on {adapter.get_name()}: {e}")
                continue
            if ticker.last > 0:
                return amount_usd / ticker.last
        return 1.0

    async def _scan_order_book_symbol(self, symbol: str, amount_usd: float) -> SymbolScanResult:
        amount = await self._estimate_base_amount(symbol, amount_usd)
        result = await self.arbitrage.calculate_arbitrage(symbol, amount)

        # Report the top pair even when it does not clear the threshold
        best = result.opportunities[0] if result.opportunities else None
        return SymbolScanResult(
            symbol=symbol,
            trade_amount_usd=amount_usd,
            trade_amount_base=amount,
            exchanges_responded=result.exchanges_responded,
            total_opportunities=result.total_opportunities,
            profitable_opportunities=result.profitable_opportunities,
            best_opportunity=best,
        )

    async def scan_order_books(self, symbols: Sequence[str], amount_usd: Optional[float] = None) -> MultiSymbolScanResult:
        amount_usd = self.risk.validate_trade_amount(
            self.cfg.get('default_amount_usd', 1000) if amount_usd is None else amount_usd,
            label="USD amount",
        )
        symbols = self.risk.validate_symbols(symbols)

        started = time.monotonic()
        self._require_exchanges(await warm_up(self.arbitrage.adapters))

        def on_error(symbol: str, err: Exception) -> SymbolScanResult:
            self.logger.warning(f"⚠️ {symbol}: {err}")
            return SymbolScanResult(symbol=symbol, trade_amount_usd=amount_usd, error=str(err))

        results = await run_in_batches(
            symbols,
            lambda s: self._scan_order_book_symbol(s, amount_usd),
            batch_size=int(self.cfg.get('batch_size', 3)),
            delay_s=self.cfg.get('batch_delay_ms', 500) / 1000,
            on_error=on_error,
            sleep=self._sleep,
        )
        results.sort(key=lambda r: r.best_net_profit_percentage, reverse=True)

        duration_ms = (time.monotonic() - started) * 1000
        profitable = sum(1 for r in results if r.best_opportunity and r.best_opportunity.is_profitable)
        top_n = int(self.cfg.get('top_n', 10))

        self.logger.info(
            f"🔎 Order book scan: {len(symbols)} symbols in {duration_ms:.0f}ms | {profitable} profitable"
        )
        return MultiSymbolScanResult(
            timestamp=time.time(),
            scan_duration_ms=duration_ms,
            symbols_scanned=len(symbols),
            symbols_with_data=sum(1 for r in results if r.exchanges_responded >= 2),
            profitable_symbols=profitable,
            results=results,
            top_opportunities=[r for r in results if r.best_opportunity is not None][:top_n],
        )

    # --- ticker scan ---

    async def scan_tickers(self, symbols: Sequence[str]) -> TickerSpreadScanResult:
        symbols = self.risk.validate_symbols(symbols)

        started = time.monotonic()
        self._require_exchanges(await warm_up(self.spreads.adapters))

        def on_error(symbol: str, err: Exception) -> TickerSpreadResult:
            self.logger.warning(f"⚠️ {symbol}: {err}")
            return TickerSpreadResult(symbol=symbol, exchange_count=0, error=str(err))

        results = await run_in_batches(
            symbols,
            self.spreads.scan_symbol,
            batch_size=int(self.spread_cfg.get('batch_size', 5)),
            delay_s=self.spread_cfg.get('batch_delay_ms', 300) / 1000,
            on_error=on_error,
            sleep=self._sleep,
        )

        def best_gross(r: TickerSpreadResult) -> float:
            return r.best_spread.gross_spread_percent if r.best_spread else float("-inf")

        results.sort(key=best_gross, reverse=True)

        duration_ms = (time.monotonic() - started) * 1000
        with_maker = sum(1 for r in results if r.best_spread and r.best_spread.maker.percent > 0)
        with_taker = sum(1 for r in results if r.best_spread and r.best_spread.taker.percent > 0)
        top_n = int(self.spread_cfg.get('top_n', 10))

        self.logger.info(
            f"🔎 Ticker scan: {len(symbols)} symbols in {duration_ms:.0f}ms | "
            f"{with_maker} net positive with maker fees, {with_taker} with taker fees"
        )
        return TickerSpreadScanResult(
            timestamp=time.time(),
            scan_duration_ms=duration_ms,
            symbols_scanned=len(symbols),
            symbols_with_data=sum(1 for r in results if r.exchange_count >= 2),
            profitable_with_maker_fees=with_maker,
            profitable_with_taker_fees=with_taker,
            results=results,
            top_opportunities=[r for r in results if best_gross(r) > 0][:top_n],
        )
