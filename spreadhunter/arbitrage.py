# spreadhunter/arbitrage.py
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .errors import InsufficientDataError
from .exchanges import DEFAULT_ORDER_BOOK_DEPTH, ExchangeAdapter
from .models import (
    ArbitrageCalculation,
    FeeBreakdown,
    OrderBook,
    OrderBookArbitrageResult,
    OrderBookDepth,
    SlippageBreakdown,
    TradingFees,
)
from .pricing import DEFAULT_MIN_FILL_RATIO, calculate_execution_price
from .risk_engine import RiskEngine


@dataclass(frozen=True, slots=True)
class ExchangeBook:
    """An exchange's order book for one symbol together with its fee schedule."""
    order_book: OrderBook
    fees: TradingFees


class ArbitrageEngine:
    """
    Order-book based arbitrage.
    For a symbol and trade amount, prices every ordered (buy, sell) exchange pair
    against real depth. Both legs are assumed to be market orders, so the
    taker fee applies on each side.
    """
    def __init__(self, adapters: Sequence[ExchangeAdapter], config: dict, logger: logging.Logger,
                 risk: Optional[RiskEngine] = None):
        self.adapters = list(adapters)
        self.cfg = config['arbitrage']
        self.logger = logger
        self.risk = risk or RiskEngine(config, logger)
        self.depth = int(self.cfg.get('order_book_depth', DEFAULT_ORDER_BOOK_DEPTH))
        self.min_fill_ratio = float(self.cfg.get('min_fill_ratio', DEFAULT_MIN_FILL_RATIO))
        self.default_amount = float(self.cfg.get('default_trade_amount', 1.0))

    def supported_exchanges(self) -> List[str]:
        return [a.get_name() for a in self.adapters]

    # --- fetching ---

    async def _fetch_book(self, adapter: ExchangeAdapter, symbol: str) -> Optional[ExchangeBook]:
        if not await adapter.is_available():
            self.logger.warning(f"{adapter.get_name()} is not available")
            return None
        book = await adapter.fetch_order_book(symbol, self.depth)
        return ExchangeBook(order_book=book, fees=adapter.get_trading_fees())

    async def fetch_books(self, symbol: str) -> List[ExchangeBook]:
        """
        Fetches the symbol's book from every adapter concurrently and waits for all of them.
        A failed exchange is logged and left out; it is not retried this cycle.
        """
        results = await asyncio.gather(
            *(self._fetch_book(a, symbol) for a in self.adapters),
            return_exceptions=True,
        )
        books: List[ExchangeBook] = []
        for adapter, res in zip(self.adapters, results):
            if isinstance(res, Exception):
                self.logger.warning(f"⚠️ Order book from {adapter.get_name()} failed for {symbol}: {res}")
            elif res is not None:
                books.append(res)
        return books

    # --- calculation ---

    def calculate_net_profit(self, buy: ExchangeBook, sell: ExchangeBook, amount: float) -> Optional[ArbitrageCalculation]:
        """
        Prices buying `amount` from `buy`'s asks and selling it into `sell`'s bids.
        Returns None when either side cannot fill the amount or the buy cost is not positive.
        """
        buy_fill = calculate_execution_price(buy.order_book.asks, amount, self.min_fill_ratio)
        if buy_fill is None:
            return None
        sell_fill = calculate_execution_price(sell.order_book.bids, amount, self.min_fill_ratio)
        if sell_fill is None:
            return None

        buy_price = buy_fill.weighted_avg_price
        sell_price = sell_fill.weighted_avg_price

        total_cost = buy_price * amount
        if total_cost <= 0:
            return None
        gross_revenue = sell_price * amount
        gross_profit = gross_revenue - total_cost

        buy_fee = total_cost * buy.fees.taker
        sell_fee = gross_revenue * sell.fees.taker
        total_fees = buy_fee + sell_fee

        buy_slippage = abs(buy_price - buy.order_book.asks[0].price) * amount
        sell_slippage = abs(sell_price - sell.order_book.bids[0].price) * amount

        net_profit = gross_profit - total_fees
        net_profit_percentage = net_profit / total_cost * 100

        return ArbitrageCalculation(
            symbol=buy.order_book.symbol,
            buy_exchange=buy.order_book.exchange_name,
            buy_exchange_id=buy.order_book.exchange_id,
            sell_exchange=sell.order_book.exchange_name,
            sell_exchange_id=sell.order_book.exchange_id,
            buy_price=buy_price,
            sell_price=sell_price,
            amount=amount,
            gross_profit=gross_profit,
            trading_fees=FeeBreakdown(buy_fee=buy_fee, sell_fee=sell_fee, total=total_fees),
            slippage=SlippageBreakdown(
                buy_slippage=buy_slippage,
                sell_slippage=sell_slippage,
                total=buy_slippage + sell_slippage,
            ),
            net_profit=net_profit,
            net_profit_percentage=net_profit_percentage,
            is_profitable=self.risk.passes_profit_threshold(net_profit, net_profit_percentage),
            order_book_depth=OrderBookDepth(
                buy_side_depth=buy.order_book.ask_depth,
                sell_side_depth=sell.order_book.bid_depth,
            ),
        )

    def find_opportunities(self, books: Sequence[ExchangeBook], amount: float) -> List[ArbitrageCalculation]:
        """Every ordered pair (i, j), i != j. Pairs without enough depth are skipped."""
        opportunities: List[ArbitrageCalculation] = []
        for i, buy in enumerate(books):
            for j, sell in enumerate(books):
                if i == j:
                    continue
                calc = self.calculate_net_profit(buy, sell, amount)
                if calc is not None:
                    opportunities.append(calc)
        return opportunities

    @staticmethod
    def best_opportunity(opportunities: Sequence[ArbitrageCalculation]) -> Optional[ArbitrageCalculation]:
        profitable = [o for o in opportunities if o.is_profitable]
        if not profitable:
            return None
        return max(profitable, key=lambda o: o.net_profit_percentage)

    async def calculate_arbitrage(self, symbol: str, amount: Optional[float] = None) -> OrderBookArbitrageResult:
        """
        Fetch order books and calculate arbitrage opportunities.
        Raises InvalidInputError before any network call and InsufficientDataError
        when fewer than two exchanges delivered a book.
        """
        symbol = self.risk.validate_symbol(symbol)
        amount = self.risk.validate_trade_amount(self.default_amount if amount is None else amount)

        books = await self.fetch_books(symbol)
        if len(books) < 2:
            raise InsufficientDataError(symbol, len(books))

        opportunities = self.find_opportunities(books, amount)
        opportunities.sort(key=lambda o: o.net_profit_percentage, reverse=True)
        best = self.best_opportunity(opportunities)
        profitable = sum(1 for o in opportunities if o.is_profitable)
        avg_spread = (
            sum(o.net_profit_percentage for o in opportunities) / len(opportunities)
            if opportunities else 0.0
        )

        self.logger.debug(
            f"{symbol}: {len(books)} books, {len(opportunities)} pairs priced, {profitable} profitable"
        )

        return OrderBookArbitrageResult(
            timestamp=time.time(),
            symbol=symbol,
            trade_amount=amount,
            order_books=[b.order_book for b in books],
            opportunities=opportunities,
            best_opportunity=best,
            total_opportunities=len(opportunities),
            profitable_opportunities=profitable,
            best_net_profit_percentage=best.net_profit_percentage if best else 0.0,
            average_spread=avg_spread,
        )
