# tests/test_ledger.py
from datetime import timedelta

import pytest

from spreadhunter.errors import ArbitrageError, InvalidStatusTransition, TradeNotFoundError
from spreadhunter.ledger import TradeLedger
from spreadhunter.models import (
    ArbitrageCalculation,
    FeeBreakdown,
    OrderBookDepth,
    SlippageBreakdown,
    TradeStatus,
)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def opportunity(net_profit: float = 1.0, symbol: str = "BTC/USDT", buy_price: float = 100.0) -> ArbitrageCalculation:
    return ArbitrageCalculation(
        symbol=symbol,
        buy_exchange="Alpha",
        buy_exchange_id="alpha",
        sell_exchange="Beta",
        sell_exchange_id="beta",
        buy_price=buy_price,
        sell_price=buy_price + net_profit,
        amount=1.0,
        gross_profit=net_profit,
        trading_fees=FeeBreakdown(buy_fee=0.0, sell_fee=0.0, total=0.0),
        slippage=SlippageBreakdown(buy_slippage=0.0, sell_slippage=0.0, total=0.0),
        net_profit=net_profit,
        net_profit_percentage=net_profit / buy_price * 100,
        is_profitable=net_profit > 0,
        order_book_depth=OrderBookDepth(buy_side_depth=10, sell_side_depth=10),
    )


class TestOpportunityHistory:
    def test_oldest_evicted_at_cap(self):
        clock = FakeClock()
        ledger = TradeLedger(max_history=1000, clock=clock)
        for i in range(1001):
            ledger.log_opportunity(opportunity(buy_price=100.0 + i))
            clock.advance(1)

        assert ledger.opportunity_count == 1000
        recent = ledger.get_recent_opportunities(10)
        assert [r.opportunity.buy_price for r in recent] == [1100.0 - i for i in range(10)]

        oldest = ledger.get_recent_opportunities(1000)[-1]
        assert oldest.opportunity.buy_price == 101.0

    def test_recent_default_and_bad_limit(self):
        ledger = TradeLedger()
        for _ in range(60):
            ledger.log_opportunity(opportunity())
        assert len(ledger.get_recent_opportunities()) == 50
        assert ledger.get_recent_opportunities(0) == []

    def test_clear_history(self):
        ledger = TradeLedger()
        ledger.log_opportunity(opportunity())
        ledger.record_simulated_trade("BTC/USDT", opportunity())
        ledger.clear_history()
        assert ledger.opportunity_count == 0
        assert ledger.trade_count == 0


class TestTrades:
    def test_record_simulated_trade(self):
        clock = FakeClock(1_700_000_000.5)
        ledger = TradeLedger(clock=clock)
        trade = ledger.record_simulated_trade("BTC/USDT", opportunity(), user_id="u1")

        assert trade.id.startswith("trade_1700000000500_")
        assert trade.status is TradeStatus.SIMULATED
        assert trade.user_id == "u1"
        assert ledger.get_trade(trade.id) == trade
        assert trade.to_dict()["status"] == "simulated"

    def test_trade_ids_unique(self):
        ledger = TradeLedger(clock=FakeClock())
        ids = {ledger.record_simulated_trade("BTC/USDT", opportunity()).id for _ in range(50)}
        assert len(ids) == 50

    def test_get_trades_filters_newest_first(self):
        clock = FakeClock()
        ledger = TradeLedger(clock=clock)
        first = ledger.record_simulated_trade("BTC/USDT", opportunity(), user_id="u1")
        clock.advance(1)
        second = ledger.record_simulated_trade("ETH/USDT", opportunity(), user_id="u2")
        clock.advance(1)
        third = ledger.record_simulated_trade("SOL/USDT", opportunity(), user_id="u1")

        assert ledger.get_trades() == [third, second, first]
        assert ledger.get_trades(user_id="u1") == [third, first]
        assert ledger.get_trades(limit=1) == [third]

        executed = ledger.advance_status(first.id, TradeStatus.EXECUTED)
        assert ledger.get_trades(status=TradeStatus.EXECUTED) == [executed]

    def test_same_timestamp_keeps_insertion_order(self):
        ledger = TradeLedger(clock=FakeClock())
        a = ledger.record_simulated_trade("BTC/USDT", opportunity())
        b = ledger.record_simulated_trade("BTC/USDT", opportunity())
        assert ledger.get_trades() == [b, a]


class TestStatusTransitions:
    def test_forward_only(self):
        ledger = TradeLedger()
        trade = ledger.record_simulated_trade("BTC/USDT", opportunity())

        assert ledger.advance_status(trade.id, TradeStatus.SIMULATED).status is TradeStatus.SIMULATED
        assert ledger.advance_status(trade.id, TradeStatus.EXECUTED).status is TradeStatus.EXECUTED
        with pytest.raises(InvalidStatusTransition):
            ledger.advance_status(trade.id, TradeStatus.DETECTED)
        assert ledger.get_trade(trade.id).status is TradeStatus.EXECUTED

    def test_unknown_trade(self):
        with pytest.raises(TradeNotFoundError, match="trade_0_missing") as exc_info:
            TradeLedger().advance_status("trade_0_missing", TradeStatus.EXECUTED)
        assert isinstance(exc_info.value, ArbitrageError)


class TestPLSummary:
    def test_empty(self):
        summary = TradeLedger().get_pl_summary()

        assert summary.total_simulated_trades == 0
        assert summary.cumulative_profit_usd == 0
        assert summary.average_profit_per_trade == 0
        assert summary.win_rate == 0
        assert summary.best_trade is None
        assert summary.worst_trade is None

    def test_aggregates(self):
        ledger = TradeLedger(clock=FakeClock())
        ledger.log_opportunity(opportunity())
        best = ledger.record_simulated_trade("BTC/USDT", opportunity(net_profit=3.0))
        ledger.record_simulated_trade("BTC/USDT", opportunity(net_profit=1.0))
        worst = ledger.record_simulated_trade("BTC/USDT", opportunity(net_profit=-2.0))

        summary = ledger.get_pl_summary()
        assert summary.total_opportunities_detected == 1
        assert summary.total_simulated_trades == 3
        assert summary.cumulative_profit_usd == pytest.approx(2.0)
        assert summary.cumulative_profit_percentage == pytest.approx(2.0)
        assert summary.average_profit_per_trade == pytest.approx(2.0 / 3)
        assert summary.profitable_trades_count == 2
        assert summary.win_rate == pytest.approx(200 / 3)
        assert summary.best_trade == best
        assert summary.worst_trade == worst

    def test_per_user(self):
        ledger = TradeLedger()
        ledger.record_simulated_trade("BTC/USDT", opportunity(net_profit=3.0), user_id="u1")
        ledger.record_simulated_trade("BTC/USDT", opportunity(net_profit=-1.0), user_id="u2")

        summary = ledger.get_pl_summary(user_id="u2")
        assert summary.total_trades_count == 1
        assert summary.win_rate == 0


class TestStatistics:
    def test_time_window(self):
        clock = FakeClock()
        ledger = TradeLedger(clock=clock)
        ledger.log_opportunity(opportunity())
        ledger.record_simulated_trade("BTC/USDT", opportunity(net_profit=5.0))
        clock.advance(3600)
        ledger.log_opportunity(opportunity())
        recent_best = ledger.record_simulated_trade("BTC/USDT", opportunity(net_profit=1.0))
        recent_worst = ledger.record_simulated_trade("BTC/USDT", opportunity(net_profit=-1.0))
        clock.advance(10)

        stats = ledger.get_statistics(timedelta(minutes=30))
        assert stats.total_opportunities_detected == 1
        assert stats.total_simulated_trades == 2
        assert stats.cumulative_profit_usd == pytest.approx(0.0)
        assert stats.cumulative_profit_percentage == pytest.approx(0.0)
        assert stats.average_profit_per_trade == pytest.approx(0.0)
        assert stats.best_trade == recent_best
        assert stats.worst_trade == recent_worst
        assert stats.profitable_trades_count == 1
        assert stats.win_rate == pytest.approx(50.0)

    def test_no_window_matches_summary(self):
        clock = FakeClock()
        ledger = TradeLedger(clock=clock)
        ledger.log_opportunity(opportunity())
        ledger.record_simulated_trade("BTC/USDT", opportunity(net_profit=5.0))
        clock.advance(3600)
        ledger.record_simulated_trade("BTC/USDT", opportunity(net_profit=-1.0))

        assert ledger.get_statistics() == ledger.get_pl_summary()

    def test_cutoff_is_exclusive(self):
        clock = FakeClock()
        ledger = TradeLedger(clock=clock)
        ledger.record_simulated_trade("BTC/USDT", opportunity())
        clock.advance(60)
        assert ledger.get_statistics(60).total_simulated_trades == 0
        assert ledger.get_statistics(61).total_simulated_trades == 1

    def test_empty_period(self):
        stats = TradeLedger().get_statistics(60)
        assert stats.total_simulated_trades == 0
        assert stats.win_rate == 0
        assert stats.best_trade is None
        assert stats.worst_trade is None
