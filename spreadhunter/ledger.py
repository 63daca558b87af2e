# spreadhunter/ledger.py
"""
P&L tracking: a bounded history of detected opportunities plus the simulated
trades taken from them.

The ledger is plain in-process state. Build one at startup, hand it to
whoever needs it, and let it live until the process exits. Reads never modify
it; writes are serialized with a lock so it can be shared between the event
loop and worker threads.
"""
import threading
import time
import uuid
from collections import deque
from dataclasses import replace
from datetime import timedelta
from typing import Callable, Deque, Dict, List, Optional, Union

from .errors import InvalidStatusTransition, TradeNotFoundError
from .models import (
    ArbitrageCalculation,
    OpportunityRecord,
    PLSummary,
    SimulatedTrade,
    TradeStatus,
)

DEFAULT_MAX_HISTORY = 1000


class TradeLedger:
    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY, clock: Callable[[], float] = time.time):
        self.max_history = max_history
        self._clock = clock
        self._lock = threading.Lock()
        self._opportunities: Deque[OpportunityRecord] = deque(maxlen=max_history)
        self._trades: Dict[str, SimulatedTrade] = {}

    @classmethod
    def from_config(cls, config: dict) -> "TradeLedger":
        return cls(max_history=int(config['ledger'].get('max_history', DEFAULT_MAX_HISTORY)))

    @property
    def opportunity_count(self) -> int:
        return len(self._opportunities)

    @property
    def trade_count(self) -> int:
        return len(self._trades)

    # --- writes ---

    def log_opportunity(self, opportunity: ArbitrageCalculation) -> OpportunityRecord:
        """Appends to the history; the oldest entry falls off once the cap is reached."""
        record = OpportunityRecord(timestamp=self._clock(), opportunity=opportunity)
        with self._lock:
            self._opportunities.append(record)
        return record

    def _new_trade_id(self, now: float) -> str:
        return f"trade_{int(now * 1000)}_{uuid.uuid4().hex[:9]}"

    def record_simulated_trade(self, symbol: str, opportunity: ArbitrageCalculation,
                               user_id: Optional[str] = None) -> SimulatedTrade:
        now = self._clock()
        trade = SimulatedTrade(
            id=self._new_trade_id(now),
            timestamp=now,
            symbol=symbol,
            opportunity=opportunity,
            status=TradeStatus.SIMULATED,
            user_id=user_id,
        )
        with self._lock:
            self._trades[trade.id] = trade
        return trade

    def advance_status(self, trade_id: str, status: TradeStatus) -> SimulatedTrade:
        """Moves a trade forward in its lifecycle. Going backwards is rejected."""
        with self._lock:
            trade = self._trades.get(trade_id)
            if trade is None:
                raise TradeNotFoundError(trade_id)
            if status.rank < trade.status.rank:
                raise InvalidStatusTransition(
                    f"Trade {trade_id} cannot go from {trade.status.value} back to {status.value}"
                )
            if status is not trade.status:
                trade = replace(trade, status=status)
                self._trades[trade_id] = trade
            return trade

    def clear_history(self):
        with self._lock:
            self._trades.clear()
            self._opportunities.clear()

    # --- reads ---

    def _trade_snapshot(self, user_id: Optional[str] = None) -> List[SimulatedTrade]:
        with self._lock:
            trades = list(self._trades.values())
        if user_id is not None:
            trades = [t for t in trades if t.user_id == user_id]
        return trades

    def get_trade(self, trade_id: str) -> Optional[SimulatedTrade]:
        with self._lock:
            return self._trades.get(trade_id)

    def get_trades(self, user_id: Optional[str] = None, status: Optional[TradeStatus] = None,
                   limit: Optional[int] = None) -> List[SimulatedTrade]:
        """Matching trades, most recent first."""
        trades = self._trade_snapshot(user_id)
        if status is not None:
            trades = [t for t in trades if t.status is status]

        # insertion order breaks timestamp ties
        ordered = sorted(enumerate(trades), key=lambda p: (p[1].timestamp, p[0]), reverse=True)
        trades = [t for _, t in ordered]

        if limit is not None:
            trades = trades[:max(limit, 0)]
        return trades

    def get_recent_opportunities(self, limit: int = 50) -> List[OpportunityRecord]:
        """The `limit` most recent opportunities, newest first."""
        if limit <= 0:
            return []
        with self._lock:
            records = list(self._opportunities)
        return list(reversed(records[-limit:]))

    @staticmethod
    def _summarize(trades: List[SimulatedTrade], detected: int) -> PLSummary:
        if not trades:
            return PLSummary(total_opportunities_detected=detected)

        cumulative_usd = sum(t.opportunity.net_profit for t in trades)
        cumulative_pct = sum(t.opportunity.net_profit_percentage for t in trades)
        profitable = sum(1 for t in trades if t.opportunity.is_profitable)

        return PLSummary(
            total_opportunities_detected=detected,
            total_simulated_trades=len(trades),
            cumulative_profit_usd=cumulative_usd,
            cumulative_profit_percentage=cumulative_pct,
            average_profit_per_trade=cumulative_usd / len(trades),
            best_trade=max(trades, key=lambda t: t.opportunity.net_profit),
            worst_trade=min(trades, key=lambda t: t.opportunity.net_profit),
            profitable_trades_count=profitable,
            total_trades_count=len(trades),
            win_rate=profitable / len(trades) * 100,
        )

    def get_pl_summary(self, user_id: Optional[str] = None) -> PLSummary:
        # opportunities are not attributed to users
        return self._summarize(self._trade_snapshot(user_id), self.opportunity_count)

    def get_statistics(self, time_window: Optional[Union[float, timedelta]] = None) -> PLSummary:
        """
        Same aggregates as get_pl_summary, restricted to entries newer than
        now - time_window (seconds or timedelta). Without a window, covers the whole history.
        """
        if isinstance(time_window, timedelta):
            time_window = time_window.total_seconds()
        cutoff = self._clock() - time_window if time_window else float("-inf")

        with self._lock:
            opportunities = [r for r in self._opportunities if r.timestamp > cutoff]
        trades = [t for t in self._trade_snapshot() if t.timestamp > cutoff]
        return self._summarize(trades, len(opportunities))
