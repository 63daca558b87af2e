# spreadhunter/execution.py
import logging
from typing import Optional

from .arbitrage import ArbitrageEngine
from .errors import NoOpportunityError
from .ledger import TradeLedger
from .logger import AsyncAuditLogger
from .models import ArbitrageCalculation, MultiSymbolScanResult, OrderBookArbitrageResult, SimulatedTrade


class SimulationService:
    """
    Paper trading only. Nothing here places an order: a "trade" is the best
    order-book opportunity at the moment of the call, recorded in the ledger
    with its estimated P&L and written to the audit trail.
    """
    def __init__(self, engine: ArbitrageEngine, ledger: TradeLedger, logger: logging.Logger,
                 audit_logger: Optional[AsyncAuditLogger] = None):
        self.engine = engine
        self.ledger = ledger
        self.logger = logger
        self.audit_logger = audit_logger

    def record_opportunities(self, result: OrderBookArbitrageResult) -> int:
        """Logs the profitable pairs of a calculation; losing pairs are not opportunities."""
        logged = 0
        for opp in result.opportunities:
            if opp.is_profitable:
                self.ledger.log_opportunity(opp)
                logged += 1
        return logged

    def log_scan(self, scan: MultiSymbolScanResult) -> int:
        """Logs each symbol's best pair when it is profitable. Never records a trade."""
        logged = 0
        for result in scan.results:
            opp = result.best_opportunity
            if opp is not None and opp.is_profitable:
                self.ledger.log_opportunity(opp)
                logged += 1
        return logged

    async def simulate(self, symbol: str, amount: Optional[float] = None,
                       user_id: Optional[str] = None) -> SimulatedTrade:
        """
        Runs a fresh calculation and takes the best profitable pair.
        Raises NoOpportunityError when nothing clears the profit threshold.
        """
        result = await self.engine.calculate_arbitrage(symbol, amount)
        self.record_opportunities(result)
        return await self.take(result, user_id)

    async def take(self, result: OrderBookArbitrageResult, user_id: Optional[str] = None) -> SimulatedTrade:
        best = result.best_opportunity
        if best is None or not best.is_profitable:
            raise NoOpportunityError(result.symbol, result.trade_amount)
        return await self.record(best, user_id=user_id)

    async def record(self, opportunity: ArbitrageCalculation, user_id: Optional[str] = None) -> SimulatedTrade:
        if not opportunity.is_profitable:
            raise NoOpportunityError(opportunity.symbol, opportunity.amount)

        trade = self.ledger.record_simulated_trade(opportunity.symbol, opportunity, user_id=user_id)
        self.logger.info(
            f"🔵 SIMULATED: {trade.symbol} | Buy {opportunity.buy_exchange} -> Sell {opportunity.sell_exchange} | "
            f"Amt: {opportunity.amount:g} | Est. Profit: ${opportunity.net_profit:.4f} "
            f"({opportunity.net_profit_percentage:.3f}%)"
        )
        if self.audit_logger is not None:
            await self.audit_logger.log_simulated_trade(trade)
        return trade
