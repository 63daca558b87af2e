# spreadhunter/models.py
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple
import time


def _to_iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _dict_factory(items) -> dict:
    # asdict() keeps Enum members as-is; consumers want the plain value
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in items}


class TradeStatus(Enum):
    """
    Lifecycle of a simulated trade. Transitions only move forward:
    DETECTED -> SIMULATED -> EXECUTED.
    """
    DETECTED = "detected"
    SIMULATED = "simulated"
    EXECUTED = "executed"

    @property
    def rank(self) -> int:
        return list(TradeStatus).index(self)


@dataclass(frozen=True, slots=True)
class Ticker:
    """
    Best bid/ask snapshot for one symbol on one exchange.
    Timestamps are unix seconds.
    """
    symbol: str
    exchange_id: str
    exchange_name: str
    bid: float
    ask: float
    last: float
    volume: float
    timestamp: float

    @property
    def age(self) -> float:
        """Returns the age of the data in seconds."""
        return time.time() - self.timestamp

    @property
    def datetime(self) -> str:
        return _to_iso(self.timestamp)

    @property
    def is_usable(self) -> bool:
        return self.bid > 0 and self.ask > 0


@dataclass(frozen=True, slots=True)
class OrderBookLevel:
    price: float
    amount: float
    total: float  # cumulative amount up to and including this level


@dataclass(frozen=True, slots=True)
class OrderBook:
    """
    Normalized order book snapshot. Bids are sorted best (highest) first,
    asks best (lowest) first. Only the fetched levels are known: liquidity
    past the last level is unknown, not zero.
    """
    symbol: str
    exchange_id: str
    exchange_name: str
    bids: Tuple[OrderBookLevel, ...]
    asks: Tuple[OrderBookLevel, ...]
    timestamp: float
    nonce: Optional[int] = None

    @property
    def best_bid(self) -> Optional[float]:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> Optional[float]:
        return self.asks[0].price if self.asks else None

    @property
    def bid_depth(self) -> float:
        return self.bids[-1].total if self.bids else 0.0

    @property
    def ask_depth(self) -> float:
        return self.asks[-1].total if self.asks else 0.0

    @property
    def datetime(self) -> str:
        return _to_iso(self.timestamp)


@dataclass(frozen=True, slots=True)
class TradingFees:
    maker: float = 0.001
    taker: float = 0.001
    percentage: bool = True


@dataclass(frozen=True, slots=True)
class FillResult:
    weighted_avg_price: float
    filled_amount: float


@dataclass(frozen=True, slots=True)
class FeeBreakdown:
    buy_fee: float
    sell_fee: float
    total: float


@dataclass(frozen=True, slots=True)
class SlippageBreakdown:
    buy_slippage: float
    sell_slippage: float
    total: float


@dataclass(frozen=True, slots=True)
class OrderBookDepth:
    buy_side_depth: float   # asks visible on the buy exchange
    sell_side_depth: float  # bids visible on the sell exchange


@dataclass(frozen=True, slots=True)
class ArbitrageCalculation:
    """
    Outcome of buying `amount` on one exchange and selling it on another,
    priced against both order books. Slippage is informational: it is already
    inside the weighted prices and is not subtracted from net profit.
    """
    symbol: str
    buy_exchange: str
    buy_exchange_id: str
    sell_exchange: str
    sell_exchange_id: str
    buy_price: float
    sell_price: float
    amount: float
    gross_profit: float
    trading_fees: FeeBreakdown
    slippage: SlippageBreakdown
    net_profit: float
    net_profit_percentage: float
    is_profitable: bool
    order_book_depth: OrderBookDepth

    @property
    def spread_percentage(self) -> float:
        return (self.sell_price - self.buy_price) / self.buy_price * 100

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=_dict_factory)


@dataclass(frozen=True, slots=True)
class SimulatedTrade:
    id: str
    timestamp: float
    symbol: str
    opportunity: ArbitrageCalculation
    status: TradeStatus = TradeStatus.SIMULATED
    user_id: Optional[str] = None

    @property
    def datetime(self) -> str:
        return _to_iso(self.timestamp)

    def to_dict(self) -> dict:
        data = asdict(self, dict_factory=_dict_factory)
        data["datetime"] = self.datetime
        return data


@dataclass(frozen=True, slots=True)
class OpportunityRecord:
    timestamp: float
    opportunity: ArbitrageCalculation

    @property
    def datetime(self) -> str:
        return _to_iso(self.timestamp)


@dataclass(frozen=True, slots=True)
class PLSummary:
    total_opportunities_detected: int = 0
    total_simulated_trades: int = 0
    cumulative_profit_usd: float = 0.0
    cumulative_profit_percentage: float = 0.0
    average_profit_per_trade: float = 0.0
    best_trade: Optional[SimulatedTrade] = None
    worst_trade: Optional[SimulatedTrade] = None
    profitable_trades_count: int = 0
    total_trades_count: int = 0
    win_rate: float = 0.0  # percent, 0-100

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=_dict_factory)


@dataclass(frozen=True, slots=True)
class FeeScenario:
    label: str
    fee_percent: float
    percent: float  # net spread after fees
    profit_per_1000_usd: float


@dataclass(frozen=True, slots=True)
class SpreadOpportunity:
    buy_exchange: str
    buy_exchange_id: str
    sell_exchange: str
    sell_exchange_id: str
    buy_price: float
    sell_price: float
    gross_spread_percent: float
    maker: FeeScenario
    taker: FeeScenario
    hybrid: FeeScenario
    is_profitable_with_maker: bool
    is_profitable_with_taker: bool


@dataclass(frozen=True, slots=True)
class ExchangeQuote:
    exchange: str
    exchange_id: str
    bid: float
    ask: float
    spread_percent: float  # own bid/ask spread
    volume: float
    maker_fee: float
    taker_fee: float


@dataclass(frozen=True, slots=True)
class TickerSpreadResult:
    symbol: str
    exchange_count: int
    quotes: List[ExchangeQuote] = field(default_factory=list)
    best_spread: Optional[SpreadOpportunity] = None
    all_spreads: List[SpreadOpportunity] = field(default_factory=list)
    positive_spreads: int = 0
    error: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TickerSpreadScanResult:
    timestamp: float
    scan_duration_ms: float
    symbols_scanned: int
    symbols_with_data: int
    profitable_with_maker_fees: int
    profitable_with_taker_fees: int
    results: List[TickerSpreadResult]
    top_opportunities: List[TickerSpreadResult]

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=_dict_factory)


@dataclass(frozen=True, slots=True)
class OrderBookArbitrageResult:
    timestamp: float
    symbol: str
    trade_amount: float
    order_books: List[OrderBook]
    opportunities: List[ArbitrageCalculation]
    best_opportunity: Optional[ArbitrageCalculation]
    total_opportunities: int
    profitable_opportunities: int
    best_net_profit_percentage: float
    average_spread: float

    @property
    def exchanges_responded(self) -> int:
        return len(self.order_books)

    def to_dict(self) -> dict:
        data = asdict(self, dict_factory=_dict_factory)
        data["exchanges_responded"] = self.exchanges_responded
        return data


@dataclass(frozen=True, slots=True)
class SymbolScanResult:
    symbol: str
    trade_amount_usd: float
    trade_amount_base: float = 0.0
    exchanges_responded: int = 0
    total_opportunities: int = 0
    profitable_opportunities: int = 0
    best_opportunity: Optional[ArbitrageCalculation] = None
    error: Optional[str] = None

    @property
    def best_net_profit_percentage(self) -> float:
        if self.best_opportunity is None:
            return float("-inf")
        return self.best_opportunity.net_profit_percentage


@dataclass(frozen=True, slots=True)
class MultiSymbolScanResult:
    timestamp: float
    scan_duration_ms: float
    symbols_scanned: int
    symbols_with_data: int
    profitable_symbols: int
    results: List[SymbolScanResult]
    top_opportunities: List[SymbolScanResult]

    def to_dict(self) -> dict:
        return asdict(self, dict_factory=_dict_factory)


@dataclass(frozen=True, slots=True)
class ExchangeInfo:
    id: str
    name: str
    countries: List[str]
    url: str
    version: Optional[str]
    rate_limit: float
    has: Dict[str, bool]
    fees: TradingFees
    supported_order_types: List[str]
    timeframes: List[str]
    required_credentials: Dict[str, bool]
