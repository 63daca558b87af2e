# spreadhunter/pricing.py
"""
Order book walking.

`calculate_execution_price` fills a target amount level by level, best price
first, and reports the volume-weighted average price of what was filled.
"""
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import FillResult, OrderBookLevel

DEFAULT_MIN_FILL_RATIO = 0.9


def cumulative_levels(raw_levels: Iterable[Sequence[float]], descending: bool) -> Tuple[OrderBookLevel, ...]:
    """
    Builds normalized levels from raw [price, amount, ...] rows.
    Sorts by price (descending for bids, ascending for asks) and stamps the
    running total on every level. Rows with a non-positive price or amount are dropped.
    """
    rows = [(float(row[0]), float(row[1])) for row in raw_levels]
    rows = [(price, amount) for price, amount in rows if price > 0 and amount > 0]
    rows.sort(key=lambda r: r[0], reverse=descending)

    levels: List[OrderBookLevel] = []
    running = 0.0
    for price, amount in rows:
        running += amount
        levels.append(OrderBookLevel(price=price, amount=amount, total=running))
    return tuple(levels)


def calculate_execution_price(
    levels: Sequence[OrderBookLevel],
    target_amount: float,
    min_fill_ratio: float = DEFAULT_MIN_FILL_RATIO,
) -> Optional[FillResult]:
    """
    Walks `levels` front to back taking min(level.amount, remaining) at each
    level's price until `target_amount` is filled or the levels run out.

    Returns None when the book is empty or the filled amount is below
    `min_fill_ratio` of the target: a partial fill is not priced.
    """
    if not levels or target_amount <= 0:
        return None

    remaining = target_amount
    total_cost = 0.0
    filled = 0.0

    for level in levels:
        if remaining <= 0:
            break
        take = min(level.amount, remaining)
        if take <= 0:
            continue
        total_cost += take * level.price
        filled += take
        remaining -= take

    if filled <= 0 or filled < target_amount * min_fill_ratio:
        return None

    return FillResult(weighted_avg_price=total_cost / filled, filled_amount=filled)
