# tests/test_pricing.py
import pytest

from spreadhunter.pricing import calculate_execution_price, cumulative_levels

ASKS = cumulative_levels([[101, 5], [100, 1], [103, 2]], descending=False)


class TestCumulativeLevels:
    def test_asks_sorted_ascending(self):
        assert [lvl.price for lvl in ASKS] == [100, 101, 103]

    def test_bids_sorted_descending(self):
        bids = cumulative_levels([[99, 1], [100, 2], [98, 3]], descending=True)
        assert [lvl.price for lvl in bids] == [100, 99, 98]

    def test_totals_non_decreasing_and_end_at_sum(self):
        totals = [lvl.total for lvl in ASKS]
        assert totals == sorted(totals)
        assert totals[-1] == pytest.approx(sum(lvl.amount for lvl in ASKS))

    def test_extra_columns_ignored(self):
        levels = cumulative_levels([[100, 1, 12345]], descending=False)
        assert levels[0].price == 100
        assert levels[0].amount == 1

    def test_empty(self):
        assert cumulative_levels([], descending=True) == ()

    def test_non_positive_levels_dropped(self):
        asks = cumulative_levels([[0, 1], [100, 5], [101, 0], [-1, 2]], descending=False)
        assert [(lvl.price, lvl.amount, lvl.total) for lvl in asks] == [(100, 5, 5)]


class TestCalculateExecutionPrice:
    def test_single_level_fill(self):
        fill = calculate_execution_price(ASKS, 1)
        assert fill.weighted_avg_price == 100
        assert fill.filled_amount == 1

    def test_walks_multiple_levels(self):
        fill = calculate_execution_price(ASKS, 3)
        # 1 @ 100 + 2 @ 101
        assert fill.weighted_avg_price == pytest.approx(302 / 3)
        assert fill.filled_amount == 3

    def test_price_between_best_and_worst_used(self):
        for target in (0.5, 1, 2.5, 6, 8):
            fill = calculate_execution_price(ASKS, target)
            assert 100 <= fill.weighted_avg_price <= 103
            assert fill.filled_amount >= 0.9 * target

    def test_partial_fill_within_ratio_is_priced(self):
        # 8 visible, 8.5 requested: 94% filled
        fill = calculate_execution_price(ASKS, 8.5)
        assert fill is not None
        assert fill.filled_amount == 8

    def test_insufficient_depth_returns_none(self):
        # 8 visible is below 90% of 10
        assert calculate_execution_price(ASKS, 10) is None

    def test_custom_fill_ratio(self):
        assert calculate_execution_price(ASKS, 10, min_fill_ratio=0.5) is not None

    def test_empty_levels(self):
        assert calculate_execution_price((), 1) is None

    @pytest.mark.parametrize("target", [0, -1])
    def test_non_positive_target(self, target):
        assert calculate_execution_price(ASKS, target) is None
