"""
Unit tests for the funnel counters.

Usage:
    pytest tests/test_counters.py -v
"""

from unittest.mock import MagicMock

import pytest

from shopsignal.data.data_models import FunnelEvent, ProductAnalytics
from shopsignal.storage.memory import MemoryAnalyticsStore
from shopsignal.tracking.counters import AnalyticsCounter, deltas_for

from tests.factories import make_event


class TestDeltas:
    """One funnel event touches exactly one counter."""

    @pytest.mark.parametrize("funnel_event,field", [
        (FunnelEvent.IMPRESSION, "impressions"),
        (FunnelEvent.CLICK, "clicks"),
        (FunnelEvent.ADD_TO_CART, "add_to_cart_count"),
        (FunnelEvent.CHECKOUT_INTENT, "checkout_intents"),
    ])
    def test_unit_counters(self, funnel_event, field):
        assert deltas_for(funnel_event) == {field: 1}

    def test_time_on_page_also_counts_a_view(self):
        assert deltas_for(FunnelEvent.TIME_ON_PAGE, 30) == {"total_time_on_page": 30.0, "view_count": 1}

    def test_scroll_depth_accumulates_value(self):
        assert deltas_for(FunnelEvent.SCROLL_DEPTH, 55) == {"total_scroll_depth": 55.0}

    @pytest.mark.parametrize("value", [None, 0, "", "abc"])
    def test_empty_value_is_noop(self, value):
        assert deltas_for(FunnelEvent.TIME_ON_PAGE, value) == {}
        assert deltas_for(FunnelEvent.SCROLL_DEPTH, value) == {}


class TestAnalyticsCounter:
    """Increments through an AnalyticsStore."""

    def setup_method(self):
        self.store = MemoryAnalyticsStore()
        self.counter = AnalyticsCounter(self.store)

    def test_row_created_on_first_increment(self):
        row = self.counter.record("prod-1", FunnelEvent.IMPRESSION)

        assert row.impressions == 1
        assert self.store.get_analytics("prod-1").impressions == 1

    def test_counter_equals_sum_of_deltas(self):
        """After N increments the counter is the sum of the N deltas."""
        for seconds in (10, 20, 5):
            self.counter.record("prod-1", FunnelEvent.TIME_ON_PAGE, seconds)
        for _ in range(4):
            self.counter.record("prod-1", FunnelEvent.CLICK)

        row = self.store.get_analytics("prod-1")

        assert row.total_time_on_page == 35
        assert row.view_count == 3
        assert row.clicks == 4
        assert row.impressions == 0

    def test_noop_does_not_touch_store(self):
        store = MagicMock()
        counter = AnalyticsCounter(store)

        assert counter.record("prod-1", FunnelEvent.SCROLL_DEPTH, 0) is None
        store.increment.assert_not_called()

    def test_interest_time_converted_to_seconds(self):
        """12500 ms -> 13 s (half up)."""
        row = self.counter.record_interest_event(make_event("time_on_page", 12500))

        assert row.total_time_on_page == 13
        assert row.view_count == 1

    def test_interest_events_without_funnel_mapping(self):
        assert self.counter.record_interest_event(make_event("hover", 3000)) is None
        assert self.store.get_analytics("prod-1") is None

    def test_unknown_counter_rejected(self):
        with pytest.raises(KeyError):
            ProductAnalytics(product_id="prod-1").apply({"refunds": 1})
