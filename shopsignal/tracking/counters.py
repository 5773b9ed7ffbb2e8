"""
Funnel Counters
===============

Incremental updates of ProductAnalytics, the input of the viability score.

Each funnel event touches exactly one counter (plus view_count for time on
page). Counters are never recomputed from history: after N increments a
counter equals the sum of the N deltas.
"""

import logging
from typing import Dict, Optional, Any

from ..data.data_models import (
    FunnelEvent,
    InterestEvent,
    ProductAnalytics,
    coerce_event_value,
    round_half_up,
)
from ..storage.base import AnalyticsStore

logger = logging.getLogger(__name__)


# Interest events that also move the funnel
INTEREST_TO_FUNNEL = {
    "add_to_cart": FunnelEvent.ADD_TO_CART,
    "checkout_intent": FunnelEvent.CHECKOUT_INTENT,
    "time_on_page": FunnelEvent.TIME_ON_PAGE,
    "scroll_depth": FunnelEvent.SCROLL_DEPTH,
}


def deltas_for(funnel_event: FunnelEvent, value: Any = None) -> Dict[str, float]:
    """
    Counter deltas produced by one funnel event.

    time_on_page and scroll_depth accumulate their value and are no-ops
    when the value is missing or zero.
    """
    if funnel_event == FunnelEvent.IMPRESSION:
        return {"impressions": 1}
    if funnel_event == FunnelEvent.CLICK:
        return {"clicks": 1}
    if funnel_event == FunnelEvent.ADD_TO_CART:
        return {"add_to_cart_count": 1}
    if funnel_event == FunnelEvent.CHECKOUT_INTENT:
        return {"checkout_intents": 1}

    amount = coerce_event_value(value)
    if not amount:
        return {}
    if funnel_event == FunnelEvent.TIME_ON_PAGE:
        return {"total_time_on_page": amount, "view_count": 1}
    if funnel_event == FunnelEvent.SCROLL_DEPTH:
        return {"total_scroll_depth": amount}
    return {}


class AnalyticsCounter:
    """Applies funnel events to an AnalyticsStore."""

    def __init__(self, store: AnalyticsStore):
        self.store = store

    def record(
        self,
        product_id: str,
        funnel_event: FunnelEvent,
        value: Any = None,
    ) -> Optional[ProductAnalytics]:
        """
        Increment the counters of a product.

        Returns:
            Updated row, or None when the event carried nothing to add.
        """
        deltas = deltas_for(funnel_event, value)
        if not deltas:
            return None
        row = self.store.increment(product_id, deltas)
        logger.debug(f"Counters updated for {product_id}: {deltas}")
        return row

    def record_interest_event(self, event: InterestEvent) -> Optional[ProductAnalytics]:
        """
        Feed the funnel from an interest event when it maps to one.

        Interest time_on_page is in milliseconds; counters hold seconds.
        """
        funnel_event = INTEREST_TO_FUNNEL.get(event.event_type)
        if funnel_event is None:
            return None
        value = event.value
        if funnel_event == FunnelEvent.TIME_ON_PAGE:
            value = round_half_up(value / 1000)
        return self.record(event.product_id, funnel_event, value)
