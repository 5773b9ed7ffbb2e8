"""Builders shared by the test modules. Time is pinned through NOW."""

from datetime import datetime, timedelta, timezone

from shopsignal.data.data_models import InterestEvent, ProductAnalytics

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_event(
    event_type: str,
    value=0,
    product_id: str = "prod-1",
    session_id: str = "s1",
    age_days: float = 0,
    metadata=None,
    now: datetime = NOW,
) -> InterestEvent:
    """Event created `age_days` before `now` (NOW by default)."""
    return InterestEvent(
        session_id=session_id,
        product_id=product_id,
        event_type=event_type,
        event_value=value,
        metadata=metadata or {},
        created_at=now - timedelta(days=age_days),
    )


def make_analytics(product_id: str = "prod-1", **counters) -> ProductAnalytics:
    return ProductAnalytics(product_id=product_id, **counters)
