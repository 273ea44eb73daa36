"""
Property-based tests with Hypothesis for the order, stock and client rules.
"""

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from rest_api.services.domain.order_service import validate_transition
from rest_api.services.domain.report_service import percentage_change
from rest_api.services.domain.stock_service import StockService
from shared.config.constants import ORDER_TRANSITIONS, MovementType, OrderStatus
from shared.utils.exceptions import InsufficientStockError, InvalidTransitionError
from ws_gateway.client.reconnect import NotificationBuffers, ReconnectPolicy
from ws_gateway.retry import RetryConfig, calculate_delay_with_jitter

HAPPY_PATH = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.DELIVERED,
]


class TestOrderTransitionProperties:

    @given(steps=st.lists(st.sampled_from(OrderStatus.ALL), max_size=12))
    @settings(max_examples=100)
    def test_accepted_walks_follow_the_lifecycle(self, steps):
        """Property: any accepted walk is a prefix of the happy path, optionally ending in CANCELLED."""
        current = OrderStatus.PENDING
        visited = [current]
        for target in steps:
            try:
                validate_transition(current, target)
            except InvalidTransitionError:
                continue
            current = target
            visited.append(current)

        if visited[-1] == OrderStatus.CANCELLED:
            assert visited[-2] in (OrderStatus.PENDING, OrderStatus.CONFIRMED)
            visited = visited[:-1]
        assert visited == HAPPY_PATH[: len(visited)]

    @pytest.mark.parametrize(
        "status", [OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.DELIVERED]
    )
    def test_late_cancellation_is_rejected(self, status):
        with pytest.raises(InvalidTransitionError):
            validate_transition(status, OrderStatus.CANCELLED)

    @given(
        from_status=st.sampled_from(OrderStatus.ALL),
        to_status=st.sampled_from(OrderStatus.ALL),
    )
    def test_validation_matches_transition_table(self, from_status, to_status):
        allowed = to_status in ORDER_TRANSITIONS[from_status]
        try:
            validate_transition(from_status, to_status)
            accepted = True
        except InvalidTransitionError:
            accepted = False
        assert accepted == allowed


class TestStockProperties:

    @given(
        movements=st.lists(
            st.tuples(st.sampled_from(MovementType.ALL), st.integers(min_value=0, max_value=20)),
            min_size=1,
            max_size=15,
        )
    )
    @settings(
        max_examples=30,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    def test_stock_never_goes_negative(self, movements, db_session, seed_ingredient):
        """Property: accepted movements keep stock >= 0, rejected ones change nothing."""
        service = StockService(db_session)

        for movement_type, quantity in movements:
            before = seed_ingredient.current_stock
            try:
                service.apply_movement(seed_ingredient.id, movement_type, quantity)
            except InsufficientStockError:
                assert movement_type in MovementType.DECREASING
                assert quantity > before
                assert seed_ingredient.current_stock == before
                continue
            assert seed_ingredient.current_stock >= 0

        db_session.rollback()


class TestClientProperties:

    @given(
        attempt=st.integers(min_value=0, max_value=40),
        base=st.floats(min_value=0.1, max_value=5.0),
        cap=st.floats(min_value=5.0, max_value=60.0),
    )
    def test_backoff_is_monotonic_and_capped(self, attempt, base, cap):
        policy = ReconnectPolicy(base_delay=base, max_delay=cap)
        assert policy.delay(attempt) <= cap
        assert policy.delay(attempt) <= policy.delay(attempt + 1)

    @given(attempt=st.integers(min_value=0, max_value=30))
    def test_jittered_delay_stays_in_range(self, attempt):
        config = RetryConfig(initial_delay=1.0, max_delay=30.0, jitter_factor=0.25)
        capped = min(2.0 ** attempt, 30.0)
        delay = calculate_delay_with_jitter(attempt, config)
        assert capped * 0.75 - 1e-9 <= delay <= capped * 1.25 + 1e-9

    @given(
        events=st.lists(
            st.sampled_from(["new-order", "order-ready", "table-status-changed", "emergency"]),
            max_size=80,
        ),
        capacity=st.integers(min_value=1, max_value=10),
    )
    def test_buffers_keep_only_the_latest(self, events, capacity):
        buffers = NotificationBuffers(capacity=capacity)
        for index, event in enumerate(events):
            buffers.push(event, {"n": index})

        for category in NotificationBuffers.CATEGORIES:
            expected = [
                index for index, event in enumerate(events)
                if NotificationBuffers.categorize(event) == category
            ][-capacity:]
            assert [item["payload"]["n"] for item in buffers.recent(category)] == expected


@given(
    old=st.integers(min_value=0, max_value=10_000),
    new=st.integers(min_value=0, max_value=10_000),
)
def test_percentage_change_sign(old, new):
    change = percentage_change(old, new)
    if old == 0:
        assert change == (100.0 if new > 0 else 0.0)
    elif new > old:
        assert change > 0
    elif new < old:
        assert change < 0
    else:
        assert change == 0
