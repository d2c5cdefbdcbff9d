"""
Property-based tests for the ledger/stock invariant.

Hypothesis generates arbitrary sequences of reserve/release operations
(including invalid quantities, double releases and releases by the wrong
actor) against a fresh product and checks after every sequence that

    available_quantity >= 0
    available_quantity + sum(non-reversed quantities) == initial_quantity
"""

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from stock_kernel.exceptions import StockKernelError

_SETTINGS = settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)

reserve_op = st.tuples(
    st.just("reserve"),
    st.integers(min_value=0, max_value=3),  # importer index
    st.integers(min_value=-2, max_value=12),  # quantity, invalid values included
)
release_op = st.tuples(
    st.just("release"),
    st.integers(min_value=0, max_value=3),  # releasing actor index
    st.integers(min_value=0, max_value=20),  # which held record
)


class TestLedgerInvariantProperties:

    @pytest.fixture
    def actors(self, make_importers):
        return make_importers(4)

    @given(
        initial=st.integers(min_value=0, max_value=25),
        ops=st.lists(st.one_of(reserve_op, release_op), max_size=15),
    )
    @_SETTINGS
    def test_invariant_holds_after_any_sequence(
        self, reservation_engine, make_product, actors, stock_position, initial, ops
    ):
        product = make_product(quantity=initial)
        held = []  # (import_id, owner index)
        expected_available = initial

        for kind, actor_index, arg in ops:
            actor = actors[actor_index]
            if kind == "reserve":
                try:
                    result = reservation_engine.reserve(product.id, arg, actor.id)
                except StockKernelError:
                    continue
                held.append((result.import_id, actor_index))
                expected_available -= arg
                assert result.remaining_stock == expected_available
            elif held:
                import_id, owner_index = held[arg % len(held)]
                try:
                    released = reservation_engine.release(import_id, actor.id)
                except StockKernelError:
                    continue
                assert owner_index == actor_index
                expected_available += released.quantity

        position = stock_position(product.id)
        assert position.available_quantity >= 0
        assert position.available_quantity == expected_available
        assert position.is_balanced

    @given(quantities=st.lists(st.integers(min_value=1, max_value=5), min_size=1, max_size=8))
    @_SETTINGS
    def test_replayed_key_never_decrements_twice(
        self, reservation_engine, make_product, actors, stock_position, quantities
    ):
        product = make_product(quantity=sum(quantities))
        actor = actors[0]

        for i, q in enumerate(quantities):
            key = f"{product.id}-{i}"
            first = reservation_engine.reserve(product.id, q, actor.id, idempotency_key=key)
            again = reservation_engine.reserve(product.id, q, actor.id, idempotency_key=key)
            assert again.replayed is True
            assert again.import_id == first.import_id

        position = stock_position(product.id)
        assert position.available_quantity == 0
        assert position.is_balanced
