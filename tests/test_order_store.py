import pytest
from sqlalchemy import update

from core.exceptions import Conflict, InvalidOperation, NotFound
from models.order import Order, OrderProgress
from services.order_store import apply_transition, conditional_update, load_order


def bump_version(db, order_id):
    """Simulate another writer committing in between our read and write."""
    db.execute(
        update(Order)
        .where(Order.id == order_id)
        .values(version=Order.version + 1)
        .execution_options(synchronize_session=False)
    )
    db.commit()


class TestConditionalUpdate:
    def test_write_bumps_version(self, db_session_override, make_order):
        order = make_order()

        assert conditional_update(db_session_override, order, {"notes": "tanpa sambal"})

        stored = load_order(db_session_override, order.id)
        assert stored.notes == "tanpa sambal"
        assert stored.version == 2

    def test_stale_version_is_refused(self, db_session_override, make_order):
        order = make_order()
        bump_version(db_session_override, order.id)

        assert not conditional_update(db_session_override, order, {"notes": "late"})
        assert load_order(db_session_override, order.id).notes == ""


class TestApplyTransition:
    def test_unknown_order(self, db_session_override):
        with pytest.raises(NotFound):
            apply_transition(db_session_override, "missing", lambda order: {"notes": "x"})

    def test_none_means_no_write(self, db_session_override, make_order):
        order = make_order()

        result = apply_transition(db_session_override, order.id, lambda current: None)

        assert result.version == 1

    def test_refusal_propagates(self, db_session_override, make_order):
        order = make_order()

        def refuse(current):
            raise InvalidOperation("nope")

        with pytest.raises(InvalidOperation):
            apply_transition(db_session_override, order.id, refuse)
        assert load_order(db_session_override, order.id).version == 1

    def test_lost_race_re_reads_and_retries(self, db_session_override, make_order):
        order = make_order()
        seen = []

        def decide(current):
            seen.append(current.version)
            if len(seen) == 1:
                bump_version(db_session_override, current.id)
            return {"status_progress": OrderProgress.CANCELLED}

        result = apply_transition(db_session_override, order.id, decide)

        assert seen == [1, 2]
        assert result.status_progress == OrderProgress.CANCELLED
        assert result.version == 3

    def test_guard_rechecked_after_lost_race(self, db_session_override, make_order):
        order = make_order()
        calls = []

        def decide(current):
            calls.append(current.status_progress)
            if current.status_progress != OrderProgress.AWAITING_SELLER_APPROVAL:
                raise Conflict("moved on")
            # Another writer approves the order before our write lands
            db_session_override.execute(
                update(Order)
                .where(Order.id == current.id)
                .values(status_progress=OrderProgress.PROCESSING, version=Order.version + 1)
                .execution_options(synchronize_session=False)
            )
            db_session_override.commit()
            return {"status_progress": OrderProgress.CANCELLED}

        with pytest.raises(Conflict):
            apply_transition(db_session_override, order.id, decide)

        assert calls == [OrderProgress.AWAITING_SELLER_APPROVAL, OrderProgress.PROCESSING]
        assert load_order(db_session_override, order.id).status_progress == OrderProgress.PROCESSING

    def test_gives_up_after_retries(self, db_session_override, make_order):
        order = make_order()
        calls = []

        def always_raced(current):
            calls.append(current.version)
            bump_version(db_session_override, current.id)
            return {"notes": "never lands"}

        with pytest.raises(Conflict):
            apply_transition(db_session_override, order.id, always_raced)

        assert len(calls) == 3
        assert load_order(db_session_override, order.id).notes == ""
