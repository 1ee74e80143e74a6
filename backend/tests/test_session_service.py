import logging

import pytest

from conftest import FLOAT
from concessions.errors import NotFoundError, SessionStateError, ValidationError
from concessions.models import ConcessionSession, InventoryCount, Loss, ReimbursementEntry
from concessions.money import Denominations
from concessions.services import catalog_service, concurrency, inventory_service, session_service


def test_start_draws_float_from_cashbox(active_session):
    assert active_session.status == "active"
    assert active_session.start_total_cents == 5000
    assert active_session.start_denominations == FLOAT

    box = session_service.get_main_cashbox()
    assert (box.quarters, box.bills_1, box.bills_5) == (60, 30, 16)
    assert box.value_cents() == 37500 - 5000


def test_start_rejects_float_cashbox_cannot_cover(db_session, program, funded_cashbox):
    session = session_service.create_session("Big Game", program.id)

    with pytest.raises(ValidationError):
        session_service.start_session(session.id, Denominations(bills_100=1))

    assert session_service.get_session(session.id).status == "created"
    assert session_service.get_main_cashbox() == funded_cashbox


def test_start_twice_is_a_state_error(active_session):
    with pytest.raises(SessionStateError):
        session_service.start_session(active_session.id, FLOAT)


def test_create_session_requires_active_program(db_session, program):
    catalog_service.set_program_active(program.id, False)
    with pytest.raises(ValidationError):
        session_service.create_session("Off Season", program.id)


def test_close_computes_profit_from_counts(active_session, caplog):
    end_counts = Denominations(quarters=40, bills_1=20, bills_5=6)

    with caplog.at_level(logging.WARNING, logger="concessions"):
        result = session_service.close_session(active_session.id, end_counts, closed_by="tester")

    assert result["end_total_cents"] == 6000
    assert result["profit_cents"] == 1000
    recon = result["reconciliation"]
    assert recon["expected_cash_cents"] == 5000
    assert recon["discrepancy_cents"] == 1000
    assert "cash discrepancy" in caplog.text

    session = session_service.get_session(active_session.id)
    assert session.status == "closed"
    assert session.end_denominations == end_counts

    box = session_service.get_main_cashbox()
    assert (box.quarters, box.bills_1, box.bills_5) == (100, 50, 22)


def test_close_without_reimbursable_sales_writes_no_cogs(active_session):
    session_service.close_session(active_session.id, FLOAT)
    assert ReimbursementEntry.query.filter_by(entry_type="cogs_owed").count() == 0


def test_closed_session_is_immutable(active_session):
    session_service.close_session(active_session.id, FLOAT)

    with pytest.raises(SessionStateError):
        session_service.close_session(active_session.id, FLOAT)
    with pytest.raises(SessionStateError):
        session_service.cancel_session(active_session.id)
    with pytest.raises(SessionStateError):
        session_service.close_preview(active_session.id)


def test_cancel_active_returns_float(active_session, funded_cashbox):
    session = session_service.cancel_session(active_session.id)

    assert session.status == "cancelled"
    assert session.cancelled_at is not None
    assert session_service.get_main_cashbox() == funded_cashbox


def test_cancel_created_session(db_session, program):
    session = session_service.create_session("Rained Out", program.id)
    assert session_service.cancel_session(session.id).status == "cancelled"
    with pytest.raises(SessionStateError):
        session_service.start_session(session.id, FLOAT)


def test_practice_session_leaves_cashbox_alone(practice_session):
    assert practice_session.status == "active"
    assert session_service.get_main_cashbox().value_cents() == 0

    result = session_service.close_session(practice_session.id, FLOAT)

    assert result["profit_cents"] == 0
    assert session_service.get_main_cashbox().value_cents() == 0
    assert ReimbursementEntry.query.count() == 0


def test_end_practice_session_deletes_it(practice_session):
    result = session_service.end_practice_session(practice_session.id)

    assert result == {"session_id": practice_session.id, "orders_deleted": 0}
    assert ConcessionSession.query.count() == 0


def test_end_practice_rejects_real_session(active_session):
    with pytest.raises(ValidationError):
        session_service.end_practice_session(active_session.id)


def test_close_preview_does_not_close(active_session):
    preview = session_service.close_preview(active_session.id, Denominations(quarters=40, bills_1=20, bills_5=3))

    assert preview["reconciliation"]["profit_cents"] == -500
    assert preview["reconciliation"]["discrepancy_cents"] == -500
    assert preview["order_count"] == 0
    assert session_service.get_session(active_session.id).status == "active"


def test_list_sessions_filters(active_session, practice_session):
    assert {s.id for s in session_service.list_sessions()} == {active_session.id, practice_session.id}
    assert [s.id for s in session_service.list_sessions(include_test=False)] == [active_session.id]
    assert session_service.list_sessions(status="closed") == []


def test_close_and_cancel_release_session_locks(active_session, program):
    assert active_session.id in concurrency._session_locks
    session_service.close_session(active_session.id, FLOAT)
    assert active_session.id not in concurrency._session_locks

    other = session_service.create_session("Rained Out", program.id)
    session_service.start_session(other.id, FLOAT)
    session_service.cancel_session(other.id)
    assert other.id not in concurrency._session_locks


# =============================================================================
# STOCK CHECKS
# =============================================================================

def test_start_check_books_shortfall_against_session(active_session, soda, chips, stock):
    stock(soda, 10, 40)
    stock(chips, 5, 30)

    result = session_service.check_inventory(
        active_session.id,
        "start",
        [
            {"menu_item_id": soda.id, "actual_quantity": 9},
            {"menu_item_id": chips.id, "actual_quantity": 5},
        ],
        verified_by="Jordan",
    )

    assert result["verified"] is True
    assert result["discrepancy_count"] == 1
    assert result["total_loss_cents"] == 40
    assert result["session"]["inventory_verified_at_start"] is True
    assert result["session"]["start_verified_by"] == "Jordan"

    loss = Loss.query.one()
    assert loss.session_id == active_session.id
    assert loss.amount_cents == 40
    assert inventory_service.get_quantity_on_hand(soda.id) == 9

    counts = InventoryCount.query.order_by(InventoryCount.id).all()
    assert [(c.stage, c.session_id, c.delta) for c in counts] == [
        ("start", active_session.id, -1),
        ("start", active_session.id, 0),
    ]


def test_end_check_records_and_lists(active_session, soda, stock):
    stock(soda, 10, 40)

    session_service.check_inventory(active_session.id, "end", [{"menu_item_id": soda.id, "actual_quantity": 12}])

    checks = session_service.list_checks(active_session.id)
    assert checks["inventory_verified_at_start"] is None
    assert checks["inventory_verified_at_end"] is True
    assert checks["start"] == []
    assert checks["end"][0]["delta"] == 2
    assert inventory_service.get_quantity_on_hand(soda.id) == 12


def test_skipped_check_counts_nothing(active_session, soda, stock):
    stock(soda, 10, 40)

    result = session_service.check_inventory(active_session.id, "start", [], skip=True)

    assert result["verified"] is False
    assert result["results"] == []
    assert session_service.get_session(active_session.id).inventory_verified_at_start is False
    assert InventoryCount.query.count() == 0


def test_check_is_all_or_nothing(active_session, soda, combo, stock):
    stock(soda, 10, 40)

    with pytest.raises(ValidationError):
        session_service.check_inventory(
            active_session.id,
            "start",
            [
                {"menu_item_id": soda.id, "actual_quantity": 7},
                {"menu_item_id": combo.id, "actual_quantity": 1},
            ],
        )

    assert inventory_service.get_quantity_on_hand(soda.id) == 10
    assert InventoryCount.query.count() == 0
    assert Loss.query.count() == 0
    assert session_service.get_session(active_session.id).inventory_verified_at_start is None


def test_check_rejects_duplicates_and_bad_stage(active_session, soda):
    entry = {"menu_item_id": soda.id, "actual_quantity": 1}
    with pytest.raises(ValidationError):
        session_service.check_inventory(active_session.id, "start", [entry, entry])
    with pytest.raises(ValidationError):
        session_service.check_inventory(active_session.id, "middle", [entry])
    with pytest.raises(ValidationError):
        session_service.check_inventory(active_session.id, "start", [])


def test_end_check_needs_active_session(db_session, program):
    session = session_service.create_session("Later", program.id)
    with pytest.raises(SessionStateError):
        session_service.check_inventory(session.id, "end", [], skip=True)
    with pytest.raises(NotFoundError):
        session_service.check_inventory(999, "start", [], skip=True)


def test_practice_session_may_only_skip_checks(practice_session, soda, stock):
    stock(soda, 10, 40)

    with pytest.raises(ValidationError):
        session_service.check_inventory(
            practice_session.id, "start", [{"menu_item_id": soda.id, "actual_quantity": 3}]
        )
    assert inventory_service.get_quantity_on_hand(soda.id) == 10

    result = session_service.check_inventory(practice_session.id, "end", [], skip=True)
    assert result["session"]["inventory_verified_at_end"] is False
