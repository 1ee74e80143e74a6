import pytest

from conftest import FLOAT
from concessions.errors import SessionStateError, ValidationError
from concessions.models import Loss, ProgramTransaction, ReimbursementEntry
from concessions.money import Denominations
from concessions.services import (
    cashapp_service,
    catalog_service,
    distribution_service,
    inventory_service,
    loss_service,
    order_service,
    program_ledger_service,
    reimbursement_service,
    session_service,
)

PROFIT_COUNTS = FLOAT + Denominations(bills_5=2)  # $10.00 gain


@pytest.fixture
def closed_session(active_session):
    session_service.close_session(active_session.id, PROFIT_COUNTS)
    return session_service.get_session(active_session.id)


# =============================================================================
# PROFIT DISTRIBUTION
# =============================================================================

def test_distribute_leftover_to_session_program(closed_session, program):
    result = distribution_service.distribute_profit(closed_session.id, distributed_by="treasurer")

    assert result["profit_cents"] == 1000
    assert result["distributed_cents"] == 1000
    assert result["remaining_cents"] == 0
    assert result["warnings"] == []
    assert len(result["created"]) == 1
    assert catalog_service.get_program(program.id).balance_cents == 1000
    assert ProgramTransaction.query.filter_by(program_id=program.id).one().kind == "earning"


def test_split_distribution_reports_remainder(closed_session, program, other_program):
    result = distribution_service.distribute_profit(
        closed_session.id,
        [
            {"program_id": program.id, "amount_cents": 600},
            {"program_id": other_program.id, "amount_cents": 300},
        ],
    )

    assert result["remaining_cents"] == 100
    assert result["warnings"]
    assert catalog_service.get_program(other_program.id).balance_cents == 300

    result = distribution_service.distribute_profit(closed_session.id)
    assert result["remaining_cents"] == 0
    assert catalog_service.get_program(program.id).balance_cents == 700


def test_over_distribution_is_allowed_with_warning(closed_session, program):
    result = distribution_service.distribute_profit(
        closed_session.id, [{"program_id": program.id, "amount_cents": 1500}]
    )
    assert result["remaining_cents"] == -500
    assert "more than the session profit" in result["warnings"][0]


def test_distribute_requires_closed_session(active_session):
    with pytest.raises(SessionStateError):
        distribution_service.distribute_profit(active_session.id)


def test_distribute_rejects_practice_session(practice_session):
    session_service.close_session(practice_session.id, FLOAT)
    with pytest.raises(ValidationError):
        distribution_service.distribute_profit(practice_session.id)


def test_distribute_rejects_inactive_program(closed_session, other_program):
    catalog_service.set_program_active(other_program.id, False)
    with pytest.raises(ValidationError):
        distribution_service.distribute_profit(
            closed_session.id, [{"program_id": other_program.id, "amount_cents": 100}]
        )
    assert distribution_service.get_distribution_status(closed_session.id)["distributed_cents"] == 0


def test_distribute_rejects_bad_allocations(closed_session, program):
    with pytest.raises(ValidationError):
        distribution_service.distribute_profit(closed_session.id, [{"program_id": program.id, "amount_cents": 0}])


# =============================================================================
# PROGRAM ACCOUNTS
# =============================================================================

def test_deposit_and_withdraw(program):
    program_ledger_service.deposit(program.id, 500)
    program_ledger_service.withdraw(program.id, 200, note="Field trip")

    account = program_ledger_service.get_program_account(program.id)
    assert account["balance_cents"] == 300
    assert account["totals_by_kind_cents"]["deposit"] == 500
    assert account["totals_by_kind_cents"]["withdrawal"] == -200
    assert len(account["transactions"]) == 2


def test_withdraw_cannot_overdraw(program):
    program_ledger_service.deposit(program.id, 100)
    with pytest.raises(ValidationError):
        program_ledger_service.withdraw(program.id, 101)
    assert catalog_service.get_program(program.id).balance_cents == 100


def test_amounts_must_be_positive(program):
    with pytest.raises(ValidationError):
        program_ledger_service.deposit(program.id, 0)
    with pytest.raises(ValidationError):
        program_ledger_service.withdraw(program.id, -5)


# =============================================================================
# CASHAPP
# =============================================================================

def test_cashapp_withdrawal_counts_as_reimbursement(active_session, soda, stock):
    stock(soda, 5, 50)
    order_service.place_order(active_session.id, [{"menu_item_id": soda.id, "quantity": 2}], "cashapp")

    cashapp_service.withdraw(200, notes="Paid back Costco run")

    assert cashapp_service.get_balance() == 100
    entry = ReimbursementEntry.query.filter_by(entry_type="cashapp_withdrawal").one()
    assert entry.amount_cents == 200
    assert [tx.kind for tx in cashapp_service.list_transactions()] == ["withdrawal", "sale"]

    with pytest.raises(ValidationError):
        cashapp_service.withdraw(500)
    assert cashapp_service.get_balance() == 100


# =============================================================================
# LOSSES
# =============================================================================

def test_settle_loss_to_program(active_session, program):
    loss = loss_service.record_loss("cash_discrepancy", 250, session_id=active_session.id, recorded_by="tester")

    settled = loss_service.settle_loss(loss.id, f"program:{program.id}", settled_by="treasurer")

    assert settled.is_settled
    assert settled.program_id == program.id
    assert catalog_service.get_program(program.id).balance_cents == -250
    tx = ProgramTransaction.query.filter_by(kind="loss_settlement").one()
    assert tx.amount_cents == -250


def test_settle_loss_to_reimbursement(db_session):
    loss = loss_service.record_loss("spoilage", 40)
    loss_service.settle_loss(loss.id, "reimbursement")

    entry = ReimbursementEntry.query.filter_by(entry_type="loss_offset").one()
    assert entry.amount_cents == -40
    assert entry.reference_id == loss.id


def test_settle_loss_to_asb_has_no_ledger_effect(db_session):
    loss = loss_service.record_loss("other", 75)
    loss_service.settle_loss(loss.id, "asb")

    assert ReimbursementEntry.query.count() == 0
    assert ProgramTransaction.query.count() == 0


def test_settled_loss_is_final(db_session):
    loss = loss_service.record_loss("other", 75)
    loss_service.settle_loss(loss.id, "asb")

    with pytest.raises(ValidationError):
        loss_service.settle_loss(loss.id, "reimbursement")
    with pytest.raises(ValidationError):
        loss_service.delete_loss(loss.id)


def test_loss_validation(db_session):
    with pytest.raises(ValidationError):
        loss_service.record_loss("other", 0)
    with pytest.raises(ValidationError):
        loss_service.record_loss("theft", 100)
    loss = loss_service.record_loss("other", 10)
    with pytest.raises(ValidationError):
        loss_service.settle_loss(loss.id, "program:abc")


def test_delete_unsettled_loss_and_summary(db_session):
    keep = loss_service.record_loss("spoilage", 120)
    drop = loss_service.record_loss("other", 30)
    loss_service.delete_loss(drop.id)

    assert Loss.query.count() == 1
    summary = loss_service.get_loss_summary()
    assert summary["by_type"]["spoilage"] == {"count": 1, "amount_cents": 120}
    assert summary["total_cents"] == 120
    assert summary["unsettled_cents"] == 120
    assert [loss.id for loss in loss_service.list_losses(settled=False)] == [keep.id]


# =============================================================================
# REIMBURSEMENT
# =============================================================================

def test_reimbursement_summary(active_session, soda, stock):
    stock(soda, 10, 50)
    order_service.place_order(
        active_session.id, [{"menu_item_id": soda.id, "quantity": 3}], "cash", amount_tendered_cents=450
    )
    session_service.close_session(active_session.id, FLOAT + Denominations(bills_1=4, quarters=2))

    loss = loss_service.record_loss("spoilage", 40)
    loss_service.settle_loss(loss.id, "reimbursement")
    reimbursement_service.record_cashbox_reimbursement(60, notes="Cash from main box")

    summary = reimbursement_service.get_reimbursement_summary()
    assert summary["cogs_owed_cents"] == 150
    assert summary["loss_offset_cents"] == -40
    assert summary["total_owed_cents"] == 110
    assert summary["total_received_cents"] == 60
    assert summary["remaining_cents"] == 50


def test_cost_breakdown_splits_reimbursable(active_session, soda, chips, stock):
    stock(soda, 2, 50)
    stock(chips, 5, 30, reimbursable=False)
    order_service.place_order(
        active_session.id,
        [{"menu_item_id": soda.id, "quantity": 2}, {"menu_item_id": chips.id, "quantity": 1}],
        "cashapp",
    )
    inventory_service.adjust(chips.id, "wasted", -2, "Bag torn")

    sales = reimbursement_service.get_cost_breakdown(session_id=active_session.id)
    assert sales["total_cost_cents"] == 130
    assert sales["reimbursable_cents"] == 100
    assert sales["non_reimbursable_cents"] == 30

    wasted = reimbursement_service.get_cost_breakdown(kind="wasted")
    assert wasted["total_cost_cents"] == 60
    assert wasted["by_item"][0]["menu_item_name"] == "Chips"

    everything = reimbursement_service.get_cost_breakdown()
    assert set(everything["by_kind"]) == {"sale", "wasted"}
