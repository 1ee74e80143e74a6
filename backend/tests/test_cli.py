from concessions.models import CashAppAccount, MainCashbox, Program
from concessions.services import inventory_service


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init", "--program", "Band"])
    assert result.exit_code == 0, result.output
    assert "DONE Initialization complete" in result.output
    assert db_session.get(MainCashbox, 1) is not None
    assert db_session.get(CashAppAccount, 1).balance_cents == 0

    result = runner.invoke(args=["system", "init"])
    assert "Programs already exist" in result.output
    assert Program.query.count() == 1


def test_program_commands(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["programs", "create", "--name", "Chess"])
    assert "PASS Created program: Chess" in result.output
    program_id = Program.query.filter_by(name="Chess").one().id

    result = runner.invoke(args=["programs", "deposit", str(program_id), "2500"])
    assert "balance $25.00" in result.output

    result = runner.invoke(args=["programs", "create", "--name", "Chess"])
    assert result.exit_code == 1
    assert "FAIL" in result.output


def test_inventory_stock_and_count(app, db_session, soda):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["inventory", "stock", str(soda.id), "12", "--cost", "40"])
    assert result.exit_code == 0, result.output
    assert inventory_service.get_quantity_on_hand(soda.id) == 12

    result = runner.invoke(args=["inventory", "count", str(soda.id), "10"])
    assert "delta -2" in result.output
    assert "Recorded loss" in result.output


def test_cashbox_command(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["sessions", "cashbox", "--set", "--quarters", "4", "--bills-5", "2"])
    assert "PASS Main cashbox updated" in result.output
    assert "$11.00" in result.output
