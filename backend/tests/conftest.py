"""
Pytest fixtures for concessions backend tests.

Provides test database setup, catalog and session fixtures, and test client.
"""

from datetime import date

import pytest

from concessions import create_app
from concessions.extensions import db
from concessions.money import Denominations
from concessions.services import catalog_service, inventory_service, session_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def program(db_session):
    """Sponsoring program for sessions."""
    return catalog_service.create_program("Robotics Club")


@pytest.fixture(scope='function')
def other_program(db_session):
    return catalog_service.create_program("Drama Club")


@pytest.fixture(scope='function')
def soda(db_session):
    return catalog_service.create_menu_item(name="Soda", price_cents=150)


@pytest.fixture(scope='function')
def chips(db_session):
    return catalog_service.create_menu_item(name="Chips", price_cents=100)


@pytest.fixture(scope='function')
def water_refill(db_session):
    """Sellable item that keeps no inventory."""
    return catalog_service.create_menu_item(name="Water Refill", price_cents=50, track_inventory=False)


@pytest.fixture(scope='function')
def combo(db_session, soda, chips):
    """Composite: 1 soda + 2 chips."""
    return catalog_service.create_menu_item(
        name="Snack Combo",
        price_cents=300,
        is_composite=True,
        components=[
            {"component_item_id": soda.id, "quantity": 1},
            {"component_item_id": chips.id, "quantity": 2},
        ],
    )


@pytest.fixture(scope='function')
def stock(db_session):
    """Helper: receive a reimbursable lot."""
    def _stock(item, quantity, unit_cost_cents, purchase_date=date(2024, 9, 1), reimbursable=True):
        return inventory_service.receive(item.id, quantity, unit_cost_cents, reimbursable, purchase_date)
    return _stock


FLOAT = Denominations(quarters=40, bills_1=20, bills_5=4)  # $50.00


@pytest.fixture(scope='function')
def funded_cashbox(db_session):
    """Main cashbox holding $375.00."""
    counts = Denominations(quarters=100, bills_1=50, bills_5=20, bills_10=10, bills_20=5)
    session_service.set_main_cashbox(counts)
    return counts


@pytest.fixture(scope='function')
def active_session(db_session, program, funded_cashbox):
    """Real session started with a $50.00 float."""
    session = session_service.create_session("Friday Game", program.id, created_by="tester")
    return session_service.start_session(session.id, FLOAT, started_by="tester")


@pytest.fixture(scope='function')
def practice_session(db_session, program):
    session = session_service.create_session("Training", program.id, is_test=True)
    return session_service.start_session(session.id, FLOAT)
