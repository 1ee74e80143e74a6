# Overview: Threaded races against a file-backed SQLite database.

"""
Concurrency tests for the order and inventory locks.

Each worker thread opens its own app context (and so its own DB session),
the way concurrent requests would.
"""
import os
import tempfile
import threading
import unittest
from datetime import date

from concessions import create_app
from concessions.errors import InsufficientStockError, SessionStateError
from concessions.extensions import db
from concessions.models import InventoryLot, LotConsumption, Order
from concessions.money import Denominations
from concessions.services import catalog_service, inventory_service, order_service, session_service


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            program = catalog_service.create_program("Concurrency Club")
            session_service.set_main_cashbox(Denominations(bills_20=10))
            session = session_service.create_session("Rush Hour", program.id)
            session_service.start_session(session.id, Denominations(bills_20=1))
            self.session_id = session.id

            soda = catalog_service.create_menu_item(name="Soda", price_cents=150)
            self.soda_id = soda.id
            inventory_service.receive(self.soda_id, 2, 50, True, date(2024, 1, 1))
            inventory_service.receive(self.soda_id, 1, 60, True, date(2024, 1, 2))

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run(self, workers):
        threads = [threading.Thread(target=w) for w in workers]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    def _order_worker(self, quantity, results, lock):
        def worker():
            with self.app.app_context():
                try:
                    order, _ = order_service.place_order(
                        self.session_id,
                        [{"menu_item_id": self.soda_id, "quantity": quantity}],
                        "cashapp",
                    )
                    with lock:
                        results.append(order.id)
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()
        return worker

    def test_last_unit_is_sold_once(self):
        results = []
        lock = threading.Lock()

        self._run([self._order_worker(1, results, lock) for _ in range(8)])

        placed = [r for r in results if isinstance(r, int)]
        failures = [r for r in results if not isinstance(r, int)]
        self.assertEqual(len(placed), 3)
        self.assertEqual(len(failures), 5)
        self.assertTrue(all(isinstance(f, InsufficientStockError) for f in failures))

        with self.app.app_context():
            self.assertEqual(inventory_service.get_quantity_on_hand(self.soda_id), 0)
            lots = db.session.query(InventoryLot).all()
            self.assertTrue(all(lot.quantity_remaining == 0 for lot in lots))
            self.assertEqual(sum(c.quantity for c in db.session.query(LotConsumption).all()), 3)
            cogs = sorted(o.cogs_cents for o in db.session.query(Order).all())
            self.assertEqual(cogs, [50, 50, 60])

    def test_competing_orders_cannot_oversell(self):
        results = []
        lock = threading.Lock()

        self._run([self._order_worker(2, results, lock) for _ in range(2)])

        placed = [r for r in results if isinstance(r, int)]
        self.assertEqual(len(placed), 1)

        with self.app.app_context():
            self.assertEqual(inventory_service.get_quantity_on_hand(self.soda_id), 1)
            self.assertEqual(db.session.query(Order).count(), 1)

    def test_orders_racing_close(self):
        results = []
        lock = threading.Lock()

        def close_worker():
            with self.app.app_context():
                try:
                    session_service.close_session(self.session_id, Denominations(bills_20=1))
                    with lock:
                        results.append("closed")
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        workers = [self._order_worker(1, results, lock) for _ in range(3)]
        workers.insert(1, close_worker)
        self._run(workers)

        self.assertIn("closed", results)
        failures = [r for r in results if isinstance(r, Exception)]
        self.assertTrue(all(isinstance(f, SessionStateError) for f in failures))

        with self.app.app_context():
            session = session_service.get_session(self.session_id)
            self.assertEqual(session.status, "closed")
            self.assertEqual(db.session.query(Order).count(), session.order_count)


if __name__ == "__main__":
    unittest.main(verbosity=2)
