"""
API tests through the Flask test client.

Covers the HTTP surface: status codes, error bodies, and one full
purchase -> session -> order -> close -> distribute flow.
"""

FLOAT_COUNTS = {"quarters": 40, "bills_1": 20, "bills_5": 4}
CASHBOX_COUNTS = {"quarters": 100, "bills_1": 50, "bills_5": 20, "bills_10": 10, "bills_20": 5}


def _json(response, status):
    assert response.status_code == status, response.get_data(as_text=True)
    return response.get_json()


def test_health(client, db_session):
    body = _json(client.get("/api/health"), 200)
    assert body["status"] == "ok"
    assert body["checks"]["database"]["status"] == "healthy"


def test_program_create_and_duplicate(client, db_session):
    body = _json(client.post("/api/programs", json={"name": "Band"}), 201)
    assert body["program"]["balance_cents"] == 0

    body = _json(client.post("/api/programs", json={"name": "Band"}), 400)
    assert "already exists" in body["error"]

    body = _json(client.post("/api/programs", json={}), 400)
    assert body["error"] == "name is required"


def test_unknown_ids_return_404(client, db_session):
    body = _json(client.get("/api/menu/999"), 404)
    assert body["details"] == {"menu_item_id": 999}
    _json(client.get("/api/sessions/999"), 404)
    _json(client.get("/api/purchases/999"), 404)


def test_money_must_be_integer_cents(client, db_session, program):
    body = _json(client.post(f"/api/programs/{program.id}/deposit", json={"amount_cents": 12.5}), 400)
    assert "decimal" in body["error"]

    body = _json(client.post(f"/api/programs/{program.id}/deposit", json={"amount_cents": "1e3"}), 400)
    assert "scientific" in body["error"]

    body = _json(client.post(f"/api/programs/{program.id}/deposit", json={"amount_cents": "250"}), 201)
    assert body["balance_cents"] == 250


def test_composite_menu_item_via_api(client, db_session, soda, chips, stock):
    stock(soda, 4, 50)
    stock(chips, 4, 30)
    soda_id, chips_id = soda.id, chips.id

    body = _json(client.post("/api/menu", json={
        "name": "Snack Pack",
        "price_cents": 250,
        "is_composite": True,
        "components": [
            {"component_item_id": soda_id, "quantity": 1},
            {"component_item_id": chips_id, "quantity": 2},
        ],
    }), 201)
    item = body["item"]
    assert item["track_inventory"] is False
    assert item["quantity_on_hand"] == 2

    body = _json(client.get(f"/api/menu/{item['id']}"), 200)
    assert [c["component_item_id"] for c in body["item"]["recipe"]["components"]] == [soda_id, chips_id]

    body = _json(client.put(f"/api/menu/{item['id']}/components", json={
        "components": [{"component_item_id": item["id"], "quantity": 1}],
    }), 400)
    assert "cycle" in body["error"]


def test_purchase_inventory_and_reversal(client, db_session, soda):
    soda_id = soda.id
    body = _json(client.post("/api/purchases", json={
        "vendor": "Costco",
        "purchase_date": "2024-09-03",
        "tax_cents": 60,
        "lines": [
            {"menu_item_id": soda_id, "quantity": 24, "line_total_cents": 1200, "crv_per_unit_cents": 5},
            {"item_name": "Cups", "quantity": 1, "line_total_cents": 400},
        ],
    }), 201)
    purchase_id = body["purchase"]["id"]
    assert len(body["lot_ids"]) == 1
    assert len(body["warnings"]) == 1

    summary = _json(client.get(f"/api/inventory/{soda_id}/summary"), 200)
    assert summary["quantity_on_hand"] == 24
    # 1200 + 45 share over 24 units, half-up, plus CRV
    assert summary["next_unit_cost_cents"] == 57

    body = _json(client.post(f"/api/inventory/{soda_id}/adjust", json={"kind": "wasted", "quantity": -1}), 200)
    assert body["quantity_on_hand"] == 23

    body = _json(client.delete(f"/api/purchases/{purchase_id}"), 409)
    assert body["details"]["purchase_id"] == purchase_id
    assert body["details"]["lots"][0]["quantity_consumed"] == 1


def test_inventory_count_route(client, db_session, soda, stock):
    stock(soda, 10, 30)
    body = _json(client.post("/api/inventory/count", json={
        "counts": [{"menu_item_id": soda.id, "actual_quantity": 9}],
        "counted_by": "Jordan",
    }), 200)
    assert body["results"][0]["delta"] == -1
    assert body["total_loss_cents"] == 30

    losses = _json(client.get("/api/losses"), 200)
    assert losses["count"] == 1


def test_full_session_flow(client, db_session, program, soda, stock):
    stock(soda, 10, 50)
    program_id, soda_id = program.id, soda.id

    _json(client.put("/api/sessions/cashbox", json={"counts": CASHBOX_COUNTS}), 200)

    session = _json(client.post("/api/sessions", json={"name": "Homecoming", "program_id": program_id}), 201)["session"]
    session_id = session["id"]
    assert session["status"] == "created"

    body = _json(client.post(f"/api/sessions/{session_id}/start", json={"counts": FLOAT_COUNTS}), 200)
    assert body["start_total_cents"] == 5000

    order = _json(client.post("/api/orders", json={
        "session_id": session_id,
        "items": [{"menu_item_id": soda_id, "quantity": 4}],
        "payment_method": "cash",
        "amount_tendered_cents": 1000,
    }), 201)
    assert order["change_cents"] == 400
    assert order["order"]["cogs_cents"] == 200

    preview = _json(client.get(f"/api/sessions/{session_id}/close-preview"), 200)
    assert preview["reconciliation"]["expected_cash_cents"] == 5600

    end_counts = dict(FLOAT_COUNTS, bills_5=5, bills_1=21)
    closed = _json(client.post(f"/api/sessions/{session_id}/close", json={"counts": end_counts}), 200)
    assert closed["profit_cents"] == 600
    assert closed["reconciliation"]["discrepancy_cents"] == 0

    dist = _json(client.post(f"/api/sessions/{session_id}/distributions", json={}), 201)
    assert dist["remaining_cents"] == 0

    account = _json(client.get(f"/api/programs/{program_id}"), 200)["program"]
    assert account["balance_cents"] == 600

    report = _json(client.get("/api/reports/reimbursement"), 200)
    assert report["cogs_owed_cents"] == 200
    assert report["remaining_cents"] == 200

    costs = _json(client.get(f"/api/reports/costs?session_id={session_id}"), 200)
    assert costs["reimbursable_cents"] == 200

    body = _json(client.post(f"/api/sessions/{session_id}/close", json={"counts": end_counts}), 409)
    assert body["details"]["status"] == "closed"


def test_order_errors(client, db_session, active_session, soda, stock):
    stock(soda, 1, 50)
    session_id, soda_id = active_session.id, soda.id

    body = _json(client.post("/api/orders", json={
        "session_id": session_id,
        "items": [{"menu_item_id": soda_id, "quantity": 2}],
        "payment_method": "cashapp",
    }), 409)
    assert body["details"]["requested"] == 2
    assert body["details"]["available"] == 1

    _json(client.post("/api/orders", json={
        "session_id": session_id,
        "items": [{"menu_item_id": soda_id, "quantity": 1}],
        "payment_method": "cash",
        "amount_tendered_cents": 200,
        "discount_cents": 500,
    }), 400)

    _json(client.post("/api/orders", json={
        "session_id": session_id,
        "items": [],
        "payment_method": "cash",
    }), 400)

    summary = _json(client.get(f"/api/sessions/{session_id}/summary"), 200)
    assert summary["order_count"] == 0


def test_start_requires_counts(client, db_session, program):
    session_id = _json(client.post("/api/sessions", json={"name": "Meet", "program_id": program.id}), 201)["session"]["id"]
    body = _json(client.post(f"/api/sessions/{session_id}/start", json={}), 400)
    assert body["error"] == "counts is required"

    body = _json(client.post(f"/api/sessions/{session_id}/start", json={"counts": {"quarters": -1}}), 400)
    assert "negative" in body["error"]


def test_cashapp_and_losses_routes(client, db_session):
    body = _json(client.post("/api/cashapp/withdraw", json={"amount_cents": 100}), 400)
    assert body["details"]["balance_cents"] == 0

    loss = _json(client.post("/api/losses", json={"loss_type": "spoilage", "amount_cents": 80}), 201)["loss"]
    settled = _json(client.post(f"/api/losses/{loss['id']}/settle", json={"settle_to": "reimbursement"}), 200)
    assert settled["loss"]["settled_to"] == "reimbursement"

    _json(client.delete(f"/api/losses/{loss['id']}"), 400)
    report = _json(client.get("/api/reports/reimbursement"), 200)
    assert report["loss_offset_cents"] == -80


def test_purchase_edit_route(client, db_session, soda):
    soda_id = soda.id
    body = _json(client.post("/api/purchases", json={
        "purchase_date": "2024-09-03",
        "lines": [{"menu_item_id": soda_id, "quantity": 24, "line_total_cents": 1200}],
    }), 201)
    purchase_id = body["purchase"]["id"]

    body = _json(client.put(f"/api/purchases/{purchase_id}", json={
        "purchase_date": "2024-09-03",
        "tax_cents": 120,
        "lines": [{"menu_item_id": soda_id, "quantity": 12, "line_total_cents": 1200}],
    }), 200)
    assert body["purchase"]["id"] == purchase_id
    assert body["purchase"]["total_cents"] == 1320
    assert body["purchase"]["lines"][0]["unit_cost_cents"] == 110
    assert _json(client.get(f"/api/inventory/{soda_id}/summary"), 200)["quantity_on_hand"] == 12

    _json(client.post(f"/api/inventory/{soda_id}/adjust", json={"kind": "lost", "quantity": -1}), 200)
    body = _json(client.put(f"/api/purchases/{purchase_id}", json={
        "lines": [{"menu_item_id": soda_id, "quantity": 1, "line_total_cents": 100}],
    }), 409)
    assert body["details"]["purchase_id"] == purchase_id


def test_purchase_template_routes(client, db_session, soda):
    soda_id = soda.id
    body = _json(client.post("/api/purchase-templates", json={
        "name": "Weekly",
        "lines": [{"menu_item_id": soda_id, "default_quantity": 24}, {"item_name": "Ice"}],
    }), 201)
    template_id = body["template"]["id"]
    assert body["template"]["item_count"] == 2

    _json(client.post("/api/purchase-templates", json={"name": "Weekly", "lines": [{"item_name": "Ice"}]}), 400)

    lines = _json(client.get(f"/api/purchase-templates/{template_id}/lines"), 200)["lines"]
    assert lines[0] == {"menu_item_id": soda_id, "item_name": "Soda", "quantity": 24}

    body = _json(client.put(f"/api/purchase-templates/{template_id}", json={"name": "Friday"}), 200)
    assert body["template"]["name"] == "Friday"
    assert body["template"]["item_count"] == 2

    assert _json(client.get("/api/purchase-templates"), 200)["count"] == 1
    _json(client.delete(f"/api/purchase-templates/{template_id}"), 200)
    _json(client.get(f"/api/purchase-templates/{template_id}"), 404)


def test_count_history_route(client, db_session, soda, stock):
    stock(soda, 10, 30)
    soda_id = soda.id
    _json(client.post("/api/inventory/count", json={"counts": [{"menu_item_id": soda_id, "actual_quantity": 10}]}), 200)

    body = _json(client.get(f"/api/inventory/counts?menu_item_id={soda_id}"), 200)
    assert body["count"] == 1
    assert body["items"][0]["delta"] == 0
    assert body["items"][0]["stage"] == "adhoc"


def test_practice_session_cannot_adjust_stock_route(client, db_session, practice_session, soda, stock):
    stock(soda, 5, 40)
    soda_id = soda.id

    _json(client.post(f"/api/inventory/{soda_id}/adjust", json={
        "kind": "wasted", "quantity": -2, "session_id": practice_session.id,
    }), 400)
    assert _json(client.get(f"/api/inventory/{soda_id}/summary"), 200)["quantity_on_hand"] == 5


def test_session_inventory_check_routes(client, db_session, active_session, soda, stock):
    stock(soda, 10, 40)
    soda_id = soda.id
    session_id = active_session.id

    body = _json(client.post(f"/api/sessions/{session_id}/inventory-checks/start", json={
        "verified_by": "Jordan",
        "counts": [{"menu_item_id": soda_id, "actual_quantity": 8}],
    }), 200)
    assert body["total_loss_cents"] == 80
    assert body["session"]["inventory_verified_at_start"] is True

    _json(client.post(f"/api/sessions/{session_id}/inventory-checks/end", json={"skip": True}), 200)
    _json(client.post(f"/api/sessions/{session_id}/inventory-checks/middle", json={"skip": True}), 400)
    _json(client.post(f"/api/sessions/{session_id}/inventory-checks/start", json={
        "counts": [{"menu_item_id": soda_id, "actual_quantity": 1.5}],
    }), 400)

    checks = _json(client.get(f"/api/sessions/{session_id}/inventory-checks"), 200)
    assert checks["inventory_verified_at_end"] is False
    assert len(checks["start"]) == 1


def test_report_routes(client, db_session, active_session, soda, stock):
    stock(soda, 10, 50)
    session_id = active_session.id
    _json(client.post("/api/orders", json={
        "session_id": session_id,
        "items": [{"menu_item_id": soda.id, "quantity": 2}],
        "payment_method": "cash",
        "amount_tendered_cents": 300,
    }), 201)
    close_counts = dict(FLOAT_COUNTS, bills_1=23)
    _json(client.post(f"/api/sessions/{session_id}/close", json={"counts": close_counts}), 200)
    _json(client.post(f"/api/sessions/{session_id}/distributions", json={}), 201)

    sessions = _json(client.get("/api/reports/sessions"), 200)
    assert sessions["total_profit_cents"] == 300
    orders = _json(client.get(f"/api/reports/orders?session_id={session_id}"), 200)
    assert orders["order_count"] == 1
    programs = _json(client.get("/api/reports/programs"), 200)
    assert programs["rows"][0]["total_distributed_cents"] == 300
    earnings = _json(client.get("/api/reports/programs/earnings"), 200)
    assert earnings["items"][0]["total_earnings_cents"] == 300
    assert _json(client.get("/api/reports/purchases"), 200)["purchase_count"] == 0
    summary = _json(client.get("/api/reports/summary"), 200)
    assert summary["sessions"]["closed_sessions"] == 1
    _json(client.get("/api/reports/summary?start=2024-02-01&end=2024-01-01"), 400)
