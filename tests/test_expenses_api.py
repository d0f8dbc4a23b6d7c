from datetime import datetime

from clubdues.data.repositories import expense_repository


def _create(client, headers, files=None, **fields):
    data = {"type": "Court rental", "amount": "150", "date": "2024-03-10", "note": "March"}
    data.update(fields)
    return client.post("/api/expenses", data=data, files=files, headers=headers)


def test_admin_creates_expense(client, admin_headers):
    resp = _create(client, admin_headers)

    assert resp.status_code == 201
    body = resp.json()
    assert body["type"] == "Court rental"
    assert body["amount"] == 150.0
    assert body["date"].startswith("2024-03-10")
    assert body["note"] == "March"
    assert body["proof_url"] is None


def test_create_expense_with_proof(client, admin_headers, storage):
    files = {"proof": ("invoice.pdf", b"%PDF-1.4 invoice", "application/pdf")}

    resp = _create(client, admin_headers, files=files)

    proof_url = resp.json()["proof_url"]
    assert proof_url.startswith("/uploads/expenses/")
    assert storage.path_for(proof_url).exists()


def test_create_expense_validation(client, db, admin_headers):
    assert _create(client, admin_headers, type="  ").json() == {"message": "type is required"}
    assert _create(client, admin_headers, amount="0").json() == {"message": "amount must be a positive number"}
    assert _create(client, admin_headers, amount="abc").status_code == 400
    assert _create(client, admin_headers, date="not a date").json() == {"message": "date must be a valid date"}
    files = {"proof": ("run.sh", b"echo", "text/x-shellscript")}
    assert _create(client, admin_headers, files=files).json() == {"message": "Only images or PDF are allowed"}
    assert expense_repository.list_latest_expenses(db) == []


def test_member_cannot_create_expense(client, member_headers):
    assert _create(client, member_headers).status_code == 403


def test_latest_is_ordered_by_date_and_capped(client, db, member_headers):
    for day in range(1, 26):
        expense_repository.add_expense(db, type=f"E{day}", amount=10.0, date=datetime(2024, 1, day))

    resp = client.get("/api/expenses/latest", headers=member_headers)

    body = resp.json()
    assert len(body) == 20
    assert body[0]["type"] == "E25"
    assert body[-1]["type"] == "E6"


def test_expense_total(client, db, member_headers):
    expense_repository.add_expense(db, type="A", amount=10.5, date=datetime(2024, 1, 1))
    expense_repository.add_expense(db, type="B", amount=4.5, date=datetime(2024, 1, 2))

    resp = client.get("/api/expenses/total", headers=member_headers)

    assert resp.json() == {"total": 15.0, "count": 2}


def test_expense_total_when_empty(client, member_headers):
    assert client.get("/api/expenses/total", headers=member_headers).json() == {"total": 0.0, "count": 0}


def test_update_expense(client, admin_headers):
    expense_id = _create(client, admin_headers).json()["id"]

    resp = client.patch(
        f"/api/expenses/{expense_id}",
        json={"amount": 175, "date": "2024-04-01T10:00:00+02:00", "note": None},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["amount"] == 175.0
    assert body["date"].startswith("2024-04-01T08:00:00")
    assert body["note"] is None
    assert body["type"] == "Court rental"


def test_update_expense_rejects_empty_type_and_bad_amount(client, admin_headers):
    expense_id = _create(client, admin_headers).json()["id"]

    assert client.patch(f"/api/expenses/{expense_id}", json={"type": ""}, headers=admin_headers).status_code == 400
    assert client.patch(f"/api/expenses/{expense_id}", json={"amount": -3}, headers=admin_headers).status_code == 400


def test_update_missing_expense(client, admin_headers):
    resp = client.patch("/api/expenses/77", json={"note": "x"}, headers=admin_headers)

    assert resp.status_code == 404
    assert resp.json() == {"message": "Expense not found"}


def test_delete_expense(client, db, admin_headers):
    expense_id = _create(client, admin_headers).json()["id"]

    assert client.delete(f"/api/expenses/{expense_id}", headers=admin_headers).status_code == 204
    assert expense_repository.get_expense(db, expense_id) is None
    assert client.delete(f"/api/expenses/{expense_id}", headers=admin_headers).status_code == 404
