import json


def _save(client, headers, book_title="Arabic Grammar", **overrides):
    payload = {
        "book_title": book_title,
        "page_count": 100,
        "copies": 2,
        "paper_size": "16/24",
        "paper_type": "normal",
    }
    payload.update(overrides)
    return client.post("/api/calculations", json=payload, headers=headers)


def test_admin_saves_quote(client, admin_headers, users):
    response = _save(client, admin_headers, book_title="  Arabic Grammar ")
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["book_title"] == "Arabic Grammar"
    assert body["total_price"] == 1470.0
    assert body["paper_size"] == "16/24"
    assert body["page_count"] == 100
    assert body["copy_count"] == 2
    assert body["user_id"] == users["admin"].id

    details = json.loads(body["details"])
    assert details["paper_cost"] == "1170.00"
    assert details["cover_cost"] == "300.00"
    assert details["paper_type"] == "normal"


def test_saved_quote_applies_discount(client, admin_headers):
    body = _save(client, admin_headers, discount_type="percent", discount_value=10).json()
    assert body["total_price"] == 1323.0
    assert json.loads(body["details"])["discount_amount"] == "147.00"


def test_only_admin_saves(client, supervisor_headers, employee_headers):
    assert _save(client, supervisor_headers).status_code == 403
    assert _save(client, employee_headers).status_code == 403
    assert client.get("/api/calculations", headers=employee_headers).json() == []


def test_blank_title_is_rejected(client, admin_headers):
    response = _save(client, admin_headers, book_title="   ")
    assert response.status_code == 400
    assert "title" in response.json()["detail"]


def test_zero_total_is_rejected(client, admin_headers):
    assert _save(client, admin_headers, page_count=0).status_code == 400
    assert _save(client, admin_headers, discount_type="percent", discount_value=100).status_code == 400
    assert client.get("/api/calculations", headers=admin_headers).json() == []


def test_unknown_paper_size_is_rejected(client, admin_headers):
    assert _save(client, admin_headers, paper_size="B5").status_code == 400


def test_list_is_searchable_by_title(client, admin_headers, employee_headers):
    _save(client, admin_headers, book_title="Arabic Grammar")
    _save(client, admin_headers, book_title="Physics Workbook")

    everything = client.get("/api/calculations", headers=employee_headers).json()
    assert [c["book_title"] for c in everything] == ["Physics Workbook", "Arabic Grammar"]

    found = client.get("/api/calculations", params={"search": "grammar"}, headers=employee_headers).json()
    assert [c["book_title"] for c in found] == ["Arabic Grammar"]


def test_only_admin_deletes(client, admin_headers, employee_headers):
    saved = _save(client, admin_headers).json()

    assert client.delete(f"/api/calculations/{saved['id']}", headers=employee_headers).status_code == 403
    assert client.delete(f"/api/calculations/{saved['id']}", headers=admin_headers).status_code == 200
    assert client.get("/api/calculations", headers=admin_headers).json() == []
    assert client.delete(f"/api/calculations/{saved['id']}", headers=admin_headers).status_code == 404


def test_save_and_delete_are_logged(client, admin_headers):
    saved = _save(client, admin_headers).json()
    client.delete(f"/api/calculations/{saved['id']}", headers=admin_headers)

    logs = client.get("/api/activity-logs", params={"entity_type": "calculation"}, headers=admin_headers).json()
    assert [entry["action"] for entry in logs] == ["delete", "create"]
    assert all(entry["entity_id"] == saved["id"] for entry in logs)
