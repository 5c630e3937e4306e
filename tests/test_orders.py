def _order(client, headers, materials=None, **overrides):
    payload = {
        "customer_name": "Al-Noor School",
        "print_type": "booklet",
        "copies": 50,
        "paper_type": "A4",
        "cost": 250000,
    }
    payload.update(overrides)
    if materials is not None:
        payload["materials"] = materials
    return client.post("/api/orders", json=payload, headers=headers)


def test_create_order_defaults_to_pending(client, employee_headers):
    response = _order(client, employee_headers)
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["status"] == "pending"
    assert body["materials"] == []


def test_order_consumes_materials(client, employee_headers, make_material):
    paper = make_material(name="A4 Paper", quantity=10)

    response = _order(client, employee_headers, materials=[{"material_id": paper["id"], "quantity": 4}])
    assert response.status_code == 201
    order = response.json()
    assert order["materials"] == [{"material_id": paper["id"], "quantity": 4}]

    stock = client.get(f"/api/materials/{paper['barcode']}", headers=employee_headers).json()
    assert stock["quantity"] == 6

    movements = client.get("/api/inventory-movements", params={"material_id": paper["id"]}, headers=employee_headers).json()
    assert len(movements) == 1
    assert movements[0]["type"] == "out"
    assert movements[0]["order_id"] == order["id"]


def test_short_material_rejects_whole_order(client, employee_headers, make_material):
    paper = make_material(name="A4 Paper", quantity=10)
    ink = make_material(name="Black Ink", quantity=2, type="ink")

    response = _order(
        client, employee_headers,
        materials=[
            {"material_id": paper["id"], "quantity": 5},
            {"material_id": ink["id"], "quantity": 3},
        ],
    )
    assert response.status_code == 400
    assert "Insufficient stock" in response.json()["detail"]

    assert client.get("/api/orders", headers=employee_headers).json() == []
    assert client.get(f"/api/materials/{paper['barcode']}", headers=employee_headers).json()["quantity"] == 10
    assert client.get(f"/api/materials/{ink['barcode']}", headers=employee_headers).json()["quantity"] == 2
    assert client.get("/api/inventory-movements", headers=employee_headers).json() == []


def test_order_with_unknown_material(client, employee_headers):
    response = _order(client, employee_headers, materials=[{"material_id": 404, "quantity": 1}])
    assert response.status_code == 404
    assert client.get("/api/orders", headers=employee_headers).json() == []


def test_any_status_may_follow_any_other(client, employee_headers):
    order = _order(client, employee_headers).json()
    for status in ("completed", "pending", "cancelled", "in_progress"):
        response = client.patch(f"/api/orders/{order['id']}/status", json={"status": status}, headers=employee_headers)
        assert response.status_code == 200
        assert response.json()["status"] == status


def test_unknown_status_is_rejected(client, employee_headers):
    order = _order(client, employee_headers).json()
    response = client.patch(f"/api/orders/{order['id']}/status", json={"status": "shipped"}, headers=employee_headers)
    assert response.status_code == 422


def test_list_filters_by_status(client, employee_headers):
    first = _order(client, employee_headers).json()
    _order(client, employee_headers, customer_name="Walk-in")
    client.patch(f"/api/orders/{first['id']}/status", json={"status": "completed"}, headers=employee_headers)

    completed = client.get("/api/orders", params={"status": "completed"}, headers=employee_headers).json()
    assert [o["id"] for o in completed] == [first["id"]]


def test_update_order_fields(client, employee_headers):
    order = _order(client, employee_headers).json()
    response = client.patch(f"/api/orders/{order['id']}", json={"copies": 75, "cost": 300000}, headers=employee_headers)
    assert response.status_code == 200
    assert response.json()["copies"] == 75
    assert response.json()["cost"] == 300000


def test_only_admin_deletes_orders(client, admin_headers, employee_headers):
    order = _order(client, employee_headers).json()
    assert client.delete(f"/api/orders/{order['id']}", headers=employee_headers).status_code == 403
    assert client.delete(f"/api/orders/{order['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/orders/{order['id']}", headers=admin_headers).status_code == 404
