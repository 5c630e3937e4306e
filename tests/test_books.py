import os

import pytest

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.mark.parametrize("ready, printing, status", [
    (30, 20, "ready"),
    (0, 20, "printing"),
    (0, 0, "unavailable"),
])
def test_status_is_derived_on_create(make_book, ready, printing, status):
    response = make_book(total=100, ready=ready, printing=printing)
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["status"] == status
    assert body["barcode"].startswith("BOOK")


def test_ready_above_total_is_rejected(client, admin_headers, make_book):
    response = make_book(total=100, ready=101)
    assert response.status_code == 400
    assert "Ready quantity (101) cannot exceed total quantity (100)" in response.json()["detail"]
    assert client.get("/api/books", headers=admin_headers).json() == []


def test_quantity_update_rederives_status(client, employee_headers, make_book):
    book = make_book(total=100, ready=30, printing=20).json()

    response = client.patch(
        f"/api/books/{book['id']}/quantities",
        json={"total_quantity": 100, "ready_quantity": 0, "printing_quantity": 40},
        headers=employee_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "printing"


def test_rejected_quantity_update_leaves_book_unchanged(client, employee_headers, make_book):
    book = make_book(total=100, ready=30, printing=20).json()

    response = client.patch(
        f"/api/books/{book['id']}/quantities",
        json={"total_quantity": 100, "ready_quantity": 60, "printing_quantity": 50},
        headers=employee_headers,
    )
    assert response.status_code == 400
    assert "cannot exceed total quantity" in response.json()["detail"]

    stored = client.get(f"/api/books/{book['id']}", headers=employee_headers).json()
    assert stored["total_quantity"] == 100
    assert stored["ready_quantity"] == 30
    assert stored["printing_quantity"] == 20
    assert stored["status"] == "ready"


def test_negative_quantity_update_is_rejected(client, employee_headers, make_book):
    book = make_book(total=10).json()
    response = client.patch(
        f"/api/books/{book['id']}/quantities",
        json={"total_quantity": 10, "ready_quantity": -1, "printing_quantity": 0},
        headers=employee_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Quantities cannot be negative"


def test_partial_update_merges_quantities(client, admin_headers, make_book):
    book = make_book(total=50, ready=10, printing=0).json()

    too_many = client.patch(f"/api/books/{book['id']}", json={"printing_quantity": 45}, headers=admin_headers)
    assert too_many.status_code == 400

    ok = client.patch(f"/api/books/{book['id']}", json={"title": "Revised", "ready_quantity": 0, "printing_quantity": 5}, headers=admin_headers)
    assert ok.status_code == 200
    assert ok.json()["title"] == "Revised"
    assert ok.json()["status"] == "printing"


def test_isbn_is_normalized_and_unique(make_book):
    first = make_book(isbn="978-0-306 40615-7")
    assert first.status_code == 201
    assert first.json()["isbn"] == "9780306406157"

    duplicate = make_book(isbn="9780306406157", title="Another")
    assert duplicate.status_code == 400
    assert "already exists" in duplicate.json()["detail"]


def test_invalid_isbn_fails_validation(make_book):
    assert make_book(isbn="12345").status_code == 422


def test_unit_cost_is_exposed(make_book):
    book = make_book(
        page_count=200,
        paper_price_per_sheet=5,
        ink_cartridge_price=3500,
        pages_per_cartridge=1000,
        additional_costs=100,
    ).json()
    assert book["unit_cost"] == 1800.0


def test_lookup_by_barcode(client, employee_headers, make_book):
    book = make_book().json()
    response = client.get(f"/api/books/barcode/{book['barcode']}", headers=employee_headers)
    assert response.status_code == 200
    assert response.json()["id"] == book["id"]


def test_list_filters_by_status(client, admin_headers, make_book):
    make_book(isbn="9780306406157", total=10, ready=5)
    make_book(isbn="9781861972712", total=10, printing=5)

    ready = client.get("/api/books", params={"status": "ready"}, headers=admin_headers).json()
    assert [b["isbn"] for b in ready] == ["9780306406157"]


def test_cover_upload(client, employee_headers, make_book):
    book = make_book().json()
    response = client.post(
        f"/api/books/{book['id']}/cover",
        files={"file": ("cover.png", PNG_BYTES, "image/png")},
        headers=employee_headers,
    )
    assert response.status_code == 200, response.text
    cover = response.json()["cover_image"]
    assert cover.endswith(".png")
    assert os.path.exists(os.path.join(os.environ["UPLOAD_DIR"], "covers", cover))


def test_cover_upload_rejects_other_types(client, employee_headers, make_book):
    book = make_book().json()
    response = client.post(
        f"/api/books/{book['id']}/cover",
        files={"file": ("cover.gif", b"GIF89a", "image/gif")},
        headers=employee_headers,
    )
    assert response.status_code == 400


def test_cover_upload_rejects_large_files(client, employee_headers, make_book):
    book = make_book().json()
    response = client.post(
        f"/api/books/{book['id']}/cover",
        files={"file": ("cover.jpg", b"\xff" * (5 * 1024 * 1024 + 1), "image/jpeg")},
        headers=employee_headers,
    )
    assert response.status_code == 400


def test_only_admin_deletes_books(client, admin_headers, supervisor_headers, make_book):
    book = make_book().json()
    assert client.delete(f"/api/books/{book['id']}", headers=supervisor_headers).status_code == 403
    assert client.delete(f"/api/books/{book['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/books/{book['id']}", headers=admin_headers).status_code == 404


def test_isbn_constraint_race_is_a_400(client, admin_headers, make_book, monkeypatch):
    from printshop_core.app.services.book_service import BookService

    assert make_book(isbn="9780306406157").status_code == 201
    monkeypatch.setattr(BookService, "ensure_isbn_free", staticmethod(lambda *args, **kwargs: None))

    response = make_book(isbn="9780306406157", title="Second Copy")
    assert response.status_code == 400
    assert "already exists" in response.json()["detail"]
    assert len(client.get("/api/books", headers=admin_headers).json()) == 1


def _covers_dir():
    return os.path.join(os.environ["UPLOAD_DIR"], "covers")


def test_replacing_cover_removes_previous_file(client, employee_headers, make_book):
    book = make_book().json()
    url = f"/api/books/{book['id']}/cover"

    first = client.post(url, files={"file": ("a.png", PNG_BYTES, "image/png")}, headers=employee_headers).json()
    second = client.post(url, files={"file": ("b.png", PNG_BYTES, "image/png")}, headers=employee_headers).json()

    assert first["cover_image"] != second["cover_image"]
    assert os.listdir(_covers_dir()) == [second["cover_image"]]


def test_failed_cover_save_leaves_no_file(client, employee_headers, make_book, monkeypatch):
    from fastapi.testclient import TestClient
    from printshop_core.app.main import app
    from printshop_core.app.services.book_service import BookService

    book = make_book().json()

    def broken_set_cover(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(BookService, "set_cover", staticmethod(broken_set_cover))
    failing_client = TestClient(app, raise_server_exceptions=False)
    response = failing_client.post(
        f"/api/books/{book['id']}/cover",
        files={"file": ("cover.png", PNG_BYTES, "image/png")},
        headers=employee_headers,
    )
    assert response.status_code == 500
    assert os.listdir(_covers_dir()) == []
    assert client.get(f"/api/books/{book['id']}", headers=employee_headers).json()["cover_image"] is None
