from datetime import date
from decimal import Decimal

from atelier.models.invoice import Invoice
from atelier.models.invoice_item import InvoiceItem
from atelier.services.invoice_service import build_year_month_index, month_bounds


def test_pending_queue_only_shows_own_unvalidated_invoices(client, auth_headers, make_invoice):
    make_invoice(number="1", validated=False)
    make_invoice(number="2", validated=True)
    make_invoice(number="3", validated=False, user_id="user-2")

    pending = client.get("/api/invoices/pending", headers=auth_headers).json()

    assert [inv["invoice_number"] for inv in pending] == ["1"]


def test_validate_moves_invoice_to_archive(client, auth_headers, make_invoice):
    invoice = make_invoice(number="55", validated=False, delivery_date=date(2025, 2, 14))

    response = client.post(f"/api/invoices/{invoice.id}/validate", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["is_validated"] is True
    assert client.get("/api/invoices/pending", headers=auth_headers).json() == []
    listed = client.get("/api/invoices", params={"year": 2025, "month": 2}, headers=auth_headers).json()
    assert [inv["id"] for inv in listed] == [invoice.id]


def test_archive_index_groups_validated_months(client, auth_headers, make_invoice):
    make_invoice(delivery_date=date(2025, 3, 1))
    make_invoice(delivery_date=date(2025, 3, 28))
    make_invoice(delivery_date=date(2025, 11, 5))
    make_invoice(delivery_date=date(2024, 7, 19))
    make_invoice(delivery_date=date(2023, 1, 2), validated=False)
    make_invoice(delivery_date=date(2022, 6, 6), user_id="user-2")

    index = client.get("/api/invoices/archive", headers=auth_headers).json()

    assert index == [
        {"year": 2025, "months": [11, 3]},
        {"year": 2024, "months": [7]},
    ]


def test_build_year_month_index_skips_missing_dates():
    assert build_year_month_index([date(2024, 1, 3), None, date(2024, 1, 9)]) == [{"year": 2024, "months": [1]}]


def test_month_bounds():
    assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_bounds(2025, 12) == (date(2025, 12, 1), date(2025, 12, 31))


def test_month_listing_filters_by_delivery_month_and_number(client, auth_headers, make_invoice):
    make_invoice(number="1234", delivery_date=date(2025, 3, 2))
    make_invoice(number="5120", delivery_date=date(2025, 3, 20))
    make_invoice(number="999", delivery_date=date(2025, 3, 15))
    make_invoice(number="1200", delivery_date=date(2025, 4, 1))

    everything = client.get("/api/invoices", params={"year": 2025, "month": 3}, headers=auth_headers).json()
    searched = client.get(
        "/api/invoices", params={"year": 2025, "month": 3, "search": "12"}, headers=auth_headers
    ).json()

    assert [inv["invoice_number"] for inv in everything] == ["5120", "999", "1234"]
    assert [inv["invoice_number"] for inv in searched] == ["5120", "1234"]


def test_month_listing_rejects_invalid_month(client, auth_headers):
    response = client.get("/api/invoices", params={"year": 2025, "month": 13}, headers=auth_headers)
    assert response.status_code == 422


def test_edit_session_replaces_items_and_recomputes_total(client, db, auth_headers, make_invoice):
    invoice = make_invoice(items=(("Bainha", "10.00"), ("Fecho", "8.00"), ("Remendo", "4.00")))
    keep_id, drop_id, third_id = (item.id for item in invoice.invoice_items)
    changes = {
        "invoice_number": "2002",
        "invoice_date": "2025-03-08",
        "delivery_date": "2025-03-12",
        "contact_name": "Rui",
        "phone_number": "",
        "items": [
            {"id": keep_id, "description": "Bainha dupla", "value": "12.00"},
            {"id": third_id, "description": "Remendo", "value": "4.00"},
            {"description": "Encurtar mangas", "value": "9.50"},
        ],
    }

    response = client.put(f"/api/invoices/{invoice.id}", json=changes, headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["invoice_number"] == "2002"
    assert body["delivery_date"] == "2025-03-12"
    assert body["phone_number"] is None
    assert Decimal(body["total_value"]) == Decimal("25.50")
    assert [i["description"] for i in body["invoice_items"]] == ["Bainha dupla", "Remendo", "Encurtar mangas"]
    assert db.query(InvoiceItem).filter(InvoiceItem.id == drop_id).first() is None


def test_edit_session_needs_at_least_one_item(client, auth_headers, make_invoice):
    invoice = make_invoice()
    changes = {
        "invoice_number": "1",
        "invoice_date": "2025-03-08",
        "delivery_date": "2025-03-08",
        "items": [],
    }

    response = client.put(f"/api/invoices/{invoice.id}", json=changes, headers=auth_headers)

    assert response.status_code == 400


def test_edit_session_rejects_items_of_another_invoice(client, auth_headers, make_invoice):
    invoice = make_invoice(number="1")
    other = make_invoice(number="2")
    changes = {
        "invoice_number": "1",
        "invoice_date": "2025-03-08",
        "delivery_date": "2025-03-08",
        "items": [{"id": other.invoice_items[0].id, "description": "x", "value": "1"}],
    }

    response = client.put(f"/api/invoices/{invoice.id}", json=changes, headers=auth_headers)

    assert response.status_code == 400


def test_add_and_remove_single_items(client, auth_headers, make_invoice):
    invoice = make_invoice(items=(("Bainha", "10.00"),))

    added = client.post(
        f"/api/invoices/{invoice.id}/items",
        json={"description": "Fecho", "value": "6.00"},
        headers=auth_headers,
    )
    assert added.status_code == 201
    assert Decimal(added.json()["total_value"]) == Decimal("16.00")

    first_item_id = added.json()["invoice_items"][0]["id"]
    removed = client.delete(f"/api/invoices/{invoice.id}/items/{first_item_id}", headers=auth_headers)
    assert removed.status_code == 200
    assert Decimal(removed.json()["total_value"]) == Decimal("6.00")

    last_item_id = removed.json()["invoice_items"][0]["id"]
    refused = client.delete(f"/api/invoices/{invoice.id}/items/{last_item_id}", headers=auth_headers)
    assert refused.status_code == 400

    missing = client.delete(f"/api/invoices/{invoice.id}/items/99999", headers=auth_headers)
    assert missing.status_code == 404


def test_delete_invoice_removes_its_items(client, db, auth_headers, make_invoice):
    invoice = make_invoice(items=(("Bainha", "10.00"), ("Fecho", "5.00")))
    invoice_id = invoice.id

    response = client.delete(f"/api/invoices/{invoice_id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"message": "Nota fiscal excluída", "invoice_id": invoice_id}
    assert db.query(Invoice).count() == 0
    assert db.query(InvoiceItem).count() == 0
    assert client.get(f"/api/invoices/{invoice_id}", headers=auth_headers).status_code == 404


def test_other_users_invoices_are_invisible(client, auth_headers, other_auth_headers, make_invoice):
    invoice = make_invoice(user_id="user-1")
    changes = {
        "invoice_number": "x",
        "invoice_date": "2025-03-08",
        "delivery_date": "2025-03-08",
        "items": [{"description": "x", "value": "1"}],
    }

    assert client.get(f"/api/invoices/{invoice.id}", headers=other_auth_headers).status_code == 404
    assert client.put(f"/api/invoices/{invoice.id}", json=changes, headers=other_auth_headers).status_code == 404
    assert client.post(f"/api/invoices/{invoice.id}/validate", headers=other_auth_headers).status_code == 404
    assert client.delete(f"/api/invoices/{invoice.id}", headers=other_auth_headers).status_code == 404
    assert client.get(f"/api/invoices/{invoice.id}", headers=auth_headers).status_code == 200


def test_edit_session_rounds_item_values_before_totalling(client, auth_headers, make_invoice):
    invoice = make_invoice(items=(("Bainha", "10.00"),))
    changes = {
        "invoice_number": "1",
        "invoice_date": "2025-03-08",
        "delivery_date": "2025-03-08",
        "items": [
            {"description": "Botão", "value": "1.005"},
            {"description": "Botão", "value": "1.005"},
        ],
    }

    body = client.put(f"/api/invoices/{invoice.id}", json=changes, headers=auth_headers).json()

    values = [Decimal(i["value"]) for i in body["invoice_items"]]
    assert values == [Decimal("1.01"), Decimal("1.01")]
    assert Decimal(body["total_value"]) == sum(values)

    added = client.post(
        f"/api/invoices/{invoice.id}/items",
        json={"description": "Linha", "value": "0.125"},
        headers=auth_headers,
    ).json()
    assert Decimal(added["total_value"]) == Decimal("2.15")


def test_edit_session_requires_invoice_number(client, auth_headers, make_invoice):
    invoice = make_invoice(number="1001")

    for number in ("", "   "):
        changes = {
            "invoice_number": number,
            "invoice_date": "2025-03-08",
            "delivery_date": "2025-03-08",
            "items": [{"description": "Bainha", "value": "10.00"}],
        }
        response = client.put(f"/api/invoices/{invoice.id}", json=changes, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Por favor, preencha todos os campos obrigatórios"

    assert client.get(f"/api/invoices/{invoice.id}", headers=auth_headers).json()["invoice_number"] == "1001"
