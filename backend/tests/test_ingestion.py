import asyncio
import os
from datetime import date
from decimal import Decimal

import httpx
from sqlalchemy.exc import SQLAlchemyError

from atelier.models.invoice import Invoice
from atelier.services.ingestion_service import (
    FALLBACK_WARNING,
    PARTIAL_WARNING,
    IngestionService,
    UploadedImage,
)
from atelier.services.storage_service import StorageError
from atelier.utils.ocr_normalization import NOT_AVAILABLE, PLACEHOLDER_DESCRIPTION

COMPLETE_EXTRACTION = {
    "invoiceNumber": "4521",
    "invoiceDate": "15/03/2025",
    "totalValue": 45.5,
    "contactName": "Maria Silva",
    "phoneNumber": "912345678",
    "items": [
        {"description": "Bainha de calças", "value": 20},
        {"description": "Troca de fecho", "value": 25.5},
    ],
}


def _upload(client, headers, *names):
    files = [("files", (name, b"fake image bytes", "image/jpeg")) for name in names]
    return client.post("/api/uploads", files=files, headers=headers)


def test_upload_creates_pending_invoice(client, db, auth_headers, fake_ocr, storage):
    fake_ocr.response = COMPLETE_EXTRACTION

    response = _upload(client, auth_headers, "nota.jpg")

    assert response.status_code == 200
    body = response.json()
    assert body["successful"] == 1
    assert body["persisted"] == 1
    assert body["with_warnings"] == 0
    result = body["results"][0]
    assert result["success"] is True
    assert result["persisted"] is True
    assert result["warning"] is None

    invoice = db.query(Invoice).filter(Invoice.id == result["invoice_id"]).one()
    assert invoice.user_id == "user-1"
    assert invoice.invoice_number == "4521"
    assert invoice.invoice_date == date(2025, 3, 15)
    assert invoice.delivery_date == date(2025, 3, 15)
    assert invoice.total_value == Decimal("45.50")
    assert invoice.is_validated is False
    assert invoice.is_manual_entry is False
    assert invoice.original_filename == "nota.jpg"
    assert invoice.contact_name == "Maria Silva"
    assert [item.description for item in invoice.invoice_items] == ["Bainha de calças", "Troca de fecho"]

    # The image is stored under the user's folder and handed to OCR with the caller's token
    storage_path = storage.storage_path_from_url(invoice.image_url)
    assert storage_path.startswith("user-1/")
    assert storage.download_file(storage_path) == b"fake image bytes"
    assert fake_ocr.requests[0]["body"] == {"imageUrl": invoice.image_url}
    assert fake_ocr.requests[0]["authorization"] == auth_headers["Authorization"]


def test_ocr_timeout_still_creates_placeholder_invoice(client, db, auth_headers, fake_ocr):
    fake_ocr.response = httpx.ReadTimeout("timed out")

    response = _upload(client, auth_headers, "nota.png")

    result = response.json()["results"][0]
    assert result["success"] is True
    assert result["persisted"] is True
    assert result["missing_fields"] == ["invoiceNumber", "invoiceDate", "totalValue", "items"]
    assert "número da nota, data, valor total, itens" in result["warning"]

    invoice = db.query(Invoice).one()
    assert invoice.invoice_number == NOT_AVAILABLE
    assert invoice.invoice_date == date.today()
    assert invoice.total_value == Decimal("0")
    assert invoice.is_validated is False
    assert len(invoice.invoice_items) == 1
    assert invoice.invoice_items[0].description == PLACEHOLDER_DESCRIPTION
    assert invoice.invoice_items[0].value == Decimal("0")


def test_ocr_error_status_is_treated_as_empty_extraction(client, db, auth_headers, fake_ocr):
    fake_ocr.response = httpx.Response(500, json={"error": "boom"})

    response = _upload(client, auth_headers, "nota.jpg")

    assert response.json()["results"][0]["persisted"] is True
    assert db.query(Invoice).one().invoice_number == NOT_AVAILABLE


def test_missing_items_get_placeholder_with_total(client, db, auth_headers, fake_ocr):
    fake_ocr.response = {"invoiceNumber": "77", "invoiceDate": "01/04/2025", "totalValue": "18,00"}

    result = _upload(client, auth_headers, "nota.jpg").json()["results"][0]

    assert result["missing_fields"] == ["items"]
    assert result["warning"] == "Não foi possível ler: itens. Revise na aba de validação."
    invoice = db.query(Invoice).one()
    assert invoice.total_value == Decimal("18.00")
    assert [(i.description, i.value) for i in invoice.invoice_items] == [(PLACEHOLDER_DESCRIPTION, Decimal("18.00"))]


def test_batch_upload_processes_every_file(client, db, auth_headers, fake_ocr):
    fake_ocr.response = COMPLETE_EXTRACTION

    body = _upload(client, auth_headers, "a.jpg", "b.jpeg", "c.webp").json()

    assert body["successful"] == 3
    assert body["persisted"] == 3
    assert sorted(r["file_name"] for r in body["results"]) == ["a.jpg", "b.jpeg", "c.webp"]
    assert db.query(Invoice).count() == 3
    assert len(client.get("/api/invoices/pending", headers=auth_headers).json()) == 3


def test_unsupported_file_type_is_rejected(client, db, auth_headers):
    response = _upload(client, auth_headers, "nota.pdf")

    assert response.status_code == 400
    assert db.query(Invoice).count() == 0


def test_upload_requires_authentication(client):
    response = client.post("/api/uploads", files=[("files", ("nota.jpg", b"x", "image/jpeg"))])
    assert response.status_code == 401


class BrokenStorage:
    def upload_user_file(self, content, filename, user_id, randomize=True):
        raise StorageError("disk full")

    def get_public_url(self, storage_path):
        return f"/api/storage/{storage_path}"


def test_storage_failure_falls_back_to_default_row(db, session, ocr):
    service = IngestionService(BrokenStorage(), ocr)

    results = asyncio.run(service.ingest([UploadedImage("nota.jpg", b"x")], db, session, today=date(2025, 5, 1)))

    assert results[0].success is True
    assert results[0].persisted is True
    assert results[0].warning == FALLBACK_WARNING
    invoice = db.query(Invoice).one()
    assert invoice.invoice_number == NOT_AVAILABLE
    assert invoice.invoice_date == date(2025, 5, 1)
    assert invoice.image_url is None
    assert invoice.invoice_items[0].description == PLACEHOLDER_DESCRIPTION


def test_database_failure_is_reported_as_not_persisted(db, session, storage, ocr, fake_ocr, monkeypatch):
    fake_ocr.response = COMPLETE_EXTRACTION

    def failing_commit():
        raise SQLAlchemyError("database is down")

    monkeypatch.setattr(db, "commit", failing_commit)
    service = IngestionService(storage, ocr)

    results = asyncio.run(service.ingest([UploadedImage("nota.jpg", b"x")], db, session))

    assert results[0].success is True
    assert results[0].persisted is False
    assert results[0].invoice_id is None
    assert results[0].warning == PARTIAL_WARNING


def test_stored_file_names_never_collide(storage):
    paths = {storage.build_storage_path("user-1", "foto.JPG") for _ in range(50)}

    assert len(paths) == 50
    assert all(p.startswith("user-1/") and p.endswith(".jpg") for p in paths)
    assert os.path.isdir(storage.local_storage_dir)
