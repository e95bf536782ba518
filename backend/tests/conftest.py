import os
import json
import tempfile
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

# Settings are read at import time, so the environment goes first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_JWT_SECRET"] = "test-secret"
os.environ["AUTH_JWT_AUDIENCE"] = "authenticated"
os.environ.setdefault("LOCAL_STORAGE_DIR", tempfile.mkdtemp(prefix="atelier-storage-"))

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import atelier.models  # noqa: F401
from atelier.auth import UserSession
from atelier.database import Base, get_db
from atelier.main import app
from atelier.models.invoice import Invoice
from atelier.models.invoice_item import InvoiceItem
from atelier.services.invoice_totals import recompute_total
from atelier.services.ocr_client import OCRClient, get_ocr_client
from atelier.services.storage_service import StorageService, get_storage_service

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
USER_EMAIL = "costura@example.com"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_token(user_id=USER_ID, email=USER_EMAIL, audience="authenticated", secret="test-secret", expires_in=3600):
    claims = {
        "sub": user_id,
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    if audience:
        claims["aud"] = audience
    return jwt.encode(claims, secret, algorithm="HS256")


class FakeOCR:
    """Stands in for the extraction function behind an httpx.MockTransport"""

    def __init__(self):
        self.response = {}
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append({
            "body": json.loads(request.content),
            "authorization": request.headers.get("authorization"),
        })
        if isinstance(self.response, Exception):
            raise self.response
        if isinstance(self.response, httpx.Response):
            return self.response
        return httpx.Response(200, json=self.response)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session():
    return UserSession(user_id=USER_ID, email=USER_EMAIL, access_token="token")


@pytest.fixture
def other_session():
    return UserSession(user_id=OTHER_USER_ID, email="outra@example.com", access_token="token")


@pytest.fixture
def storage(tmp_path):
    return StorageService(local_storage_dir=str(tmp_path / "storage"))


@pytest.fixture
def fake_ocr():
    return FakeOCR()


@pytest.fixture
def ocr(fake_ocr):
    return OCRClient(
        function_url="http://ocr.test/process-invoice",
        timeout=5,
        transport=httpx.MockTransport(fake_ocr.handler),
    )


@pytest.fixture
def client(db, storage, ocr):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: storage
    app.dependency_overrides[get_ocr_client] = lambda: ocr
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {make_token(user_id=OTHER_USER_ID, email='outra@example.com')}"}


@pytest.fixture
def make_invoice(db):
    """Insert an invoice straight into the database"""
    def _make(
        number="1001",
        delivery_date=date(2025, 3, 10),
        items=(("Bainha de calças", "10.00"),),
        user_id=USER_ID,
        validated=True,
        manual=False,
        contact_name=None,
        phone_number=None,
    ):
        invoice = Invoice(
            user_id=user_id,
            invoice_number=number,
            invoice_date=delivery_date,
            delivery_date=delivery_date,
            is_validated=validated,
            is_manual_entry=manual,
            contact_name=contact_name,
            phone_number=phone_number,
        )
        for description, value in items:
            invoice.invoice_items.append(InvoiceItem(description=description, value=Decimal(value)))
        recompute_total(invoice)
        db.add(invoice)
        db.commit()
        db.refresh(invoice)
        return invoice

    return _make


@pytest.fixture
def token_factory():
    return make_token
