"""
Shared pytest fixtures: in-memory SQLite, fake transports, session tokens
and a FastAPI TestClient.
"""
from datetime import datetime

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kmwf.config import settings
from kmwf.database import Base, get_db, init_db
from kmwf import models  # noqa: F401  register models
from kmwf.main import app
from kmwf.models import DonationModel
from kmwf.services.transports import Transports, TransportError, get_transports

PAYMENT_SECRET = "test_key_secret"

# StaticPool ensures all connections share the same in-memory database
_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_Session = sessionmaker(autocommit=False, autoflush=False, bind=_ENGINE)


class FakeChannel:
    """Records sends; raises TransportError when ``fail`` is set."""

    def __init__(self, name, fail=False):
        self.name = name
        self.fail = fail
        self.sent = []

    def send(self, to, *args):
        if self.fail:
            raise TransportError(f"{self.name} is down")
        self.sent.append((to,) + args)
        return f"{self.name}-{len(self.sent)}"

    def close(self):
        pass


@pytest.fixture(autouse=True)
def _reset_tables():
    init_db(_ENGINE)
    yield
    Base.metadata.drop_all(bind=_ENGINE)


@pytest.fixture(autouse=True)
def _payment_secret(monkeypatch):
    monkeypatch.setattr(settings, "RAZORPAY_KEY_SECRET", PAYMENT_SECRET)


@pytest.fixture()
def db():
    session = _Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def transports():
    return Transports(
        email=FakeChannel("email"),
        sms=FakeChannel("sms"),
        whatsapp=FakeChannel("whatsapp"),
    )


@pytest.fixture()
def client(db, transports):
    def _override():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _override
    app.dependency_overrides[get_transports] = lambda: transports
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def make_token(user_id="user_1", name="Test User", roles=("user",), key="public_metadata"):
    claims = {"sub": user_id, "name": name, key: {"roles": list(roles)}}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


@pytest.fixture()
def auth():
    """``auth("admin")`` -> Authorization header for a user holding those roles."""

    def _header(*roles, user_id="user_1", name="Test User"):
        return {"Authorization": f"Bearer {make_token(user_id, name, roles or ('user',))}"}

    return _header


@pytest.fixture()
def make_donation(db):
    def _make(**overrides):
        values = dict(
            id="d0nat10n0000000000000001",
            donor_name="Ayesha Khan",
            donor_email="ayesha@example.com",
            donor_phone="+91 98765 43210",
            amount=5000,
            currency="INR",
            program_name="Education Support",
            status="completed",
            wants_80g_receipt=True,
            donor_pan="ABCDE1234F",
            donor_address="12 Mohammed Ali Road",
            donor_city="Mumbai",
            donor_state="Maharashtra",
            donor_pincode="400003",
            created_at=datetime(2024, 7, 15, 10, 30),
        )
        values.update(overrides)
        row = DonationModel(**values)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    return _make
