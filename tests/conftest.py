import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from mechanic_booking import accounts, catalog, directory, models, schemas
from mechanic_booking.database import Base, get_db, make_engine
from mechanic_booking.main import app
from mechanic_booking.policy import Principal
from mechanic_booking.utils import create_jwt


@pytest.fixture(autouse=True)
def secret_key(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.delenv("JWT_AUDIENCE", raising=False)


@pytest.fixture
def engine(tmp_path):
    # File-backed so separate sessions really are separate connections
    engine = make_engine(f"sqlite:///{tmp_path / 'bookings.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def services(db):
    catalog.seed_services(db)
    return {service.name: service for service in db.query(models.Service).all()}


@pytest.fixture
def make_profile(db):
    def _make(role="customer", full_name="Test User"):
        principal = Principal(uuid.uuid4())
        accounts.create_profile(
            db,
            principal,
            schemas.ProfileCreate(email=f"{principal.id.hex[:8]}@example.com", full_name=full_name, role=role),
        )
        return principal

    return _make


@pytest.fixture
def make_mechanic(db, make_profile):
    def _make(business_name="Ace Mobile Repairs", **fields):
        principal = make_profile(role="mechanic", full_name=business_name)
        mechanic = directory.register_mechanic(
            db, principal, schemas.MechanicCreate(business_name=business_name, **fields)
        )
        return principal, mechanic

    return _make


@pytest.fixture
def customer(make_profile):
    return make_profile()


@pytest.fixture
def booking_request(services):
    def _make(**overrides):
        data = {
            "service_id": services["Oil Change"].id,
            "vehicle_make": "Toyota",
            "vehicle_model": "Corolla",
            "vehicle_year": 2018,
            "location_address": "12 Main Street",
        }
        data.update(overrides)
        return schemas.BookingCreate(**data)

    return _make


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_header():
    def _header(principal):
        token = create_jwt({"sub": str(principal.id), "role": "authenticated"})
        return {"Authorization": f"Bearer {token}"}

    return _header
