"""Pytest configuration: in-memory database, factories and per-role clients."""

import os
from datetime import date, timedelta

# Must be set before ecopeta.* builds its engine from settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SEED_DEMO_DATA", "0")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from ecopeta.core import deps
from ecopeta.core.security import hash_password
from ecopeta.db import models  # noqa: F401
from ecopeta.db.models import (
    Location,
    LocationStatus,
    LocationType,
    PickupStatus,
    TimeSlot,
    User,
    UserRole,
    WasteCategory,
)
from ecopeta.main import app
from ecopeta.schemas.pickup import (
    ActualWeightItem,
    PickupAddress,
    PickupCreate,
    PickupStatusUpdate,
    WasteItemIn,
)
from ecopeta.services import pickups as pickup_service

# Hashing is slow on purpose; every factory user shares this password
TEST_PASSWORD = "secret123"
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


def tomorrow() -> date:
    return date.today() + timedelta(days=1)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client_for(session):
    """Build a TestClient authenticated as `user` (or anonymous)."""

    def _get_session():
        yield session

    app.dependency_overrides[deps.get_session] = _get_session

    def _client(user=None):
        cookies = {deps.AUTH_COOKIE: str(user.id)} if user is not None else None
        return TestClient(app, cookies=cookies)

    yield _client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    counter = {"n": 0}

    def _make(role=UserRole.public, name=None, email=None, is_active=True):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            name=name or f"{role.value} user {n}",
            email=email or f"{role.value}{n}@example.com",
            password_hash=_PASSWORD_HASH,
            role=role,
            is_active=is_active,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_category(session):
    def _make(name="Plastik", points_per_kg=10, is_active=True):
        category = WasteCategory(name=name, points_per_kg=points_per_kg, is_active=is_active)
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    return _make


@pytest.fixture
def make_location(session):
    def _make(
        owner,
        status=LocationStatus.approved,
        pickup_service=True,
        name="Bank Sampah Melati",
        city="Bandung",
    ):
        location = Location(
            owner_id=owner.id,
            name=name,
            type=LocationType.bank_sampah,
            status=status,
            street="Jl. Melati 5",
            city=city,
            latitude=-6.9,
            longitude=107.6,
            pickup_service=pickup_service,
        )
        session.add(location)
        session.commit()
        session.refresh(location)
        return location

    return _make


@pytest.fixture
def household(make_user):
    return make_user(UserRole.public, name="Siti")


@pytest.fixture
def partner(make_user):
    return make_user(UserRole.mitra, name="Pak Budi")


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.admin, name="Admin")


@pytest.fixture
def location(make_location, partner):
    return make_location(partner)


@pytest.fixture
def plastic(make_category):
    return make_category("Plastik", 10)


@pytest.fixture
def metal(make_category):
    return make_category("Logam", 20)


def build_pickup_payload(location_id, items, scheduled_date=None, time_slot=TimeSlot.morning):
    return PickupCreate(
        location_id=location_id,
        waste_items=[
            WasteItemIn(category_id=category_id, estimated_weight=weight)
            for category_id, weight in items
        ],
        pickup_address=PickupAddress(street="Jl. Mawar 10", city="Bandung"),
        scheduled_date=scheduled_date or tomorrow(),
        time_slot=time_slot,
    )


@pytest.fixture
def create_pickup(session):
    """Create a pickup through the service. `items` is [(category, weight), ...]."""

    def _create(requester, location, items, **kwargs):
        payload = build_pickup_payload(
            location.id, [(c.id, w) for c, w in items], **kwargs
        )
        return pickup_service.create_pickup(session, requester, payload)

    return _create


@pytest.fixture
def advance(session):
    """Walk a pickup through non-completing statuses as `actor`."""

    def _advance(actor, pickup, *statuses):
        for status in statuses:
            pickup = pickup_service.update_status(
                session, actor, pickup.id, PickupStatusUpdate(status=status)
            )
        return pickup

    return _advance


@pytest.fixture
def complete(session):
    def _complete(actor, pickup, weights):
        payload = PickupStatusUpdate(
            status=PickupStatus.completed,
            actual_weight_items=[
                ActualWeightItem(category_id=c.id, actual_weight=w) for c, w in weights
            ],
        )
        return pickup_service.update_status(session, actor, pickup.id, payload)

    return _complete
