# ecopeta/db/session.py
from __future__ import annotations

from sqlmodel import Session, SQLModel, create_engine, select

from ecopeta.core.config import get_settings
from ecopeta.core.security import hash_password
from ecopeta.db.models import (
    Location,
    LocationStatus,
    LocationType,
    User,
    UserRole,
    WasteCategory,
)

# ---------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------

_settings = get_settings()
DATABASE_URL = _settings.DATABASE_URL

_connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # FastAPI runs sync endpoints in a threadpool
    _connect_args = {"check_same_thread": False}

engine = create_engine(
    DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    connect_args=_connect_args,
)


def get_engine():
    """Return the shared SQLModel engine instance."""
    return engine


# ---------------------------------------------------------------------
# Demo data
# ---------------------------------------------------------------------
DEMO_CATEGORIES = [
    ("Plastik", "Botol, gelas dan kemasan plastik", 10),
    ("Kertas", "Kertas, kardus dan koran", 8),
    ("Logam", "Kaleng aluminium dan besi", 20),
    ("Kaca", "Botol dan pecahan kaca", 5),
    ("Elektronik", "Limbah elektronik kecil", 30),
]


def seed_demo_data(session: Session) -> None:
    """
    Insert demo categories, one user per role and one approved location.

    Caller is responsible for committing.
    """
    for name, description, rate in DEMO_CATEGORIES:
        session.add(
            WasteCategory(name=name, description=description, points_per_kg=rate)
        )

    admin = User(
        name="Admin",
        email="admin@ecopeta.local",
        password_hash=hash_password("admin123"),
        role=UserRole.admin,
    )
    mitra = User(
        name="Bank Sampah Demo",
        email="mitra@ecopeta.local",
        password_hash=hash_password("mitra123"),
        role=UserRole.mitra,
    )
    household = User(
        name="Warga Demo",
        email="warga@ecopeta.local",
        password_hash=hash_password("warga123"),
        role=UserRole.public,
    )
    session.add(admin)
    session.add(mitra)
    session.add(household)
    session.flush()  # get IDs

    session.add(
        Location(
            owner_id=mitra.id,
            name="Bank Sampah Demo",
            type=LocationType.bank_sampah,
            status=LocationStatus.approved,
            street="Jl. Demo No. 1",
            city="Bandung",
            province="Jawa Barat",
            latitude=-6.9175,
            longitude=107.6191,
            pickup_service=True,
        )
    )


# ---------------------------------------------------------------------
# Schema initialization (non-destructive + idempotent seed)
# ---------------------------------------------------------------------
def init_db() -> None:
    """
    Create all tables if they don't exist and seed demo data only once.

    - Non-destructive: existing tables are not dropped.
    - Idempotent: demo data is inserted only when there are no categories yet.
    """
    # Import models so that SQLModel sees all table definitions
    from ecopeta.db import models  # noqa: F401

    SQLModel.metadata.create_all(engine)

    if not _settings.SEED_DEMO_DATA:
        return

    with Session(engine) as session:
        existing = session.exec(select(WasteCategory.id).limit(1)).first()
        if existing is not None:
            # Already initialized → skip seeding to avoid duplicates
            return

        seed_demo_data(session)
        session.commit()
