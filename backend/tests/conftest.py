"""Shared fixtures for the B.O.P stack test suite.

Every test gets a fresh in-memory SQLite database. The `catalog` fixture
loads a small flange catalog whose rows are referenced by name in tests:

    A  13-5/8 5M   8 x 1-1/8   annular 5000
    B  13-5/8 5M  12 x 1-1/8   annular 5000
    C  11 5M      12 x 1-7/8   annular 5000, single ram 5000   (wrench PSI mismatch)
    D  13-5/8 10M 20 x 1-7/8   all four pressure parts at 10000
    E  21-1/4 2M  24 x 1-5/8   annular 2000, mud cross 0 (not offered)
    F  7-1/16 3M   8 x 1-1/8   no pressure parts (geometry only)
"""

import os

# Must be set before bop_stack.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bop_stack.config import settings
from bop_stack.db.database import enable_sqlite_foreign_keys, get_db, init_db
from bop_stack.models import FlangeSpec, WrenchSetting


CATALOG_ROWS = {
    "A": dict(nominal_bore="13-5/8", pressure_class_label="5M", pressure_class_psi=5000, bolt_count=8,
              size_of_bolts="1-1/8", wrench_no=4, truck_unit_psi=5600, ring_needed="BX-160",
              flange_size_raw="13-5/8 5M", annular_pressure=5000),
    "B": dict(nominal_bore="13-5/8", pressure_class_label="5M", pressure_class_psi=5000, bolt_count=12,
              size_of_bolts="1-1/8", wrench_no=4, truck_unit_psi=5600, ring_needed="BX-160",
              flange_size_raw="13-5/8 5M", annular_pressure=5000),
    "C": dict(nominal_bore="11", pressure_class_label="5M", pressure_class_psi=5000, bolt_count=12,
              size_of_bolts="1-7/8", wrench_no=5, truck_unit_psi=6800, ring_needed="R-54",
              flange_size_raw="11 5M", annular_pressure=5000, single_ram_pressure=5000),
    "D": dict(nominal_bore="13-5/8", pressure_class_label="10M", pressure_class_psi=10000, bolt_count=20,
              size_of_bolts="1-7/8", wrench_no=5, truck_unit_psi=7000, ring_needed="BX-159",
              flange_size_raw="13-5/8 10M", annular_pressure=10000, single_ram_pressure=10000,
              double_rams_pressure=10000, mud_cross_pressure=10000),
    "E": dict(nominal_bore="21-1/4", pressure_class_label="2M", pressure_class_psi=2000, bolt_count=24,
              size_of_bolts="1-5/8", wrench_no=3, truck_unit_psi=4500, ring_needed="R-73",
              flange_size_raw="21-1/4 2M", annular_pressure=2000, mud_cross_pressure=0),
    "F": dict(nominal_bore="7-1/16", pressure_class_label="3M", pressure_class_psi=3000, bolt_count=8,
              size_of_bolts="1-1/8", wrench_no=0, truck_unit_psi=0, ring_needed="R-45",
              flange_size_raw="7-1/16 3M"),
}

WRENCH_ROWS = [
    dict(wrench_no=3, stud_diameter="1-3/8", truck_unit_psi=4500),
    dict(wrench_no=4, stud_diameter="1-5/8", truck_unit_psi=5600),
    dict(wrench_no=5, stud_diameter="1-7/8", truck_unit_psi=7000),
]


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test, foreign keys enforced."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    init_db(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog(db):
    """The A-F flange catalog plus the Size Scale wrench table."""
    specs = {name: FlangeSpec(**fields) for name, fields in CATALOG_ROWS.items()}
    db.add_all(specs.values())
    db.add_all(WrenchSetting(**fields) for fields in WRENCH_ROWS)
    db.commit()
    return specs


@pytest.fixture
def reports_dir(tmp_path, monkeypatch):
    path = tmp_path / "reports"
    monkeypatch.setattr(settings, "REPORTS_DIR", str(path))
    return path


# =============================================================================
# API FIXTURES
# =============================================================================

@pytest.fixture
def client(session_factory, reports_dir):
    """FastAPI test client bound to the test database."""
    from bop_stack.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
