import os
from datetime import datetime
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("RUN_MIGRATIONS", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from boxsocial.database import Base
from boxsocial.models import Member, SessionParticipant, Tenant, WorkoutSession


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'social.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def world(db):
    """Two boxes: ana, bruno, carla and diego train at box A; eva and fabio at box B."""
    db.add_all(
        [
            Tenant(id="tenant-a", slug="box-a", name="Box A", timezone="America/Sao_Paulo"),
            Tenant(id="tenant-b", slug="box-b", name="Box B", timezone="Europe/Lisbon"),
        ]
    )
    db.flush()
    db.add_all(
        [
            Member(id="ana", tenant_id="tenant-a", name="Ana", gender="female", age=29),
            Member(id="bruno", tenant_id="tenant-a", name="Bruno", gender="male", age=34),
            Member(id="carla", tenant_id="tenant-a", name="Carla", gender="female", age=41),
            Member(id="diego", tenant_id="tenant-a", name="Diego", gender="male", age=25),
            Member(id="eva", tenant_id="tenant-b", name="Eva", gender="female", age=31),
            Member(id="fabio", tenant_id="tenant-b", name="Fabio", gender="male", age=38),
        ]
    )
    db.commit()
    return SimpleNamespace(
        tenant_a="tenant-a",
        tenant_b="tenant-b",
        box_a=["ana", "bruno", "carla", "diego"],
        box_b=["eva", "fabio"],
    )


_session_seq = iter(range(1, 1_000_000))


def add_workout(db, tenant_id: str, date_start: datetime, metrics_by_member: dict[str, dict]) -> str:
    """Insert one ledger session with a row per member, as workout ingestion would."""
    session_id = f"ws-{next(_session_seq)}"
    db.add(WorkoutSession(id=session_id, tenant_id=tenant_id, date_start=date_start))
    db.flush()
    for member_id, metrics in metrics_by_member.items():
        db.add(SessionParticipant(session_id=session_id, participant_id=member_id, **metrics))
    db.commit()
    return session_id


@pytest.fixture
def ledger(db):
    def _add(tenant_id: str, date_start: datetime, metrics_by_member: dict[str, dict]) -> str:
        return add_workout(db, tenant_id, date_start, metrics_by_member)

    return _add


@pytest.fixture
def client(session_factory, world):
    pytest.importorskip("fastapi")
    from fastapi.testclient import TestClient

    import boxsocial.main as m
    from boxsocial.deps import get_db
    from boxsocial.services.rate_limit import limiter

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    limiter.reset()
    m.app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(m.app)
    finally:
        m.app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    from boxsocial.auth.security import create_access_token

    def _headers(member_id: str, tenant_id: str = "tenant-a") -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(member_id, tenant_id)}"}

    return _headers
