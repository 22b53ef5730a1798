import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_fieldwork.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date  # noqa: E402

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.core.security import create_access_token  # noqa: E402
from app.db import models  # noqa: E402,F401
from app.db.base import Base  # noqa: E402
from app.db.models.periods import AccountingPeriod, Client  # noqa: E402
from app.db.session import SessionLocal, engine  # noqa: E402
from main import app  # noqa: E402


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture()
def member_token() -> str:
    return create_access_token("member-1", username="alice", organization_id="default", roles=["ADMIN"])


@pytest.fixture()
def auth_headers(member_token):
    return {"Authorization": f"Bearer {member_token}"}


@pytest.fixture()
def make_client(db):
    def _make(name: str = "Acme Ltd") -> Client:
        row = Client(organization_id="default", name=name)
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture()
def make_period(db):
    def _make(
        client: Client,
        start: date,
        end: date,
        *,
        status: str = "PLANNED",
        is_current: bool = False,
        name: str | None = None,
    ) -> AccountingPeriod:
        row = AccountingPeriod(
            client_id=client.id,
            period_name=name or f"Year ended {end.isoformat()}",
            start_date=start,
            end_date=end,
            status=status,
            is_current=is_current,
        )
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture()
def acme(make_client):
    return make_client()


@pytest.fixture()
def fy2024(acme, make_period):
    return make_period(acme, date(2024, 1, 1), date(2024, 12, 31), status="OPEN", is_current=True)


@pytest.fixture()
def fy2025(acme, make_period):
    return make_period(acme, date(2025, 1, 1), date(2025, 12, 31))


@pytest.fixture()
def pg_sessionmaker():
    """Sessions on a throw-away PostgreSQL schema, for tests that need real row locks."""
    url = os.getenv("FIELDWORK_TEST_PG_URL")
    if not url:
        pytest.skip("FIELDWORK_TEST_PG_URL not set")
    pg_engine = create_engine(url, future=True, pool_size=10)
    Base.metadata.drop_all(bind=pg_engine)
    Base.metadata.create_all(bind=pg_engine)
    try:
        yield sessionmaker(bind=pg_engine, autoflush=False, expire_on_commit=False, future=True)
    finally:
        Base.metadata.drop_all(bind=pg_engine)
        pg_engine.dispose()
