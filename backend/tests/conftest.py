import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fieldsales.api.deps import get_record_source
from fieldsales.db.base import Base
from fieldsales.db.session import get_db
from fieldsales.main import app
from fieldsales.models.user import User, UserRole
from fieldsales.services.auth import hash_password
from fieldsales.services.records import SqlRecordSource

from seed_data import PASSWORD, seed_january


@pytest.fixture()
def session_factory() -> sessionmaker:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture()
def db(session_factory: sessionmaker) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory: sessionmaker) -> TestClient:
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def override_get_record_source():
        return SqlRecordSource(session_factory, "Europe/Sarajevo")

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_record_source] = override_get_record_source
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db: Session):
    def create(email: str, role: UserRole, name: str | None = None) -> User:
        user = User(
            email=email,
            name=name or email.split("@")[0].title(),
            role=role,
            password_hash=hash_password(PASSWORD),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return create


@pytest.fixture()
def login(client: TestClient):
    def headers(email: str) -> dict[str, str]:
        response = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
        assert response.status_code == 200, response.text
        token = response.json()["tokens"]["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return headers


@pytest.fixture()
def seeded(db: Session, make_user) -> dict[str, int]:
    ana = make_user("ana@example.com", UserRole.COMMERCIAL, name="Ana")
    marko = make_user("marko@example.com", UserRole.COMMERCIAL, name="Marko")
    manager = make_user("manager@example.com", UserRole.MANAGER)
    director = make_user("director@example.com", UserRole.DIRECTOR)
    ids = seed_january(db, ana, marko)
    return {
        "ana": ana.id,
        "marko": marko.id,
        "manager": manager.id,
        "director": director.id,
        **ids,
    }
