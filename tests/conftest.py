import os

# db.database は import 時に DATABASE_URL を要求する
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.pop("SMTP_HOST", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db.database import Base, get_db
from main import app
from models.user import User
from services import auth_service

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


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
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _register(db, name: str, email: str, password: str = "secret123") -> tuple[User, str]:
    return auth_service.register(db, name, email, password)


@pytest.fixture
def user_and_token(db):
    return _register(db, "Alice", "alice@example.com")


@pytest.fixture
def user(user_and_token):
    return user_and_token[0]


@pytest.fixture
def auth_headers(user_and_token):
    return {"Authorization": f"Bearer {user_and_token[1]}"}


@pytest.fixture
def other_headers(db):
    _, token = _register(db, "Bob", "bob@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(db):
    admin, token = _register(db, "Admin", "admin@example.com")
    admin.role = "admin"
    db.commit()
    return {"Authorization": f"Bearer {token}"}
