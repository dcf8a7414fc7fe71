import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from app.db.db import get_session
from app.models.claim import Claim  # noqa: F401
from app.models.item import Item  # noqa: F401
from app.models.profile import Profile
from app.models.user_role import UserRole
from app.services.item_lifecycle import create_item
from app.utils.auth_helper import create_access_token


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="make_profile")
def make_profile_fixture(session: Session):
    def _make(user_id: str, role: str = None, full_name: str = None) -> Profile:
        profile = Profile(
            id=user_id,
            email=f"{user_id}@lostfound.org",
            full_name=full_name or user_id.title(),
        )
        session.add(profile)
        if role:
            session.add(UserRole(user_id=user_id, role=role))
        session.commit()
        session.refresh(profile)
        return profile

    return _make


@pytest.fixture
def alice(make_profile):
    return make_profile("alice")


@pytest.fixture
def bob(make_profile):
    return make_profile("bob")


@pytest.fixture
def carol(make_profile):
    return make_profile("carol")


@pytest.fixture
def admin(make_profile):
    return make_profile("root", role="admin", full_name="Site Admin")


@pytest.fixture(name="make_item")
def make_item_fixture(session: Session):
    def _make(owner_id: str, status: str = "lost", **overrides) -> Item:
        fields = {
            "title": "Black Leather Wallet",
            "category": "accessories",
            "location": "Central Library, 2nd floor",
            "date_lost_found": date(2024, 5, 1),
            "status": status,
        }
        fields.update(overrides)
        return create_item(session, owner_id=owner_id, **fields)

    return _make


@pytest.fixture(name="client")
def client_fixture(session: Session):
    from app.main import app

    app.dependency_overrides[get_session] = lambda: session
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="auth_headers")
def auth_headers_fixture():
    def _headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers
