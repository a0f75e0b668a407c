import os

# Configure before the application module creates its engine and limiter
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from useradmin.api import app
from useradmin.auth import create_access_token, get_db
from useradmin.database import Base
from useradmin.models import ROLE_ADMIN, ROLE_USER
from useradmin.repository import SqlAlchemyRoleRepository, SqlAlchemyUserRepository
from useradmin.roles import RoleService
from useradmin.schemas import UserForm
from useradmin.services import UserService


@pytest.fixture
def session():
    """Provide an isolated in-memory database for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def role_service(session):
    service = RoleService(SqlAlchemyRoleRepository(session))
    service.ensure_default_roles()
    return service


@pytest.fixture
def user_service(session, role_service):
    return UserService(SqlAlchemyUserRepository(session), role_service)


@pytest.fixture
def admin_role(role_service):
    return role_service.find_by_name(ROLE_ADMIN)


@pytest.fixture
def user_role(role_service):
    return role_service.find_by_name(ROLE_USER)


@pytest.fixture
def admin(user_service, admin_role):
    return user_service.create_user(
        UserForm(username="root", password="root-password", role_ids=[admin_role.id])
    )


@pytest.fixture
def client(session):
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client, admin):
    client.headers["Authorization"] = f"Bearer {create_access_token(admin)}"
    return client
