"""
Shared fixtures: in-memory identity database, seeded users, app and clients.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.permissions import build_permission_table
from app.db.init_identity import init_identity_db
from app.main import create_app
from app.providers.local import LocalIdentityProvider
from app.services.module_access import ModuleOverrideStore
from app.services.session_authority import SessionAuthority

ITSM_HOST = "demoitsm-itsm.hi5tech.co.uk"
SELF_HOST = "demoitsm-self.hi5tech.co.uk"
CONTROL_HOST = "demoitsm-control.hi5tech.co.uk"
OTHER_TENANT_HOST = "acme-itsm.hi5tech.co.uk"
ROOT_HOST = "hi5tech.co.uk"

USERS = {
    "admin": ("a@b.com", "correct", "Admin", "demoitsm"),
    "requester": ("req@b.com", "requester-pw", "Requester", "demoitsm"),
    "agent": ("agent@b.com", "agent-pw", "Agent", "demoitsm"),
    "ghost": ("ghost@b.com", "ghost-pw", "Nonexistent", "demoitsm"),
    "acme": ("ops@acme.com", "acme-pw", "Admin", "acme"),
}


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_identity_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="session")
def provider(engine):
    provider = LocalIdentityProvider(sessionmaker(bind=engine))
    for email, password, role, tenant in USERS.values():
        provider.create_user(email, password, role=role, tenant_id=tenant)
    return provider


@pytest.fixture(scope="session")
def module_overrides(engine):
    return ModuleOverrideStore(sessionmaker(bind=engine))


@pytest.fixture
def permission_table():
    return build_permission_table()


@pytest.fixture
def authority(provider):
    return SessionAuthority(provider)


@pytest.fixture
def app(provider, permission_table, module_overrides):
    return create_app(
        provider=provider,
        permission_table=permission_table,
        module_overrides=module_overrides,
    )


@pytest.fixture
def make_client(app):
    def factory(host=ITSM_HOST):
        return TestClient(app, base_url=f"https://{host}")
    return factory


@pytest.fixture
def client(make_client):
    return make_client(ITSM_HOST)


def cookie_token(response) -> str:
    """Token value from the session Set-Cookie header."""
    header = response.headers["set-cookie"]
    return header.split(";")[0].split("=", 1)[1]


def login(client, who="admin"):
    email, password, _, _ = USERS[who]
    response = client.post("/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return cookie_token(response)
