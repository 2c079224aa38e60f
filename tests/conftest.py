import os
import tempfile

# Must be set before the application modules are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="tool-custody-logs-")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base, get_db
from main import app
from models.checklist_items import ChecklistItem
from models.tools import Tool
from models.users import User
from utils.auth_utils import get_current_user
from utils.tenancy import Principal

TENANT = "acme"
OTHER_TENANT = "globex"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def users(db):
    """alice (admin), bob and carol in acme; zed in globex."""
    rows = {
        "alice": User(id="alice", tenant_id=TENANT, name="Alice Admin", role="admin"),
        "bob": User(id="bob", tenant_id=TENANT, name="Bob Tech"),
        "carol": User(id="carol", tenant_id=TENANT, name="Carol Tech"),
        "zed": User(id="zed", tenant_id=OTHER_TENANT, name="Zed Other", role="admin"),
    }
    db.add_all(rows.values())
    db.commit()
    return rows


@pytest.fixture
def make_tool(db):
    def _make(number, name=None, tenant_id=TENANT, checklist=()):
        tool = Tool(tenant_id=tenant_id, number=number, name=name or f"Tool {number}")
        db.add(tool)
        db.flush()
        for item_name in checklist:
            db.add(ChecklistItem(tenant_id=tenant_id, tool_id=tool.id, item_name=item_name))
        db.commit()
        db.refresh(tool)
        return tool
    return _make


@pytest.fixture
def principals():
    return {
        "alice": Principal(user_id="alice", tenant_id=TENANT, role="admin"),
        "bob": Principal(user_id="bob", tenant_id=TENANT, role="member"),
        "carol": Principal(user_id="carol", tenant_id=TENANT, role="member"),
        "zed": Principal(user_id="zed", tenant_id=OTHER_TENANT, role="admin"),
    }


@pytest.fixture
def client(session_factory):
    """TestClient whose caller can be switched with ``client.login(user_id)``."""
    claims = {
        "alice": {"sub": "alice", "custom:tenant_id": TENANT, "cognito:groups": ["admin"]},
        "bob": {"sub": "bob", "custom:tenant_id": TENANT, "cognito:groups": []},
        "carol": {"sub": "carol", "custom:tenant_id": TENANT},
        "zed": {"sub": "zed", "custom:tenant_id": OTHER_TENANT, "cognito:groups": ["admin"]},
    }
    current = {"claims": claims["alice"]}

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: current["claims"]

    test_client = TestClient(app)

    def login(user_id):
        current["claims"] = claims[user_id]

    test_client.login = login
    with test_client:
        yield test_client
    app.dependency_overrides.clear()
