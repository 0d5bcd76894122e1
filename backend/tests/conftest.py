import os

# Keep the app's own engine off disk while tests import main
os.environ.setdefault("DATABASE_PATH", ":memory:")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from main import app
from database import Base, get_db
from models import User, Group, GroupMember, Friendship
from auth import get_password_hash, create_user_token
from utils.rate_limiter import auth_rate_limiter

# Setup in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# bcrypt is slow on purpose; hash the shared test password once
PASSWORD_HASH = get_password_hash("password123")


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def client(db_session):
    """Create a FastAPI TestClient with overridden database dependency."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_db, None)

@pytest.fixture(autouse=True)
def disable_rate_limits():
    """Disable the auth rate limit during testing using dependency overrides."""
    async def mock_rate_limit():
        return True

    app.dependency_overrides[auth_rate_limiter] = mock_rate_limit
    yield
    app.dependency_overrides.pop(auth_rate_limiter, None)


def create_user(db, username: str, full_name: str = None) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        hashed_password=PASSWORD_HASH,
        full_name=full_name or username.title()
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def create_group(db, name: str, members: list) -> Group:
    """Create a group owned by the first member, with every given user as member."""
    group = Group(name=name, description="", created_by_id=members[0].id)
    db.add(group)
    db.commit()
    db.refresh(group)
    db.add_all([GroupMember(group_id=group.id, user_id=m.id) for m in members])
    db.commit()
    return group

def make_friends(db, a: User, b: User):
    db.add_all([Friendship(user_id=a.id, friend_id=b.id), Friendship(user_id=b.id, friend_id=a.id)])
    db.commit()

def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_user_token(user.id)}"}


@pytest.fixture
def test_user(db_session):
    return create_user(db_session, "alice", "Alice Adams")

@pytest.fixture
def other_user(db_session):
    return create_user(db_session, "bob", "Bob Brown")

@pytest.fixture
def third_user(db_session):
    return create_user(db_session, "carol", "Carol Clark")

@pytest.fixture
def auth_headers(test_user):
    """Return authorization headers for the test user."""
    return headers_for(test_user)

@pytest.fixture
def group(db_session, test_user, other_user, third_user):
    """A group with alice, bob and carol as members."""
    return create_group(db_session, "Trip", [test_user, other_user, third_user])


class QueryCounter:
    def __init__(self):
        self.count = 0
        self.queries = []

    def __call__(self, conn, cursor, statement, parameters, context, executemany):
        self.count += 1
        self.queries.append(statement)

@pytest.fixture
def query_counter():
    counter = QueryCounter()
    event.listen(engine, "before_cursor_execute", counter)
    yield counter
    event.remove(engine, "before_cursor_execute", counter)
