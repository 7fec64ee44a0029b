import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.database import Base, create_engine, create_session_factory
from app.main import create_app
from app.models import CHAT_TABLES
from app.models.listing import Listing
from app.models.user import User
from tests.helpers import MARKETPLACE_TABLES


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        DEBUG_ENDPOINTS_ENABLED=False,
        SENDGRID_API_KEY="",
        CORS_ORIGINS=["*"]
    )


@pytest.fixture
def cold_engine():
    """In-memory store with users and listings but no chat tables."""
    engine = create_engine("sqlite://")
    Base.metadata.create_all(bind=engine, tables=MARKETPLACE_TABLES)
    yield engine
    engine.dispose()


@pytest.fixture
def engine(cold_engine):
    """In-memory store with the full schema."""
    Base.metadata.create_all(bind=cold_engine, tables=CHAT_TABLES)
    return cold_engine


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def cold_db(cold_engine):
    session = create_session_factory(cold_engine)()
    yield session
    session.close()


@pytest.fixture
def client(settings, engine):
    return TestClient(create_app(settings, engine))


@pytest.fixture
def cold_client(settings, cold_engine):
    return TestClient(create_app(settings, cold_engine))


@pytest.fixture
def add_user(db):
    def _add_user(user_id, name=None, email=None, avatar_url=None):
        user = User(id=user_id, name=name, email=email, avatar_url=avatar_url)
        db.add(user)
        db.commit()
        return user
    return _add_user


@pytest.fixture
def add_listing(db):
    def _add_listing(listing_id, owner_id, title="Kayak", images=None):
        listing = Listing(id=listing_id, owner_id=owner_id, title=title, images=images)
        db.add(listing)
        db.commit()
        return listing
    return _add_listing
