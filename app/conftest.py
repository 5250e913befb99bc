import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app_config
import models_pydantic as schemas
import models_sqlalchemy as models
from api_endpoints import create_app, get_db, get_geocoder, get_image_store
from auth_tokens import create_token
from geocoding import Coordinates
from property_directory import PropertyDirectory
from s3_storage import ImageStore
from user_accounts import UserAccounts

# ---------- DATABASE ----------

# One shared in-memory database; StaticPool keeps every checkout on the same connection
TEST_DATABASE_URL = "sqlite:///:memory:"

@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        TEST_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    models.Base.metadata.create_all(bind=engine)
    yield engine
    models.Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def db_session(engine):
    """Session joined to an outer transaction that is rolled back after the test, commits included."""
    connection = engine.connect()
    transaction = connection.begin()
    Session = sessionmaker(bind=connection, autoflush=False)
    session = Session()
    yield session
    session.close()
    transaction.rollback()
    connection.close()

@pytest.fixture(scope="session")
def app():
    return create_app(app_config.TestConfig)

# ---------- MOCK EXTERNAL SERVICES ----------

@pytest.fixture
def s3_client():
    return MagicMock()

@pytest.fixture
def geocoder():
    geocoder = MagicMock()
    geocoder.geocode.return_value = Coordinates(lat=37.4220625, lng=-122.0840625)
    return geocoder

@pytest.fixture(scope="function")
def client(app, db_session, s3_client, geocoder):
    """TestClient whose routes share db_session and talk to the mocked S3 client and geocoder."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_store] = lambda: ImageStore("test-bucket", "public", client=s3_client)
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()

# ---------- TEST DATA ----------

@pytest.fixture
def users(db_session):
    """u1 owns properties, u2 books them, u3 is a bystander"""
    accounts = UserAccounts(db_session, app_config.TestConfig.BCRYPT_WORK_FACTOR)
    return [
        accounts.register(schemas.UserRegister(
            email=f"u{n}@test.com",
            password=f"password{n}",
            first_name=f"U{n}F",
            last_name=f"U{n}L",
        ))
        for n in (1, 2, 3)
    ]

@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token = create_token(user.id, user.is_admin, app_config.TestConfig.SECRET_KEY)
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers

@pytest.fixture
def property_p1(db_session, users):
    return PropertyDirectory(db_session).create(
        schemas.PropertyCreate(
            title="Cozy Cabin",
            street="123 Main St",
            city="Denver",
            state="CO",
            zipcode="80202",
            description="A cozy cabin close to the trails",
            price=100,
        ),
        owner_id=users[0].id,
        coordinates=Coordinates(lat=39.7392, lng=-104.9903),
    )
