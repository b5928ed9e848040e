"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import wizard.models  # noqa: F401
from wizard.database import Base, get_db
from wizard.main import app
from wizard.routes.deps import get_geocoder, get_mailer, get_storage
from wizard.schemas.project import ProjectCreate
from wizard.services.storage import BlobStorage
from wizard.services.wizard_flow import WizardService


class FakeGeocoder:
    """Returns fixed coordinates and records lookups."""

    def __init__(self, result=None):
        self.result = result
        self.calls = []

    def geocode(self, address):
        self.calls.append(address)
        return self.result


class FakeMailer:
    """Records invitations instead of sending them."""

    def __init__(self, succeed=True):
        self.succeed = succeed
        self.sent = []

    def send_invitation(self, recipient_email, project_name, project_id, inviter_name, role):
        self.sent.append({"email": recipient_email, "project_name": project_name, "role": role})
        return self.succeed


@pytest.fixture(scope="function")
def test_db():
    """Create a test database for each test."""
    # Use in-memory SQLite for testing
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    yield db

    db.close()


@pytest.fixture
def storage(tmp_path):
    return BlobStorage(root=str(tmp_path / "storage"))


@pytest.fixture
def geocoder():
    return FakeGeocoder(result={"lat": 43.6532, "lng": -79.3832})


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def wizard_service(test_db, storage, geocoder):
    return WizardService(test_db, storage=storage, geocoder=geocoder)


@pytest.fixture
def project(wizard_service):
    """A project with a name, address and work type already cited."""
    created, _ = wizard_service.create_project(ProjectCreate(
        name="Kitchen Reno",
        user_id="user-1",
        address="100 Queen St W, Toronto",
        work_type="renovation",
    ))
    return created


@pytest.fixture
def client(test_db, storage, geocoder, mailer):
    """API client bound to the test database."""

    def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    app.dependency_overrides[get_mailer] = lambda: mailer

    yield TestClient(app)

    app.dependency_overrides.clear()
