from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from ..core import db as core_db
from ..core.db import create_engine_for_url, get_session, init_db, set_engine
from ..main import app
from ..models import ClassCreate, StaffCreate, StudentCreate
from ..services import DirectoryService, TransactionService

POSTED_AT = datetime(2024, 3, 15, 10, 30, tzinfo=UTC)


@pytest.fixture
def engine(tmp_path):
    test_db = tmp_path / "test.db"
    engine = create_engine_for_url(f"sqlite:///{test_db}")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def directory(session) -> DirectoryService:
    return DirectoryService(session)


@pytest.fixture
def school_class(directory):
    return directory.create_class(ClassCreate(name="7A", academic_year="2024"))


@pytest.fixture
def staff(directory):
    return directory.create_staff(
        StaffCreate(username="staff1", full_name="Test Staff", employee_id="EMP001")
    )


@pytest.fixture
def student(directory, school_class):
    return directory.create_student(
        StudentCreate(full_name="Test Student", nis="NIS001", class_id=school_class.id)
    )


@pytest.fixture
def poster(session) -> TransactionService:
    return TransactionService(session, clock=lambda: POSTED_AT)


@pytest.fixture
def funded_student(poster, staff, student):
    """A student whose balance is 100.00 after one opening deposit."""
    poster.post_transaction(staff.id, student.id, "DEPOSIT", "100.00", "Opening balance")
    return student


@pytest.fixture
def client(engine) -> TestClient:
    original_engine = core_db.engine
    set_engine(engine)

    def _get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session_override
    init_db()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    set_engine(original_engine)
