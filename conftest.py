import os
import shutil
import tempfile

import pytest

# Create a temporary SQLite database file for the whole test session
_TEMP_DIR = tempfile.mkdtemp(prefix="affiliate_desk_tests_")
_DB_FILE = os.path.join(_TEMP_DIR, "test_affiliate_desk.db")
os.environ["AFFDESK_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ.setdefault("ENVIRONMENT", "test")


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Initialize a fresh temporary SQLite database for tests and clean it up after."""
    # Import after setting env var so the app uses the temp DB
    from affiliate_desk.database import engine, init_db

    init_db()

    yield

    engine.dispose()
    shutil.rmtree(_TEMP_DIR, ignore_errors=True)


# Each test starts with empty domain tables; user logins are preserved.
@pytest.fixture(autouse=True)
def _clean_domain_tables():
    from affiliate_desk import crud
    from affiliate_desk.database import SessionLocal

    session = SessionLocal()
    try:
        crud.reset_application_data(session)
    finally:
        session.close()


@pytest.fixture
def test_db():
    """Provide a session on the temporary database with rollback on exit."""
    from affiliate_desk.database import SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
