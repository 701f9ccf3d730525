"""
Shared pytest fixtures for the ERP landscape analyzer test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - gateway: Fresh mock source gateway
    - mock_context: Extraction context over the mock gateway with a temp checkpoint dir
"""

import shutil

import pytest

from landscape import create_app
from landscape.extraction.checkpoint import CheckpointStore
from landscape.extraction.context import ExtractionContext
from landscape.integrations.source_gateway import MockSourceGateway
from landscape.models import db as _db
from landscape.security.tier_manager import reset_tier_manager
from landscape.services import run_service


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        reset_tier_manager()
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()
        reset_tier_manager()
        run_service.clear_registry()
        # Checkpoints outlive runs; keep them from leaking between tests
        shutil.rmtree(app.config["CHECKPOINT_DIR"], ignore_errors=True)


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Extraction fixtures ──────────────────────────────────────────────────


@pytest.fixture()
def gateway():
    return MockSourceGateway()


@pytest.fixture()
def mock_context(tmp_path, gateway):
    """Mock-mode context with checkpoints under the test's temp dir."""
    return ExtractionContext(
        gateway=gateway,
        checkpoints=CheckpointStore(tmp_path / "checkpoints"),
        run_id="test-run",
    )
