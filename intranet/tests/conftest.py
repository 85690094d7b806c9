import pytest

from intranet import create_app
from intranet.core.auth.auth_service import grant_role, issue_tokens, register_user
from intranet.core.auth.principal import principal_from_user
from intranet.core.auth.schemas import RegisterRequest
from intranet.extensions import db


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (database, API)")
    config.addinivalue_line("markers", "slow: Slow running tests")


@pytest.fixture()
def app():
    """
    Per-test app on a fresh in-memory SQLite schema.

    Tables come from model metadata; migrations are exercised separately
    with ``flask db upgrade`` against a real database.
    """
    app = create_app("testing")
    ctx = app.app_context()
    ctx.push()
    db.create_all()
    try:
        yield app
    finally:
        db.session.remove()
        db.drop_all()
        ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    """Factory: register a user (default roles + gamification profile)."""

    def _make(email: str, full_name: str = None, sector: str = "Geral", roles=()):
        result = register_user(
            RegisterRequest(
                email=email,
                password="secret123",
                full_name=full_name,
                sector=sector,
            )
        )
        user = result["user"]
        for code in roles:
            grant_role(user, code)
        return user

    return _make


@pytest.fixture()
def ana(make_user):
    return make_user("ana@example.com", full_name="Ana Souza", sector="TI")


@pytest.fixture()
def bruno(make_user):
    return make_user("bruno@example.com", full_name="Bruno Lima", sector="Comercial")


@pytest.fixture()
def ana_principal(ana):
    return principal_from_user(ana)


@pytest.fixture()
def bruno_principal(bruno):
    return principal_from_user(bruno)


def auth_headers(user) -> dict[str, str]:
    """Bearer header for a freshly issued access token."""
    tokens = issue_tokens(user)
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest.fixture()
def headers_for(app):
    return auth_headers
