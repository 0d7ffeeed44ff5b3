import inspect
from collections.abc import Callable
from unittest.mock import MagicMock

import anyio
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

import admissions.models  # noqa: F401
from admissions.audit.emitter import AuditEmitter
from admissions.auth.context import CallerContext
from admissions.auth.dependencies import get_principal
from admissions.auth.service import (
    FirebaseAuthService,
    TokenClaims,
    get_firebase_auth_service,
)
from admissions.core.settings import Settings, get_settings
from admissions.db.engine import get_session
from admissions.db.store import DirectoryStore
from admissions.institution.models import Institution, InstitutionType
from admissions.main import app
from admissions.membership.projector import AuthorizationProjector
from admissions.membership.service import MembershipService
from admissions.user.models import User, UserRole


def pytest_configure(config: pytest.Config) -> None:
    # Tests use @pytest.mark.asyncio, but we intentionally rely on anyio.
    config.addinivalue_line(
        "markers",
        "asyncio: run async tests using anyio (project-local hook)",
    )


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Run @pytest.mark.asyncio tests with anyio.

    This avoids adding an external pytest-asyncio dependency.
    """
    if pyfuncitem.get_closest_marker("asyncio") is None:
        return None

    test_func = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_func):
        return None

    funcargs = {
        name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames
    }

    async def _run_async_test() -> None:
        await test_func(**funcargs)

    anyio.run(_run_async_test)
    return True


@pytest.fixture(name="session")
def session_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="store")
def store_fixture(session: Session) -> DirectoryStore:
    return DirectoryStore(session)


@pytest.fixture(name="mother")
def mother_fixture(session: Session) -> Institution:
    """Active mother institution with no email domains."""
    institution = Institution(
        id="mother",
        name="Mother Academy",
        institution_type=InstitutionType.mother,
        invite_code="MOTHER01",
    )
    session.add(institution)
    session.commit()
    session.refresh(institution)
    return institution


@pytest.fixture(name="acme")
def acme_fixture(session: Session, mother: Institution) -> Institution:
    """Active child institution owning the acme.edu domain."""
    institution = Institution(
        id="acme",
        name="Acme University",
        institution_type=InstitutionType.child_online,
        parent_institution_id=mother.id,
        allowed_email_domains=["acme.edu"],
        invite_code="ABCD1234",
    )
    session.add(institution)
    session.commit()
    session.refresh(institution)
    return institution


@pytest.fixture(name="closed")
def closed_fixture(session: Session, mother: Institution) -> Institution:
    """Child institution that does not accept external users by browsing."""
    institution = Institution(
        id="closed",
        name="Closed College",
        institution_type=InstitutionType.child_offline,
        parent_institution_id=mother.id,
        allowed_email_domains=["closed.org"],
        invite_code="C0FFEE00",
        allow_external_users=False,
    )
    session.add(institution)
    session.commit()
    session.refresh(institution)
    return institution


def _add_user(session: Session, **kwargs) -> User:
    user = User(**kwargs)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="super_admin")
def super_admin_fixture(session: Session) -> User:
    return _add_user(
        session,
        uid="root-uid",
        email="root@platform.io",
        role=UserRole.super_admin,
        institution_id="",
    )


@pytest.fixture(name="acme_admin")
def acme_admin_fixture(session: Session, acme: Institution) -> User:
    return _add_user(
        session,
        uid="acme-admin-uid",
        email="dean@acme.edu",
        role=UserRole.institution_admin,
        institution_id=acme.id,
        active_institution_id=acme.id,
    )


@pytest.fixture(name="closed_admin")
def closed_admin_fixture(session: Session, closed: Institution) -> User:
    return _add_user(
        session,
        uid="closed-admin-uid",
        email="dean@closed.org",
        role=UserRole.institution_admin,
        institution_id=closed.id,
        active_institution_id=closed.id,
    )


@pytest.fixture(name="student")
def student_fixture(session: Session) -> User:
    """Student without a home institution."""
    return _add_user(
        session,
        uid="u1",
        email="jane@gmail.com",
        role=UserRole.student,
        is_external=True,
    )


@pytest.fixture(name="inactive_user")
def inactive_user_fixture(session: Session) -> User:
    return _add_user(
        session,
        uid="inactive-uid",
        email="inactive@example.com",
        is_active=False,
    )


@pytest.fixture(name="mock_firebase_auth")
def mock_firebase_auth_fixture():
    """Create a mock FirebaseAuthService."""
    mock_service = MagicMock(spec=FirebaseAuthService)
    # Default mock behaviors
    mock_service.verify_session_cookie.return_value = TokenClaims(uid="test-uid")
    mock_service.verify_id_token.return_value = TokenClaims(uid="test-uid")
    mock_service.create_session_cookie.return_value = "session-cookie"
    mock_service.get_custom_claims.return_value = {}
    return mock_service


@pytest.fixture(name="mock_settings")
def mock_settings_fixture():
    """Create mock settings."""
    return Settings(
        env_name="test",
        database_url="sqlite://",
        session_expires_days=5,
    )


@pytest.fixture(name="service")
def service_fixture(
    session: Session,
    store: DirectoryStore,
    mock_firebase_auth: MagicMock,
    mock_settings: Settings,
) -> MembershipService:
    return MembershipService(
        store=store,
        projector=AuthorizationProjector(store, mock_firebase_auth),
        audit=AuditEmitter(session),
        settings=mock_settings,
    )


@pytest.fixture(name="caller_of")
def caller_of_fixture() -> Callable[[User], CallerContext]:
    return CallerContext.from_user


@pytest.fixture(name="client_as")
def client_as_fixture(
    session: Session,
    mock_firebase_auth: MagicMock,
    mock_settings: Settings,
):
    """Build a test client authenticated as the given user (or anonymous)."""

    def get_session_override():
        return session

    def get_firebase_auth_override():
        return mock_firebase_auth

    def get_settings_override():
        return mock_settings

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_firebase_auth_service] = get_firebase_auth_override
    app.dependency_overrides[get_settings] = get_settings_override

    def _client(user: User | None = None) -> TestClient:
        if user is not None:
            claims = TokenClaims(uid=user.uid, email=user.email)
            app.dependency_overrides[get_principal] = lambda: claims
        else:
            app.dependency_overrides.pop(get_principal, None)
        return TestClient(app, raise_server_exceptions=False)

    yield _client

    app.dependency_overrides.clear()
