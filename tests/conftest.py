import pytest

from libs.common.config import Settings
from services.members_service.models import FAMILY_MEMBERS_TABLE
from services.members_service.services.reconciler import SessionReconciler
from tests.factories import FakeAuthProvider, FakeStore, MemberFactory


@pytest.fixture
def settings() -> Settings:
    return Settings(ENVIRONMENT="local", DATA_STORE_BACKEND="supabase")


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def auth() -> FakeAuthProvider:
    return FakeAuthProvider()


@pytest.fixture
def reconciler(store, auth, settings) -> SessionReconciler:
    return SessionReconciler(store, auth, settings)


@pytest.fixture
def registered_member(store):
    """Family member m1, pre-registered by email and not yet linked."""
    return store.seed(
        FAMILY_MEMBERS_TABLE,
        MemberFactory.create(email="m1@test.com", name="Mia Parker", user_id=None),
    )


@pytest.fixture
def admin_member(store):
    return store.seed(
        FAMILY_MEMBERS_TABLE,
        MemberFactory.create(
            email="admin@test.com", name="Alex Parker", user_id="admin-user", is_admin=True
        ),
    )
