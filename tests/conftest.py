"""Shared pytest fixtures for shelby tests."""

import pytest

from shelby.config import Settings
from shelby.database.factories import create_sqlite_database
from shelby.domain.accounting import AccountService, CategoryService, CostCenterService
from shelby.domain.document import DocumentService
from shelby.domain.ledger import LedgerService
from shelby.domain.membership import MembershipService
from shelby.domain.person import GroupService, PersonService
from shelby.domain.user import UserService
from shelby.storage.coordinator import ConsistencyCoordinator
from shelby.storage.documents import DocumentStore


@pytest.fixture
def settings(tmp_path):
    """Settings for a fresh data directory."""
    return Settings(data_root=tmp_path / "data", busy_timeout=1.0, busy_backoff=0.001)


@pytest.fixture
def temp_db(settings):
    """Create a temporary database for testing."""
    db = create_sqlite_database(settings)
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()


@pytest.fixture
def document_store(settings):
    """Create a document store in the temporary data directory."""
    store = DocumentStore(settings.documents_dir)
    store.open()
    return store


@pytest.fixture
def coordinator(temp_db, document_store):
    return ConsistencyCoordinator(temp_db, document_store)


@pytest.fixture
def person_service(temp_db):
    return PersonService(temp_db)


@pytest.fixture
def group_service(temp_db):
    return GroupService(temp_db)


@pytest.fixture
def membership_service(temp_db):
    return MembershipService(temp_db)


@pytest.fixture
def account_service(temp_db):
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    return CategoryService(temp_db)


@pytest.fixture
def cost_center_service(temp_db):
    return CostCenterService(temp_db)


@pytest.fixture
def document_service(coordinator):
    return DocumentService(coordinator)


@pytest.fixture
def user_service(temp_db):
    return UserService(temp_db)


@pytest.fixture
def ledger(temp_db, coordinator):
    """Create a LedgerService able to store evidence documents."""
    return LedgerService(temp_db, coordinator)


@pytest.fixture
def chart(account_service, category_service, cost_center_service):
    """A small chart of accounts.

    Two cost centers ("General", "Summer camp"), two categories ("Income",
    "Expenses") and three accounts: fees (General/Income), rent
    (General/Expenses) and camp (Summer camp/Expenses).
    """
    general = cost_center_service.create_cost_center("General")
    camp = cost_center_service.create_cost_center("Summer camp")
    income = category_service.create_category("Income")
    expenses = category_service.create_category("Expenses")
    return {
        "general": general,
        "camp": camp,
        "income": income,
        "expenses": expenses,
        "fees": account_service.create_account("Membership fees", income, general, code=4000),
        "rent": account_service.create_account("Room rent", expenses, general, code=6000),
        "camp_costs": account_service.create_account("Camp costs", expenses, camp, code=6100),
    }


@pytest.fixture
def sample_person(person_service):
    """Create a sample person and return its ID."""
    return person_service.create_person(name="Alice Example", email="alice@example.org")


@pytest.fixture
def sample_user(user_service):
    """Create a sample user and return its ID."""
    return user_service.create_user("treasurer", "correct horse battery")


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
