"""Pytest configuration and shared fixtures for petledger tests."""

import os

import pytest

from petledger.models import Generation, User


def pytest_addoption(parser):
    parser.addoption(
        "--db",
        action="store",
        default="sqlite",
        choices=["sqlite", "postgres"],
        help="Database backend to use for tests (default: sqlite)",
    )


@pytest.fixture(scope="session")
def db_backend(request):
    return request.config.getoption("--db")


@pytest.fixture(scope="session")
def postgres_container(db_backend):
    """Start a PostgreSQL container if postgres backend is selected."""
    if db_backend != "postgres":
        yield None
        return

    try:
        from testcontainers.postgres import PostgresContainer
    except ImportError:
        pytest.skip("testcontainers not installed. Install with: pip install -e .[testcontainers]")

    with PostgresContainer("postgres:16") as postgres:
        os.environ["DB_HOST"] = postgres.get_container_host_ip()
        os.environ["DB_PORT"] = str(postgres.get_exposed_port(5432))
        os.environ["DB_NAME"] = postgres.dbname
        os.environ["DB_USER"] = postgres.username
        os.environ["DB_PASSWORD"] = postgres.password
        yield postgres


@pytest.fixture(scope="session")
def django_db_modify_db_settings(postgres_container, db_backend):
    """Point Django at the selected backend before the test database is built."""
    from django.conf import settings

    if db_backend == "postgres":
        settings.DATABASES = {
            "default": {
                "ENGINE": "django.db.backends.postgresql",
                "NAME": os.environ.get("DB_NAME", "test_petledger"),
                "USER": os.environ.get("DB_USER", "postgres"),
                "PASSWORD": os.environ.get("DB_PASSWORD", "postgres"),
                "HOST": os.environ.get("DB_HOST", "localhost"),
                "PORT": os.environ.get("DB_PORT", "5432"),
            }
        }


@pytest.fixture
def query():
    from petledger.store import Query
    return Query()


@pytest.fixture
def sequencer():
    from petledger.sequencer import MigrationSequencer
    return MigrationSequencer()


@pytest.fixture
def alice():
    return User.objects.create(email="alice@example.com", name="Alice")


@pytest.fixture
def bob():
    return User.objects.create(email="bob@example.com", name="Bob")


@pytest.fixture
def carol():
    return User.objects.create(email="carol@example.com", name="Carol")


@pytest.fixture
def single_owner(sequencer):
    """Stored data at the typed-pet-single-owner generation."""
    sequencer.migrate_to(Generation.TYPED_PET_SINGLE_OWNER)
    return sequencer


@pytest.fixture
def multi_owner(sequencer):
    """Stored data at the typed-pet-multi-owner generation."""
    sequencer.migrate_to(Generation.TYPED_PET_MULTI_OWNER)
    return sequencer


@pytest.fixture
def service():
    from petledger.services import PetService
    return PetService()
