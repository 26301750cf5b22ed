import pytest

from modules import catalogue_store
from tests.helpers import SleepRecorder


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def store(tmp_path):
    catalogue_store.configure(f"sqlite:///{tmp_path / 'test.db'}")
    catalogue_store.ensure_schema()
    yield catalogue_store
    catalogue_store.configure(f"sqlite:///{tmp_path / 'unused.db'}")


@pytest.fixture
def user(store):
    return store.create_user("owner@example.com", name="Owner", firm_name="Lakshmi Textiles")
