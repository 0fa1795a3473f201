import time

import pytest

from ssa.config.settings import Settings
from ssa.store.subscriptions import SubscriptionStore
from tests.fakes import FakeTransport


@pytest.fixture
def transports():
    """Factory of fake transports; every transport created is recorded."""
    created = []

    def make(failures: int = 0):
        def factory():
            transport = FakeTransport(failures=failures)
            created.append(transport)
            return transport
        return factory

    make.created = created
    return make


@pytest.fixture
def store(tmp_path):
    s = SubscriptionStore(tmp_path / "data")
    yield s
    s.close()


@pytest.fixture
def config(tmp_path):
    return Settings(
        schedule_searches=True,
        site_title="Test Catalog",
        site_email="library@example.org",
        base_url="https://catalog.example.org",
        unsubscribe_secret="s3cret",
        data_dir=tmp_path / "data",
        _env_file=None,
    )


@pytest.fixture
def local_timezone(monkeypatch):
    """Switch the process's local timezone; restored after the test."""

    def switch(name: str) -> None:
        monkeypatch.setenv("TZ", name)
        time.tzset()

    yield switch
    monkeypatch.undo()
    time.tzset()
