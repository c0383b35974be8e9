import pytest

from order_tracker.database import create_session_factory
from order_tracker.notifier import Notifier
from order_tracker.store import SqlOrderStore

from .helpers import FakeClock, FlakyStore, RecordingSubscriber


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_factory(tmp_path):
    # File-backed so concurrent advances get their own connections
    return create_session_factory(f"sqlite:///{tmp_path}/orders.db")


@pytest.fixture
def sql_store(session_factory, clock):
    return SqlOrderStore(session_factory, clock=clock)


@pytest.fixture
def flaky_store(sql_store):
    return FlakyStore(sql_store)


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def subscriber(notifier):
    sub = RecordingSubscriber()
    notifier.connect(sub)
    return sub
