import pytest
from notifications.channel import get_channel, reset_channels
from notifications.errors import StoreUnavailable
from notifications.services import get_orchestrator, get_webhook_engine, reset_services
from notifications.settings import get_settings
from notifications.store import get_store, reset_store
from notifications.store.port import KeyValueStore
from notifications.webhook.transport import FakeTransport, get_transport, set_transport
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def notifications_bed():
    from notifications.domain import notifications

    bed = DomainFixture(notifications)
    bed.setup()
    yield bed
    bed.teardown()


def _reset_engine():
    reset_services()
    reset_channels()
    reset_store()
    set_transport(None)
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _ctx(notifications_bed):
    with notifications_bed.domain_context():
        _reset_engine()
        set_transport(FakeTransport())
        yield
        _reset_engine()


@pytest.fixture
def email():
    return get_channel("EMAIL")


@pytest.fixture
def sms():
    return get_channel("SMS")


@pytest.fixture
def push():
    return get_channel("PUSH")


@pytest.fixture
def transport():
    return get_transport()


@pytest.fixture
def store():
    return get_store()


@pytest.fixture
def orchestrator():
    return get_orchestrator()


@pytest.fixture
def webhook_engine():
    return get_webhook_engine()


class BrokenStore(KeyValueStore):
    """A store whose backend is always unreachable."""

    def _down(self, *args, **kwargs):
        raise StoreUnavailable("store offline")

    set_if_absent = get = set = incr = delete = delete_if_equals = _down

    def ping(self):
        return False


class FakeClock:
    def __init__(self, now=86400.0 * 20000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def broken_store():
    return BrokenStore()


@pytest.fixture
def clock():
    """Epoch-seconds clock starting on a day boundary."""
    return FakeClock()
