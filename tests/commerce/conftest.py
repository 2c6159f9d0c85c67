import itertools
import threading

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from commerce.channel import set_email_channel
from commerce.channel.fake_email import FakeEmailAdapter
from commerce.checkout.reconciliation import Reconciler, set_reconciler
from commerce.config import Settings, set_settings
from commerce.customer.registration import SyncCustomer
from commerce.gateway import set_gateway
from commerce.gateway.fake_adapter import FakeGateway
from commerce.pricing.localization import PriceLocalizer, set_localizer
from commerce.product.product import Product

ADMIN_EMAIL = "kitchen@forkandfire.test"


@pytest.fixture(scope="session")
def commerce_bed():
    from commerce.domain import commerce

    bed = DomainFixture(commerce)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(commerce_bed):
    with commerce_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def settings():
    settings = Settings(environment="test", admin_email=ADMIN_EMAIL, frontend_url="http://shop.test")
    set_settings(settings)
    set_reconciler(Reconciler.from_settings(settings))
    set_localizer(PriceLocalizer.from_settings(settings))
    return settings


@pytest.fixture()
def gateway(settings):
    gateway = FakeGateway(checkout_url="http://shop.test/checkout")
    gateway.register_price("pri_basic", 2999, "USD")
    gateway.register_price("pri_basic_gb", 2399, "GBP")
    gateway.register_price("pri_basic_gb", 2399, "GBP", country="GB")
    gateway.register_price("pri_spice", 1250, "USD")
    set_gateway(gateway)
    return gateway


@pytest.fixture()
def mailbox():
    mailbox = FakeEmailAdapter()
    set_email_channel(mailbox)
    return mailbox


@pytest.fixture()
def make_product():
    """Persist a product. Defaults to a payable product with 3 units in stock."""

    def _make(
        name="Sourdough Masterclass",
        stock=3,
        unit_price=29.99,
        provider_price_id="pri_basic",
        localized_prices=None,
        **kwargs,
    ):
        product = Product.create(
            name=name,
            unit_price=unit_price,
            stock=stock,
            provider_price_id=provider_price_id,
            provider_product_id="pro_basic" if provider_price_id else None,
            image_url="https://cdn.forkandfire.test/sourdough.jpg",
            localized_prices=localized_prices,
            **kwargs,
        )
        current_domain.repository_for(Product).add(product)
        return current_domain.repository_for(Product).get(product.id)

    return _make


@pytest.fixture()
def make_customer():
    def _make(customer_id="user-001", email="ana@example.com", name="Ana Baker", country="US", is_admin=False):
        current_domain.process(
            SyncCustomer(
                customer_id=customer_id,
                email=email,
                name=name,
                country=country,
                is_admin=is_admin,
            ),
            asynchronous=False,
        )
        return customer_id

    return _make


@pytest.fixture()
def customer(make_customer):
    return make_customer()


@pytest.fixture()
def rendezvous():
    """Wrap a function so its first two callers wait for each other before running it."""

    def _wrap(fn, parties=2):
        barrier = threading.Barrier(parties)
        arrivals = itertools.count()

        def wrapper(*args, **kwargs):
            if next(arrivals) < parties:
                barrier.wait(timeout=5)
            return fn(*args, **kwargs)

        return wrapper

    return _wrap


@pytest.fixture()
def race():
    """Run a call in two threads at once, each inside its own domain context.

    Returns what each thread got back, or the exception it raised.
    """
    from commerce.domain import commerce

    def _race(fn, *args, **kwargs):
        outcomes = []
        lock = threading.Lock()

        def run():
            with commerce.domain_context():
                try:
                    outcome = fn(*args, **kwargs)
                except Exception as exc:  # noqa: BLE001
                    outcome = exc
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=run) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)
        return outcomes

    return _race
