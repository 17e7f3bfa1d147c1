import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Fetch and activate the domain by pushing the associated domain_context. The activated domain can then be referred to elsewhere as `current_domain`
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    # Retries back off instantly under test
    os.environ["LOGISTICS_BACKOFF_SECONDS"] = "0"

    from allocation.domain import allocation

    allocation.init()
    allocation.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def setup_db(request):
    from allocation.domain import allocation
    from allocation.utils.db import drop_db, setup_db

    setup_db(allocation)

    yield

    drop_db(allocation)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from allocation.channel import reset_channels
    from allocation.inventory_feed import reset_inventory_feed
    from allocation.logistics import reset_logistics
    from allocation.order_source import reset_order_source
    from allocation.utils.locks import reset_locks
    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    # Drop configured collaborator fakes
    reset_logistics()
    reset_order_source()
    reset_inventory_feed()
    reset_channels()
    reset_locks()
