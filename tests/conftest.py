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

    Selects the config overlay and makes the engine run deterministically:
    jobs execute inline in the test's thread and webhooks go to the
    in-memory transport.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.setdefault("SCHEDULER_MODE", "inline")
    os.environ.setdefault("WEBHOOK_TRANSPORT", "fake")
    os.environ.setdefault("KV_BACKEND", "memory")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)
