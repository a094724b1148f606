# Common pytest fixtures for rips_api tests.
# We ensure the project root (directory that contains the `rips_api/` package) is in sys.path.

import os
import sys
import pytest

PROJECT_ROOT = os.getenv("PROJECT_ROOT") or os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from rips_api.client import Client  # noqa: E402


@pytest.fixture(autouse=True)
def clean_rips_env(monkeypatch):
    # Environment overrides must not leak into tests
    for name in list(os.environ):
        if name.startswith("RIPS_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def rips_base_url():
    return "https://api.rips.test"


@pytest.fixture()
def client(rips_base_url):
    c = Client(rips_base_url)
    yield c
    c.close()


@pytest.fixture()
def sleeps(monkeypatch):
    # Record poll sleeps instead of waiting
    calls = []
    monkeypatch.setattr("rips_api.client.time.sleep", lambda seconds: calls.append(seconds))
    return calls
