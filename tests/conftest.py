"""
Pytest fixtures for NuclearFlow test suite.
"""

import pytest
from app import create_app

from nuclearflow.clock import fixed_clock
from nuclearflow.ledger import CustodyLedger


FIXED_NOW = "2024-01-15T12:00:00Z"


@pytest.fixture
def app():
    """Create application for testing."""
    app = create_app({"TESTING": True})
    return app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def clock():
    """Clock frozen at FIXED_NOW."""
    return fixed_clock(FIXED_NOW)


@pytest.fixture
def ledger(clock):
    """Deterministic ledger: frozen clock, sequential ids, zero entropy."""
    ids = ("evt-{}".format(i) for i in range(1, 10000))
    return CustodyLedger(
        clock=clock,
        random_bytes=lambda n: bytes(n),
        id_factory=lambda: next(ids),
    )
