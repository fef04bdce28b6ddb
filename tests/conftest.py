"""
pytest configuration and fixtures for cell viewer tests.

Provides reusable fixtures for:
- Cell builders (comments, jetton transfers)
- Well-known addresses
- Fake cascades for expander/decoder tests
- Hypothesis property-based testing configuration
"""

import os
import sys
from pathlib import Path

import pytest
from pytoniq_core import Address, begin_cell

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Configure Hypothesis profiles
try:
    from hypothesis import settings, Verbosity, Phase

    # Default profile: balanced speed and coverage
    settings.register_profile(
        "default",
        max_examples=100,
        deadline=None,  # Cell parsing is slow on first use
    )

    # CI profile: more thorough testing
    settings.register_profile(
        "ci",
        max_examples=500,
        deadline=None,
        phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    )

    # Dev profile: fast iteration
    settings.register_profile(
        "dev",
        max_examples=10,
        deadline=None,
    )

    # Debug profile: verbose output
    settings.register_profile(
        "debug",
        max_examples=10,
        verbosity=Verbosity.verbose,
        deadline=None,
    )

    settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))

except ImportError:
    pass  # Hypothesis not installed


ADDRESS_A = Address('0:' + '11' * 32)
ADDRESS_B = Address('0:' + '22' * 32)

JETTON_TRANSFER_OPCODE = 0x0f8a7ea5


def build_comment(text: str):
    """Plain text comment: 32 zero bits followed by UTF-8 text."""
    return begin_cell().store_uint(0, 32).store_bytes(text.encode('utf-8')).end_cell()


def build_jetton_transfer(forward_payload=None, query_id=7, amount=1000):
    builder = (
        begin_cell()
        .store_uint(JETTON_TRANSFER_OPCODE, 32)
        .store_uint(query_id, 64)
        .store_coins(amount)
        .store_address(ADDRESS_A)
        .store_address(ADDRESS_B)
        .store_uint(0, 1)  # no custom payload
        .store_coins(1)
    )
    if forward_payload is None:
        builder = builder.store_uint(0, 1)
    else:
        builder = builder.store_uint(1, 1).store_ref(forward_payload)
    return builder.end_cell()


class FakeCascade:
    """Cascade stand-in: decodes cells by hash from a prepared table."""

    def __init__(self, table=None, error=None):
        self.table = dict(table or {})
        self.error = error
        self.calls = []

    def add(self, cell, value):
        self.table[cell.hash] = value

    def decode(self, cell, hint=''):
        self.calls.append((cell, hint))
        if self.error is not None:
            raise self.error
        return self.table.get(cell.hash)


@pytest.fixture
def make_comment():
    return build_comment


@pytest.fixture
def comment_cell():
    return build_comment('hi')


@pytest.fixture
def jetton_transfer_cell():
    return build_jetton_transfer(forward_payload=build_comment('hello'))


@pytest.fixture
def fake_cascade():
    return FakeCascade()


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as end-to-end decode tests"
    )
