"""Shared fixtures."""

import pytest

from fake_engine import FakeEngine
from fhekit import HE, Scheme, preset_for


@pytest.fixture
def engine():
    """Fresh tracking engine."""
    return FakeEngine()


@pytest.fixture
def he(engine):
    """Orchestrator with no context yet."""
    orchestrator = HE(engine=engine)
    yield orchestrator
    orchestrator.release()


@pytest.fixture
def bfv(he):
    """Integer-scheme orchestrator at the low tier with keys."""
    he.initialize(Scheme.INTEGER, preset_for("low"))
    he.generate_keys()
    return he


@pytest.fixture
def ckks(he):
    """Approximate-real orchestrator at the low tier with keys."""
    he.initialize(Scheme.APPROX_REAL, preset_for("low"))
    he.generate_keys()
    return he
