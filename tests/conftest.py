import multiprocessing as mp

import numpy as np
import pytest

from mcoptions import (
    NormalVariateSource,
    OptionContract,
    Payoff,
    PricerSettings,
    PricingFramework,
)


@pytest.fixture(autouse=True)
def _stable_seed():
    # Keep global state stable for any code that still touches np.random.*
    np.random.seed(42)


@pytest.fixture(scope="session", autouse=True)
def _set_spawn_start_method():
    try:
        mp.set_start_method("spawn")
    except RuntimeError:
        pass  # already set


@pytest.fixture
def reference_contract():
    """Put scenario used throughout: sigma=0.3, r=0.08, T=0.25, S=60, K=65."""
    return OptionContract(0.3, 0.08, 0.25, 60.0, 65.0, n_simulations=100_000, n_steps=50)


@pytest.fixture
def atm_contract():
    """At-the-money one-year contract without a step count."""
    return OptionContract(0.2, 0.05, 1.0, 100.0, 100.0, n_simulations=20_000)


@pytest.fixture
def small_contract():
    """A cheap contract with a step count for fast driver tests."""
    return OptionContract(0.25, 0.03, 0.5, 100.0, 95.0, n_simulations=2_000, n_steps=20)


@pytest.fixture
def seeded_source():
    """Default-engine variate source with a fixed seed."""
    return NormalVariateSource(seed=12345)


@pytest.fixture
def european_put():
    return Payoff.european_put()


@pytest.fixture
def european_call():
    return Payoff.european_call()


@pytest.fixture
def small_blocks():
    """Settings that force several blocks on small runs."""
    return PricerSettings(block_size=512)


@pytest.fixture
def framework():
    """Provide a framework with a fixed seed."""
    fw = PricingFramework()
    fw.set_seed(2024)
    return fw


@pytest.fixture
def sample_data():
    """Fixture providing sample data for stats engine tests"""
    rng = np.random.default_rng(42)
    return rng.normal(5.0, 2.0, 1000)


@pytest.fixture
def ctx_basic():
    """Basic context for stats engine tests"""
    return {
        "n": 1000,
        "confidence": 0.95,
        "nan_policy": "propagate",
        "ci_method": "auto",
        "percentiles": (5, 25, 50, 75, 95),
        "target": 5.0,
    }
