import logging
import pickle
import threading

import numpy as np
import pytest

from mcoptions import (
    ConfigurationError,
    JobOutcome,
    NormalVariateSource,
    NumericDomainError,
    OptionContract,
    Payoff,
    PricingFramework,
    PricingJob,
    RandomEngine,
    SchemeKind,
    SimulationResult,
    run_simulation,
)
from mcoptions.backends import ProcessBackend, SequentialBackend, ThreadBackend, make_blocks, run_pricing_job
from mcoptions.core import StatisticsRecord


def _jobs():
    c = OptionContract(0.3, 0.08, 0.25, 60.0, 65.0, n_simulations=2_000, n_steps=10)
    return [
        PricingJob("gbm_put", c, SchemeKind.GBM, Payoff.european_put()),
        PricingJob("euler_put", c, SchemeKind.EXPLICIT_EULER, Payoff.european_put()),
        PricingJob("milstein_asian", c, SchemeKind.MILSTEIN, Payoff.asian_call(), RandomEngine.MERSENNE_TWISTER),
    ]


def _framework(seed=2024):
    fw = PricingFramework()
    fw.set_seed(seed)
    for job in _jobs():
        fw.register_job(job)
    return fw


class TestMakeBlocks:
    """Test block creation for the path loop"""

    def test_make_blocks_exact_division(self):
        """Test blocks with exact division"""
        blocks = make_blocks(10000, block_size=1000)
        assert len(blocks) == 10
        assert blocks[0] == (0, 1000)
        assert blocks[-1] == (9000, 10000)

    def test_make_blocks_with_remainder(self):
        """Test blocks with remainder"""
        blocks = make_blocks(10500, block_size=1000)
        assert len(blocks) == 11
        assert blocks[-1] == (10000, 10500)

    def test_make_blocks_small_n(self):
        """Test blocks smaller than block_size"""
        assert make_blocks(500, block_size=1000) == [(0, 500)]

    def test_make_blocks_coverage(self):
        """Test all elements are covered exactly once"""
        n = 12345
        blocks = make_blocks(n, block_size=1000)
        assert sum(j - i for i, j in blocks) == n

    def test_make_blocks_invalid_size(self):
        """Test block size must be positive"""
        with pytest.raises(ValueError):
            make_blocks(10, block_size=0)


class TestSimulationResult:
    """Test SimulationResult dataclass"""

    def test_properties(self, atm_contract, seeded_source):
        """Test derived properties"""
        res = run_simulation(atm_contract, "gbm", Payoff.european_call(), seeded_source)
        assert isinstance(res, SimulationResult)
        assert res.n_simulations == atm_contract.n_simulations
        assert np.allclose(res.discounted_payoffs, res.payoffs * atm_contract.discount_factor)

    def test_samples(self, small_contract, seeded_source):
        """Test per-path samples are yielded in order"""
        res = run_simulation(small_contract, "explicit_euler", Payoff.european_put(), seeded_source)
        samples = list(res.samples())
        assert len(samples) == small_contract.n_simulations
        assert samples[3].asset_value == res.asset_values[3]
        assert samples[3].payoff == res.payoffs[3]


class TestPricingJob:
    """Test job construction"""

    def test_string_enums_are_coerced(self, atm_contract):
        """Test scheme and engine accept their string values"""
        job = PricingJob("j", atm_contract, "gbm", Payoff.european_call(), engine="mersenne_twister")
        assert job.scheme_kind is SchemeKind.GBM
        assert job.engine is RandomEngine.MERSENNE_TWISTER

    def test_unknown_scheme(self, atm_contract):
        """Test unknown scheme names are rejected"""
        with pytest.raises(ConfigurationError, match="scheme"):
            PricingJob("j", atm_contract, "heun", Payoff.european_call())

    def test_unknown_engine(self, atm_contract):
        """Test unknown engine names are rejected"""
        with pytest.raises(ConfigurationError, match="engine"):
            PricingJob("j", atm_contract, "gbm", Payoff.european_call(), engine="sobol")

    def test_job_is_pickleable(self):
        """Test jobs survive a round trip through pickle"""
        job = _jobs()[2]
        assert pickle.loads(pickle.dumps(job)) == job


class TestRunPricingJob:
    """Test the job worker"""

    def test_success(self):
        """Test a valid job yields result and statistics"""
        job = _jobs()[0]
        outcome = run_pricing_job(PricingJob(job.name, job.contract, job.scheme_kind, job.payoff, seed=1))
        assert outcome.ok
        assert isinstance(outcome.statistics, StatisticsRecord)
        assert outcome.result.price > 0.0

    def test_failure_is_captured(self, atm_contract, caplog):
        """Test a configuration error becomes an error outcome"""
        job = PricingJob("bad", atm_contract, SchemeKind.GBM, Payoff.asian_put(), seed=1)
        with caplog.at_level(logging.ERROR, logger="mcoptions"):
            outcome = run_pricing_job(job)
        assert not outcome.ok
        assert isinstance(outcome.error, ConfigurationError)
        assert outcome.result is None
        assert "bad" in caplog.text

    def test_seeded_job_matches_direct_run(self):
        """Test the worker reproduces a direct driver call with the same seed"""
        base = _jobs()[1]
        job = PricingJob(base.name, base.contract, base.scheme_kind, base.payoff, seed=99)
        direct = run_simulation(base.contract, base.scheme_kind, base.payoff, NormalVariateSource(seed=99))
        assert run_pricing_job(job).result.price == direct.price


class TestPricingFramework:
    """Test PricingFramework class"""

    def test_framework_initialization(self):
        """Test framework starts empty"""
        fw = PricingFramework()
        assert fw.jobs == {}
        assert fw.outcomes == {}
        assert fw.seed_seq is None

    def test_register_job(self, framework):
        """Test registering a job"""
        job = _jobs()[0]
        framework.register_job(job)
        assert framework.jobs["gbm_put"] is job

    def test_register_job_custom_name(self, framework):
        """Test registering under a different name"""
        framework.register_job(_jobs()[0], name="custom")
        assert "custom" in framework.jobs
        assert framework.jobs["custom"].name == "custom"

    def test_reregister_drops_outcome(self):
        """Test re-registering a name discards its stale outcome"""
        fw = _framework()
        fw.run_job("gbm_put")
        assert "gbm_put" in fw.outcomes
        fw.register_job(_jobs()[0])
        assert "gbm_put" not in fw.outcomes

    def test_run_job(self):
        """Test running a single job"""
        fw = _framework()
        outcome = fw.run_job("euler_put")
        assert isinstance(outcome, JobOutcome)
        assert outcome.ok
        assert outcome.result.scheme_name == "Explicit Euler"
        assert fw.outcomes["euler_put"] is outcome

    def test_run_job_not_found(self, framework):
        """Test running an unregistered job"""
        with pytest.raises(ConfigurationError, match="not found"):
            framework.run_job("missing")

    def test_run_many_returns_requested_order(self):
        """Test outcomes come back keyed and ordered by request"""
        fw = _framework()
        out = fw.run_many(["milstein_asian", "gbm_put"])
        assert list(out) == ["milstein_asian", "gbm_put"]
        assert out["milstein_asian"].result.engine_name == "Mersenne Twister"

    def test_run_many_defaults_to_all(self):
        """Test omitting names runs every registered job"""
        fw = _framework()
        assert set(fw.run_many()) == {"gbm_put", "euler_put", "milstein_asian"}

    def test_seeded_batch_is_reproducible(self):
        """Test two frameworks with the same seed agree"""
        a = _framework().run_many()
        b = _framework().run_many()
        for name in a:
            assert a[name].result.price == b[name].result.price

    def test_different_seeds_differ(self):
        """Test the framework seed changes the draws"""
        a = _framework(1).run_job("gbm_put")
        b = _framework(2).run_job("gbm_put")
        assert a.result.price != b.result.price

    def test_explicit_job_seed_is_kept(self):
        """Test a job's own seed is not replaced by the framework seed"""
        fw = _framework()
        base = _jobs()[0]
        fw.register_job(PricingJob("own", base.contract, base.scheme_kind, base.payoff, seed=7))
        expected = run_simulation(base.contract, base.scheme_kind, base.payoff, NormalVariateSource(seed=7))
        assert fw.run_job("own").result.price == expected.price

    def test_sequential_and_thread_agree(self):
        """Test backend choice does not change seeded results"""
        seq = _framework().run_many(backend="sequential")
        thr = _framework().run_many(backend="thread", n_workers=3)
        for name in seq:
            assert seq[name].result.price == thr[name].result.price
            assert seq[name].statistics.std == thr[name].statistics.std

    def test_process_backend(self):
        """Test the process pool matches the sequential run"""
        seq = _framework().run_many(backend="sequential")
        proc = _framework().run_many(backend="process", n_workers=2, timeout=120)
        assert list(proc) == list(seq)
        for name in seq:
            assert proc[name].result.price == seq[name].result.price

    def test_failed_job_does_not_affect_others(self, atm_contract):
        """Test one failing job leaves the rest of the batch intact"""
        fw = _framework()
        fw.register_job(PricingJob("bad", atm_contract, SchemeKind.EXPLICIT_EULER, Payoff.european_put()))
        out = fw.run_many(backend="thread", n_workers=2)
        assert not out["bad"].ok
        assert "n_steps" in str(out["bad"].error)
        assert out["gbm_put"].ok and out["euler_put"].ok

    def test_progress_callback(self):
        """Test progress is reported once per job"""
        calls = []
        _framework().run_many(progress_callback=lambda k, n: calls.append((k, n)))
        assert calls == [(1, 3), (2, 3), (3, 3)]

    def test_thread_progress_callback(self):
        """Test thread progress counts up once per job on the calling thread"""
        calls = []
        caller = threading.get_ident()

        def record(k, n):
            calls.append((k, n, threading.get_ident()))

        _framework().run_many(backend="thread", n_workers=3, progress_callback=record)
        assert [(k, n) for k, n, _ in calls] == [(1, 3), (2, 3), (3, 3)]
        assert all(ident == caller for _, _, ident in calls)

    def test_duplicate_names_rejected(self):
        """Test a job requested twice in one batch is rejected"""
        fw = _framework()
        with pytest.raises(ConfigurationError, match="Duplicate"):
            fw.run_many(["gbm_put", "euler_put", "gbm_put"])
        assert fw.outcomes == {}

    def test_overflowing_job_reports_error(self):
        """Test a run whose price overflows yields an error outcome"""
        fw = _framework()
        wild = OptionContract(1e200, 0.05, 1.0, 100.0, 100.0, n_simulations=10, n_steps=5)
        fw.register_job(PricingJob("wild", wild, SchemeKind.EXPLICIT_EULER, Payoff.european_call()))
        out = fw.run_many(["wild", "gbm_put"])
        assert isinstance(out["wild"].error, NumericDomainError)
        assert "not finite" in str(out["wild"].error)
        assert out["gbm_put"].ok

    def test_invalid_backend_falls_back(self, caplog):
        """Test an unknown backend warns and runs sequentially"""
        fw = _framework()
        with caplog.at_level(logging.WARNING, logger="mcoptions"):
            out = fw.run_many(backend="gpu")
        assert "Defaulting to 'sequential'" in caplog.text
        assert all(o.ok for o in out.values())

    def test_create_backend(self):
        """Test backend selection"""
        assert isinstance(PricingFramework._create_backend("thread", 2, 1), SequentialBackend)
        assert isinstance(PricingFramework._create_backend("thread", 2, 3), ThreadBackend)
        assert isinstance(PricingFramework._create_backend("process", 2, 3), ProcessBackend)

    def test_backend_worker_count_validated(self):
        """Test worker counts below one are rejected"""
        with pytest.raises(ValueError):
            ThreadBackend(n_workers=0)
        with pytest.raises(ValueError):
            ProcessBackend(n_workers=0)

    def test_empty_batch(self):
        """Test parallel backends accept an empty batch"""
        assert ThreadBackend(2).run([], None) == []
        assert ProcessBackend(2).run([], None) == []


class TestCompareResults:
    """Test cross-job comparisons"""

    @pytest.fixture
    def ran(self):
        fw = _framework()
        fw.run_many()
        return fw

    def test_compare_price(self, ran):
        """Test comparing prices"""
        out = ran.compare_results(["gbm_put", "euler_put"])
        assert out["gbm_put"] == ran.outcomes["gbm_put"].result.price

    @pytest.mark.parametrize("metric", ["price", "exact", "std", "se", "error", "time"])
    def test_compare_all_metrics(self, ran, metric):
        """Test every metric is available"""
        out = ran.compare_results(["gbm_put", "milstein_asian"], metric=metric)
        assert set(out) == {"gbm_put", "milstein_asian"}
        assert all(np.isfinite(v) for v in out.values())

    def test_compare_error(self, ran):
        """Test the error metric is the absolute distance to the benchmark"""
        o = ran.outcomes["euler_put"]
        out = ran.compare_results(["euler_put"], metric="error")
        assert out["euler_put"] == pytest.approx(abs(o.statistics.exact_price - o.result.price))

    def test_compare_no_results(self, framework):
        """Test comparing jobs that never ran"""
        framework.register_job(_jobs()[0])
        with pytest.raises(ValueError, match="No results"):
            framework.compare_results(["gbm_put"])

    def test_compare_failed_job(self, atm_contract):
        """Test comparing a failed job"""
        fw = PricingFramework()
        fw.register_job(PricingJob("bad", atm_contract, SchemeKind.MILSTEIN, Payoff.european_put()))
        fw.run_job("bad")
        with pytest.raises(ValueError, match="failed"):
            fw.compare_results(["bad"])

    def test_compare_invalid_metric(self, ran):
        """Test an unknown metric"""
        with pytest.raises(ValueError, match="Unknown metric"):
            ran.compare_results(["gbm_put"], metric="median")
