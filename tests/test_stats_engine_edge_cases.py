import numpy as np
import pytest

from mcoptions.stats_engine import (
    FnMetric,
    StatsContext,
    StatsEngine,
    _clean,
    _ensure_ctx,
    bias_to_target,
    ci_mean,
    ci_mean_chebyshev,
    kurtosis,
    mean,
    mse_to_target,
    percentiles,
    skew,
    std,
)


def test_stats_context_overrides_and_eff_n():
    base = StatsContext(n=20, nan_policy="omit")
    ctx = base.with_overrides(confidence=0.90)
    assert ctx.confidence == 0.90
    assert ctx.eff_n(observed_len=100, finite_count=42) == 42

    # Fall back to declared n when nan_policy != "omit"
    ctx2 = ctx.with_overrides(nan_policy="propagate")
    assert ctx2.eff_n(observed_len=11, finite_count=3) == 20

    # Declared n of zero falls back to the observed length
    assert StatsContext(n=0).eff_n(observed_len=9) == 9


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"confidence": 1.2}, "confidence"),
        ({"confidence": 0.0}, "confidence"),
        ({"percentiles": (-5, 50)}, "percentiles"),
        ({"ddof": -1}, "ddof"),
    ],
)
def test_stats_context_validation_errors(kwargs, message):
    with pytest.raises(ValueError, match=message):
        StatsContext(n=1, **kwargs)


def test_stats_engine_available_and_select_branch():
    metrics = [FnMetric("mean", mean), FnMetric("std", std), FnMetric("noop", lambda x, ctx: 0)]
    engine = StatsEngine(metrics)
    assert engine.available() == ("mean", "std", "noop")

    res = engine.compute(np.array([1.0, 2.0, 3.0]), select=("std",), n=3, confidence=0.95)
    assert set(res) == {"std"}


def test_stats_engine_skips_empty_and_target_metrics():
    metrics = [
        FnMetric("mean", mean),
        FnMetric("empty", lambda x, ctx: {}),
        FnMetric("bias_to_target", bias_to_target),
    ]
    engine = StatsEngine(metrics)
    result = engine.compute(np.array([1.0, 2.0, 3.0]), StatsContext(n=3))
    assert result == {"mean": pytest.approx(2.0)}


def test_stats_engine_propagates_other_errors():
    def boom(x, ctx):
        raise ValueError("boom")

    engine = StatsEngine([FnMetric("boom", boom)])
    with pytest.raises(ValueError, match="boom"):
        engine.compute(np.array([1.0, 2.0]))


def test_ensure_ctx_handles_dict_and_none():
    arr = np.array([1.0, 2.0])
    ctx_from_dict = _ensure_ctx({"confidence": 0.9}, arr)
    assert isinstance(ctx_from_dict, StatsContext)
    assert ctx_from_dict.n == arr.size
    assert ctx_from_dict.confidence == 0.9
    assert _ensure_ctx(None, arr).n == 2


def test_ensure_ctx_rejects_invalid_object():
    with pytest.raises(TypeError):
        _ensure_ctx(42, np.array([1.0, 2.0]))


def test_clean_omit_and_unknown_policy():
    x = np.array([1.0, np.nan, 3.0, np.inf])
    arr, finite = _clean(x, StatsContext(n=4, nan_policy="omit"))
    assert arr.tolist() == [1.0, 3.0]
    assert finite == 2
    with pytest.raises(ValueError, match="nan_policy"):
        _clean(x, StatsContext(n=4, nan_policy="drop"))


def test_mean_omit_and_empty():
    x = np.array([np.nan, 2.0, 4.0])
    assert mean(x, {"nan_policy": "omit"}) == pytest.approx(3.0)
    assert np.isnan(mean(np.array([np.nan]), {"nan_policy": "omit"}))


def test_std_single_point_is_zero():
    assert std(np.array([3.0]), {}) == 0.0


def test_percentiles_empty_sample():
    out = percentiles(np.array([np.nan]), {"nan_policy": "omit", "percentiles": (50,)})
    assert np.isnan(out[50])


def test_skew_and_kurtosis_degenerate():
    assert skew(np.array([1.0, 2.0]), {}) == 0.0
    assert skew(np.full(10, 4.0), {}) == 0.0
    assert kurtosis(np.array([1.0, 2.0, 3.0]), {}) == 0.0


def test_skew_sign():
    x = np.array([0.0, 0.0, 0.0, 0.0, 10.0])
    assert skew(x, {}) > 0.0


def test_ci_mean_small_sample_uses_t():
    res = ci_mean(np.array([1.0, 2.0, 3.0, 4.0]), {})
    assert res["method"] == "t"
    assert res["low"] < 2.5 < res["high"]


def test_ci_mean_requires_two_points():
    assert ci_mean(np.array([1.0]), {}) == {}
    assert ci_mean_chebyshev(np.array([1.0]), {}) == {}


def test_ci_mean_constant_sample_has_zero_width():
    res = ci_mean(np.full(50, 2.0), {})
    assert res["se"] == 0.0
    assert res["low"] == res["high"] == pytest.approx(2.0)


def test_chebyshev_wider_than_normal(sample_data):
    ctx = StatsContext(n=sample_data.size)
    normal = ci_mean(sample_data, ctx)
    cheb = ci_mean_chebyshev(sample_data, ctx)
    assert cheb["low"] < normal["low"]
    assert cheb["high"] > normal["high"]
    assert cheb["method"] == "chebyshev"


def test_bias_and_mse_with_scale():
    x = np.array([2.0, 4.0])
    ctx = StatsContext(n=2, target=1.0, scale=0.5)
    assert bias_to_target(x, ctx) == pytest.approx(0.5)
    s = 0.5 * np.std(x, ddof=1)
    assert mse_to_target(x, ctx) == pytest.approx(s * s / 2 + 0.25)


def test_target_metrics_raise_without_target():
    with pytest.raises(ValueError, match="requires ctx.target"):
        bias_to_target(np.array([1.0, 2.0]), {})
    with pytest.raises(ValueError, match="requires ctx.target"):
        mse_to_target(np.array([1.0, 2.0]), {})
