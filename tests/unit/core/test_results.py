import pytest

from microbench.assertion.time_unit import TimeUnit
from microbench.core.exceptions import InvalidTimeUnit
from microbench.core.models import ParameterSet
from microbench.core.results import Iteration, SubjectResult, BenchmarkResult, VariantResult, variant_measurement


def test_iteration_time_in_any_unit():
    iteration = Iteration(0, ParameterSet(), 1500.0)
    assert iteration.get_time() == 1500.0
    assert iteration.get_time("ms") == pytest.approx(1.5)
    assert iteration.get_time(TimeUnit.SECONDS) == pytest.approx(0.0015)
    with pytest.raises(InvalidTimeUnit):
        iteration.get_time("fortnight")


def test_variant_measurement_lists_iterations():
    ps = ParameterSet({"n": 1})
    variant = VariantResult(0, ps, [Iteration(0, ps, 10.0, 4, 8), Iteration(1, ps, 30.0, 0, 16)])
    subject = SubjectResult("bench_a", groups=["fast"], variants=[variant])
    measurement = variant_measurement(BenchmarkResult("B"), subject, variant, context="ci")
    assert measurement["mean"] == 20.0
    assert measurement["time"] == [10.0, 30.0]
    assert measurement["memory"] == [4, 0]
    assert measurement["mem_peak"] == 16
    assert measurement["group"] == ["fast"]
    assert measurement["run"] is None
