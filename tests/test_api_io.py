import asyncio

import pytest

from bench.question import ApiIoMetrics
from runner.api_io import (
    ApiIoExecutor,
    PhaseResult,
    RequestOutcome,
    aggregate_performance,
    api_io_score,
)

from conftest import FakeInvoker, SlowInvoker, failing


def api_config(concurrency=5, duration=1000):
    return {'api_io': {'concurrent_requests': concurrency, 'load_test_duration': duration}}


def fast_executor(invoker, providers, **kwargs):
    return ApiIoExecutor(invoker, providers, batch_pause_s=0, stress_pause_s=0, stress_level_ms=200, **kwargs)


def test_single_successful_batch_throughput():
    load = PhaseResult([RequestOutcome(True, 200) for _ in range(5)], duration_ms=1000)

    metrics = aggregate_performance(load, PhaseResult())

    assert metrics.success_rate == 100
    assert metrics.error_rate == 0
    assert metrics.throughput == pytest.approx(5.0)
    assert metrics.average_response_time == 200


def test_throughput_counts_load_phase_only():
    load = PhaseResult([RequestOutcome(True, 100), RequestOutcome(False, 300, 'boom')], duration_ms=2000)
    stress = PhaseResult([RequestOutcome(True, 50) for _ in range(10)], duration_ms=500)

    metrics = aggregate_performance(load, stress)

    assert metrics.throughput == pytest.approx(0.5)
    assert metrics.error_rate == pytest.approx(100 / 12)
    assert metrics.max_response_time == 300
    assert metrics.min_response_time == 50


def test_empty_phases_do_not_divide_by_zero():
    metrics = aggregate_performance(PhaseResult(), PhaseResult())
    assert metrics == ApiIoMetrics(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)


def test_recent_error_rate_looks_at_last_window():
    phase = PhaseResult([RequestOutcome(False, 1)] * 30 + [RequestOutcome(True, 1)] * 20)
    assert phase.recent_error_rate() == 0
    assert phase.recent_error_rate(window=40) == pytest.approx(0.5)


def test_api_io_score_bands():
    fast = ApiIoMetrics(200, 300, 100, 0, 5, 100)
    slow = ApiIoMetrics(6000, 9000, 3000, 25, 0.05, 75)
    assert api_io_score(fast) == 10
    assert api_io_score(slow) == 1


def test_executor_runs_load_and_stress(providers, clock, question):
    invoker = FakeInvoker({'m': "ok"}, clock=clock, latency_ms=200)
    executor = fast_executor(invoker, providers)

    [result] = asyncio.run(executor.execute(question, ['m'], api_config(concurrency=5, duration=1000)))

    assert result.metrics.success_rate == 100
    assert result.metrics.error_rate == 0
    assert result.metrics.throughput > 0
    # one load batch of 5, stress levels 1..10 once each, one final call
    assert len(invoker.calls) == 5 + sum(range(1, 11)) + 1
    assert result.notes == "API performance measured with 5 concurrent requests"


def test_stress_ramp_stops_on_high_error_rate(providers, clock):
    invoker = FakeInvoker({'m': failing('m')}, clock=clock, latency_ms=100)
    executor = fast_executor(invoker, providers)

    phase = asyncio.run(executor.run_stress_test('m', 'ping'))

    assert phase.total == 1
    assert phase.failures == 1


def test_stress_concurrency_is_capped(providers, clock):
    invoker = FakeInvoker({'m': "ok"}, clock=clock, latency_ms=200)
    executor = fast_executor(invoker, providers, max_concurrency=3)

    phase = asyncio.run(executor.run_stress_test('m', 'ping'))

    assert phase.total == 1 + 2 + 3


def test_failing_model_gets_zero_score_result(providers, clock, question):
    invoker = FakeInvoker({'bad': failing('bad')}, clock=clock, latency_ms=200)
    executor = fast_executor(invoker, providers)

    [result] = asyncio.run(executor.execute(question, ['bad'], api_config(concurrency=2, duration=400)))

    assert result.overall_score == 0
    assert result.metrics.error_rate == 100
    assert result.metrics.success_rate == 0
    assert result.notes.startswith("Test failed:")


def test_validate_config():
    executor = ApiIoExecutor(FakeInvoker())
    assert executor.validate_config(api_config())
    assert not executor.validate_config(api_config(concurrency=0))
    assert not executor.validate_config({'api_io': {'concurrent_requests': 5}})


def test_timed_out_batch_members_count_as_failures(providers):
    invoker = SlowInvoker([0, 0.5, 0, 0.5], default="ok")
    executor = fast_executor(invoker, providers)

    outcomes = asyncio.run(executor.run_batch('m', 'ping', 4, timeout_ms=50))

    assert [o.success for o in outcomes] == [True, False, True, False]
    assert all(o.error == "Failed to call model m: timeout after 50ms" for o in outcomes if not o.success)
    phase = PhaseResult(outcomes)
    assert phase.failures == 2
