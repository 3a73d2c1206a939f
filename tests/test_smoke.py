import asyncio

from bench.question import SmokeMetrics, TestType
from bench.quick import QuickSmokeSuite
from runner.smoke import SmokeExecutor, smoke_score

from conftest import FakeInvoker, SlowInvoker, failing


def smoke_config(time_limit=8000, basic_checks=None):
    return {'smoke': {'time_limit': time_limit, 'basic_checks': basic_checks or []}}


def test_quick_answer_within_limit_scores_ten(providers, clock):
    question = QuickSmokeSuite.essential_questions()[0]
    invoker = FakeInvoker({'m': "The answer is 4."}, clock=clock, latency_ms=500)
    executor = SmokeExecutor(invoker, providers)

    [result] = asyncio.run(executor.execute(question, ['m'], smoke_config()))

    assert result.metrics == SmokeMetrics(True, True, True, True)
    assert result.overall_score == 10
    assert result.notes == "Quick smoke test (500ms)"
    assert result.test_type == TestType.SMOKE


def test_smoke_uses_low_temperature_and_short_answers(providers):
    invoker = FakeInvoker()
    executor = SmokeExecutor(invoker, providers)

    asyncio.run(executor.execute(QuickSmokeSuite.essential_questions()[0], ['m'], smoke_config()))

    assert invoker.calls[0]['params'] == {'temperature': 0.1, 'max_tokens': 150}


def test_slow_answer_loses_time_points(providers, clock):
    question = QuickSmokeSuite.essential_questions()[0]
    invoker = FakeInvoker({'m': "The answer is 4."}, clock=clock, latency_ms=9000)
    executor = SmokeExecutor(invoker, providers)

    [result] = asyncio.run(executor.execute(question, ['m'], smoke_config(time_limit=8000)))

    assert result.metrics.within_time_limit is False
    assert result.overall_score == 8


def test_failed_call_yields_zero_score_result(providers):
    invoker = FakeInvoker({'bad': failing('bad'), 'good': "The answer is 4."})
    executor = SmokeExecutor(invoker, providers)
    question = QuickSmokeSuite.essential_questions()[0]

    results = asyncio.run(executor.execute(question, ['bad', 'good'], smoke_config()))

    assert [r.model_name for r in results] == ['bad', 'good']
    bad = results[0]
    assert bad.overall_score == 0
    assert bad.notes.startswith("Smoke test failed:")
    assert bad.response.response.startswith("ERROR:")
    assert not bad.metrics.basic_functionality
    assert not bad.metrics.no_errors


def test_custom_checks_gate_basic_functionality(providers):
    question = QuickSmokeSuite.essential_questions()[0]
    invoker = FakeInvoker({'m': "The answer is four."})
    executor = SmokeExecutor(invoker, providers)

    [result] = asyncio.run(executor.execute(question, ['m'], smoke_config(basic_checks=['contains_numbers'])))

    assert result.metrics.basic_functionality is False
    assert result.overall_score == 7


def test_smoke_score_weights():
    assert smoke_score(SmokeMetrics(True, False, False, False)) == 3
    assert smoke_score(SmokeMetrics(False, True, False, False)) == 3
    assert smoke_score(SmokeMetrics(False, False, True, True)) == 4


def test_validate_config():
    executor = SmokeExecutor(FakeInvoker())
    assert executor.validate_config(smoke_config())
    assert not executor.validate_config(smoke_config(time_limit=0))
    assert not executor.validate_config({'smoke': {'time_limit': 'fast'}})


def test_estimate_uses_time_limit():
    executor = SmokeExecutor(FakeInvoker(), time_limit_ms=8000)
    assert executor.get_estimated_duration(3, 2) == 3 * 2 * 10000


def test_call_past_time_limit_is_a_zero_score_timeout(providers):
    invoker = SlowInvoker([0.5], default="The answer is 4.")
    executor = SmokeExecutor(invoker, providers)
    question = QuickSmokeSuite.essential_questions()[0]

    [result] = asyncio.run(executor.execute(question, ['m'], smoke_config(time_limit=50)))

    assert result.overall_score == 0
    assert result.notes == "Smoke test failed: Failed to call model m: timeout after 50ms"
    assert not result.metrics.basic_functionality
    assert invoker.calls == []
