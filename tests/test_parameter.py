import asyncio

import pytest

from bench.errors import AggregationError
from bench.question import ParameterMetrics
from runner.parameter import (
    GridPointResult,
    ParameterExecutor,
    analyze_points,
    build_grid,
    parameter_score,
    temperature_values,
)

from conftest import FakeInvoker, failing


def parameter_config(temperature_range=(0.2, 0.8), steps=3, other_params=None):
    return {'parameter': {
        'temperature_range': list(temperature_range),
        'temperature_steps': steps,
        'other_params': other_params or {},
    }}


def point(quality, consistency, **parameters):
    return GridPointResult(parameters=parameters, responses=[], quality=quality, consistency=consistency)


def test_temperature_grid_is_evenly_spaced():
    assert temperature_values([0.2, 0.8], 3) == [0.2, 0.5, 0.8]
    assert temperature_values([0.1, 0.9], 5) == [0.1, 0.3, 0.5, 0.7, 0.9]


def test_grid_crosses_first_extra_parameter():
    grid = build_grid(parameter_config(other_params={'max_tokens': [100, 200]})['parameter'])
    assert grid == [
        {'temperature': 0.2, 'max_tokens': 100},
        {'temperature': 0.2, 'max_tokens': 200},
        {'temperature': 0.5, 'max_tokens': 100},
        {'temperature': 0.5, 'max_tokens': 200},
        {'temperature': 0.8, 'max_tokens': 100},
        {'temperature': 0.8, 'max_tokens': 200},
    ]


def test_analyze_picks_best_weighted_objective():
    points = [point(6, 10, temperature=0.2), point(9, 5, temperature=0.5), point(5, 5, temperature=0.8)]

    metrics = analyze_points(points)

    assert metrics.optimal_parameters == {'temperature': 0.5}
    assert metrics.consistency_across_params == pytest.approx(20 / 3)
    assert set(metrics.parameter_sensitivity) == {'temperature'}


def test_analyze_keeps_first_point_on_ties():
    metrics = analyze_points([point(7, 7, temperature=0.2), point(7, 7, temperature=0.8)])
    assert metrics.optimal_parameters == {'temperature': 0.2}


def test_analyze_without_points_raises():
    with pytest.raises(AggregationError):
        analyze_points([])


def test_temperature_impact_is_capped():
    metrics = analyze_points([point(0, 10, temperature=0.2), point(10, 10, temperature=0.8)])
    assert metrics.temperature_impact == 10


def test_parameter_score():
    metrics = ParameterMetrics(
        temperature_impact=3,
        consistency_across_params=8,
        optimal_parameters={'temperature': 0.5},
        parameter_sensitivity={'temperature': 3},
    )
    assert parameter_score(metrics) == 10


def test_executor_sweeps_grid_then_replays_optimum(providers, question):
    invoker = FakeInvoker({'m': "Paris is the capital of France. It is on the Seine."})
    executor = ParameterExecutor(invoker, providers, call_delay_s=0)

    [result] = asyncio.run(executor.execute(question, ['m'], parameter_config()))

    assert len(invoker.calls) == 3 * 3 + 1
    swept = sorted({c['params']['temperature'] for c in invoker.calls[:-1]})
    assert swept == [0.2, 0.5, 0.8]
    assert invoker.calls[-1]['params'] == result.metrics.optimal_parameters
    assert result.notes.startswith("Optimal parameters found:")


def test_all_sweep_calls_failing_raises(providers, question):
    invoker = FakeInvoker({'m': failing('m')})
    executor = ParameterExecutor(invoker, providers, call_delay_s=0)

    with pytest.raises(AggregationError):
        asyncio.run(executor.execute(question, ['m'], parameter_config()))


def test_failed_final_call_skips_model(providers, question):
    answers = ["Paris."] * 9 + [failing('m')]
    invoker = FakeInvoker({'m': answers})
    executor = ParameterExecutor(invoker, providers, call_delay_s=0)

    results = asyncio.run(executor.execute(question, ['m'], parameter_config()))

    assert results == []


def test_validate_config():
    executor = ParameterExecutor(FakeInvoker())
    assert executor.validate_config(parameter_config())
    assert not executor.validate_config(parameter_config(steps=1))
    assert not executor.validate_config({'parameter': {'temperature_range': [0.1], 'temperature_steps': 3}})


@pytest.mark.parametrize('settings', [
    {'temperature_range': ['low', 'high'], 'temperature_steps': 3},
    {'temperature_range': [0.9, 0.1], 'temperature_steps': 3},
    {'temperature_range': [-0.5, 0.5], 'temperature_steps': 3},
    {'temperature_range': [True, 1], 'temperature_steps': 3},
    {'temperature_range': [0.1, 0.9], 'temperature_steps': 3, 'other_params': {'top_p': 0.9}},
    {'temperature_range': [0.1, 0.9], 'temperature_steps': 3, 'other_params': {'top_p': []}},
])
def test_validate_config_rejects_ill_typed_sections(settings):
    assert not ParameterExecutor(FakeInvoker()).validate_config({'parameter': settings})


def test_validate_config_accepts_value_lists():
    executor = ParameterExecutor(FakeInvoker())
    assert executor.validate_config(parameter_config(temperature_range=(0, 1), other_params={'top_p': [0.8, 0.95]}))
