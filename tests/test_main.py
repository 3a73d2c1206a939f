import argparse
import asyncio

import main
from bench.config import with_defaults
from bench.question import TestType


CONFIG = {
    'models': {
        'llama2:7b': {'provider': 'ollama'},
        'gpt': {'provider': 'openai', 'base_url': 'https://x/v1', 'api_key': ''},
    },
    'benchmark': with_defaults({'timeout_ms': 5000}),
}


def cli_args(**overrides):
    values = dict(quick=True, suite=None, models=None, test_types=None, estimate=True, output='unused')
    values.update(overrides)
    return argparse.Namespace(**values)


def test_adapters_inherit_benchmark_timeout():
    adapters = main.build_adapters(CONFIG, ['llama2:7b', 'gpt'])

    assert list(adapters) == ['llama2:7b']
    assert adapters['llama2:7b'].timeout == 5


def test_quick_suite_defaults_to_configured_models():
    suite = main.load_suite(cli_args(), CONFIG)

    assert suite.models == ['llama2:7b', 'gpt']
    assert suite.test_types == [TestType.SMOKE]


def test_cli_filters_override_suite():
    suite = main.load_suite(cli_args(models=['gpt'], test_types=['qualitative']), CONFIG)

    assert suite.models == ['gpt']
    assert suite.test_types == [TestType.QUALITATIVE]


def test_estimate_only_prints(capsys):
    code = asyncio.run(main.run_benchmark(cli_args(), CONFIG))

    assert code == 0
    assert "Estimated duration for 'Quick Smoke Test'" in capsys.readouterr().out
