import asyncio

import httpx

from bench.prompt import PromptBuilder
from runner.real_data import FALLBACK_CONTEXT, SAMPLE_DATASETS, RealDataExecutor

from conftest import FakeInvoker, failing


def real_data_config(url=None, size=1000):
    return {'real_data': {'data_source_url': url, 'context_size': size}}


def test_without_url_uses_a_sample_dataset(providers):
    executor = RealDataExecutor(FakeInvoker(), providers)

    context = asyncio.run(executor.fetch_context(None))

    assert context in SAMPLE_DATASETS


def test_fetches_external_json():
    def handler(request):
        assert request.url == "https://data.example.com/feed"
        return httpx.Response(200, json={'temperature': 21.5})

    executor = RealDataExecutor(FakeInvoker(), transport=httpx.MockTransport(handler))

    context = asyncio.run(executor.fetch_context("https://data.example.com/feed"))

    assert context.type == 'external'
    assert context.data == {'temperature': 21.5}
    assert context.source == "https://data.example.com/feed"


def test_fetch_failure_falls_back():
    executor = RealDataExecutor(FakeInvoker(), transport=httpx.MockTransport(lambda r: httpx.Response(503)))

    context = asyncio.run(executor.fetch_context("https://data.example.com/feed"))

    assert context is FALLBACK_CONTEXT


def test_prompt_embeds_context_and_question(providers, question):
    invoker = FakeInvoker({'m': "AAPL trades at 175.43, a price increase of 2.1% compared to yesterday."})
    executor = RealDataExecutor(invoker, providers)

    results = asyncio.run(executor.execute(question, ['m', 'bad'], real_data_config()))
    prompt = invoker.calls[0]['prompt']

    assert question.text in prompt
    assert prompt.startswith("Context: here is recent real-world data from ")
    assert len(results) == 2
    assert 0 < results[0].overall_score <= 10
    assert results[0].notes.startswith("Evaluated against real data (")


def test_failing_model_is_skipped(providers, question):
    invoker = FakeInvoker({'bad': failing('bad')})
    executor = RealDataExecutor(invoker, providers)

    results = asyncio.run(executor.execute(question, ['bad', 'good'], real_data_config()))

    assert [r.model_name for r in results] == ['good']


def test_large_context_is_truncated():
    data = {'rows': ['x' * 50 for _ in range(100)]}

    text = PromptBuilder.serialize_context(data, 500)

    assert len(text) == 450 + len(PromptBuilder.TRUNCATION_MARKER)
    assert text.endswith(PromptBuilder.TRUNCATION_MARKER)


def test_validate_config():
    executor = RealDataExecutor(FakeInvoker())
    assert executor.validate_config(real_data_config())
    assert not executor.validate_config(real_data_config(size=0))
