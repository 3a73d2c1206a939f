import pytest

from bench.config import DEFAULT_CONFIGURATION, deep_merge, load_config, resolve_env, with_defaults
from bench.errors import ConfigurationError
from bench.question import QuestionCategory, TestType
from bench.quick import QuickSmokeSuite
from bench.suite import SuiteLoader, parse_suite


SUITE_YAML = """
id: geo
name: Geography
test_types: [smoke, qualitative]
models:
  - llama2:7b
  - gpt-3.5-turbo
questions:
  - text: What is the capital of France?
    keywords: [Paris]
  - id: rivers
    text: Name the longest river in Europe.
    category: factual_knowledge
    difficulty: hard
    expected_answer_length: 40
configuration:
  smoke:
    time_limit: 5000
"""


def write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding='utf-8')
    return str(path)


def test_env_placeholders_are_resolved(monkeypatch):
    monkeypatch.setenv('BENCH_KEY', 'secret')
    monkeypatch.delenv('BENCH_MISSING', raising=False)

    resolved = resolve_env({'a': '${BENCH_KEY}', 'b': ['${BENCH_MISSING}', 'plain'], 'c': 3})

    assert resolved == {'a': 'secret', 'b': ['', 'plain'], 'c': 3}


def test_deep_merge_keeps_sibling_defaults():
    merged = deep_merge({'smoke': {'time_limit': 1, 'basic_checks': []}}, {'smoke': {'time_limit': 2}})
    assert merged == {'smoke': {'time_limit': 2, 'basic_checks': []}}


def test_with_defaults_does_not_mutate_defaults():
    config = with_defaults({'stability': {'iteration_count': 9}})
    config['smoke']['basic_checks'].append('x')
    assert DEFAULT_CONFIGURATION['stability']['iteration_count'] == 5
    assert DEFAULT_CONFIGURATION['smoke']['basic_checks'] == []


def test_load_config_fills_benchmark_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv('OPENAI_API_KEY', 'sk-test')
    path = write(tmp_path, 'config.yaml', "models:\n  gpt:\n    api_key: ${OPENAI_API_KEY}\n"
                                          "benchmark:\n  timeout_ms: 5000\n")

    config = load_config(path)

    assert config['models']['gpt']['api_key'] == 'sk-test'
    assert config['benchmark']['timeout_ms'] == 5000
    assert config['benchmark']['stability']['iteration_count'] == 5


def test_missing_or_malformed_files_raise_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(str(tmp_path / 'nope.yaml'))
    with pytest.raises(ConfigurationError):
        load_config(write(tmp_path, 'list.yaml', "- a\n- b\n"))
    with pytest.raises(ConfigurationError):
        load_config(write(tmp_path, 'bad.yaml', "models: [unclosed\n"))


def test_suite_file_is_parsed(tmp_path):
    suite = SuiteLoader(write(tmp_path, 'suite.yaml', SUITE_YAML),
                        base_configuration={'smoke': {'basic_checks': ['proper_length']}}).load()

    assert suite.id == 'geo'
    assert suite.test_types == [TestType.SMOKE, TestType.QUALITATIVE]
    assert suite.models == ['llama2:7b', 'gpt-3.5-turbo']
    first, second = suite.questions
    assert first.id == 'q1'
    assert first.category == QuestionCategory.FACTUAL_KNOWLEDGE
    assert first.keywords == ['Paris']
    assert second.id == 'rivers'
    assert second.expected_answer_length == 40
    assert suite.configuration['smoke'] == {'time_limit': 5000, 'basic_checks': ['proper_length']}
    assert suite.configuration['stability']['iteration_count'] == 5


def test_unknown_test_type_is_rejected():
    with pytest.raises(ConfigurationError, match="unknown test type: fuzz"):
        parse_suite({'test_types': ['fuzz'], 'questions': []})


@pytest.mark.parametrize('question', [
    {'id': 'x'},
    {'text': 'Hi', 'category': 'astrology'},
    'just a string',
])
def test_bad_questions_are_rejected(question):
    with pytest.raises(ConfigurationError):
        parse_suite({'questions': [question]})


def test_quick_suite():
    suite = QuickSmokeSuite.build(['m1', 'm2'])

    assert suite.name == 'Quick Smoke Test'
    assert suite.test_types == [TestType.SMOKE]
    assert [q.id for q in suite.questions] == ['smoke-basic-1', 'smoke-basic-2', 'smoke-basic-3']
    assert suite.configuration['smoke']['time_limit'] == 8000
