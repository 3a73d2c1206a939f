import copy
import os
import re
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigurationError


_ENV_PATTERN = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")

DEFAULT_CONFIGURATION: Dict[str, Any] = {
    'max_concurrent_tests': 1,
    'timeout_ms': 30000,
    'retry_count': 1,
    'qualitative': {
        'human_evaluation_required': False,
        'auto_evaluation_weight': 1.0,
    },
    'stability': {
        'iteration_count': 5,
        'consistency_threshold': 0.7,
    },
    'api_io': {
        'concurrent_requests': 5,
        'load_test_duration': 30000,
    },
    'real_data': {
        'data_source_url': None,
        'context_size': 1000,
    },
    'parameter': {
        'temperature_range': [0.1, 0.9],
        'temperature_steps': 5,
        'other_params': {},
    },
    'prompt_alternative': {
        'prompt_variants': [],
        'evaluation_method': 'quality',
    },
    'smoke': {
        'time_limit': 10000,
        'basic_checks': [],
    },
}


def resolve_env(value):
    if isinstance(value, dict):
        return {k: resolve_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_env(v) for v in value]
    if isinstance(value, str):
        m = _ENV_PATTERN.match(value.strip())
        if m:
            return os.environ.get(m.group(1), "")
    return value


def deep_merge(base: Dict[str, Any], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def with_defaults(configuration: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return deep_merge(DEFAULT_CONFIGURATION, configuration)


def load_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"cannot read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return resolve_env(data)


def load_config(config_path: str) -> Dict[str, Any]:
    """Load the CLI config file (``models:``, ``logging:``, ``benchmark:``)."""
    cfg = load_yaml(config_path)
    cfg['benchmark'] = with_defaults(cfg.get('benchmark'))
    return cfg
