import argparse
import asyncio
import logging
import sys
from datetime import datetime

from bench.config import load_config
from bench.errors import BenchmarkError, ConfigurationError
from bench.logger import setup_logging
from bench.question import BenchmarkExecution, TestType
from bench.quick import QuickSmokeSuite
from bench.suite import SuiteLoader
from models.factory import ModelFactory
from models.invoker import AdapterInvoker
from report.generator import ReportGenerator
from runner.orchestrator import BenchmarkOrchestrator


log = logging.getLogger(__name__)


def print_progress(execution: BenchmarkExecution):
    print(f"\rProgress: {execution.completed_tests}/{execution.total_tests} ({execution.progress}%)"
          f" - failed {execution.failed_tests}", end="", flush=True)


def build_adapters(config: dict, model_ids):
    benchmark_config = config.get("benchmark") or {}
    models_config = config.get("models", {}) or {}
    if model_ids:
        models_config = {k: v for k, v in models_config.items() if k in model_ids}

    merged_models_config = {}
    for model_id, model_cfg in models_config.items():
        cfg = dict(model_cfg or {})
        cfg.setdefault("timeout", int(benchmark_config.get("timeout_ms", 30000)) / 1000)
        merged_models_config[model_id] = cfg
    return ModelFactory.create_all(merged_models_config)


def load_suite(args, config: dict):
    if args.quick:
        models = args.models or list((config.get("models") or {}).keys())
        suite = QuickSmokeSuite.build(models)
    else:
        suite = SuiteLoader(args.suite, base_configuration=config.get("benchmark")).load()

    if args.models:
        suite.models = list(args.models)
    if args.test_types:
        suite.test_types = [TestType(t) for t in args.test_types]
    return suite


async def run_benchmark(args, config: dict) -> int:
    suite = load_suite(args, config)

    adapters = build_adapters(config, suite.models)
    missing = [m for m in suite.models if m not in adapters]
    if missing:
        log.warning("no usable adapter configured for: %s", ", ".join(missing))

    orchestrator = BenchmarkOrchestrator(AdapterInvoker(adapters), on_progress_update=print_progress)

    if args.estimate:
        seconds = orchestrator.get_estimated_duration(suite) / 1000
        print(f"Estimated duration for '{suite.name}': {seconds / 60:.1f} min ({seconds:.0f} s)")
        return 0

    print(f"Running '{suite.name}': {len(suite.questions)} questions x {len(suite.models)} models "
          f"x {len(suite.test_types)} test types")
    execution = await orchestrator.run_suite(suite)
    print()

    paths = ReportGenerator(suite, args.output).generate(execution)
    print(f"Status: {execution.status.value}")
    print(f"Report: {paths['report']}")
    print(f"Data saved in: {args.output}")
    return 0 if execution.status.value == "completed" else 1


def main():
    arg_parser = argparse.ArgumentParser(description="Multi-strategy LLM benchmark runner")
    arg_parser.add_argument("--config", default="config.yaml", help="config file (models, logging, benchmark defaults)")
    arg_parser.add_argument("--suite", default="suites/example.yaml", help="suite file")
    arg_parser.add_argument("--output", default=None, help="output directory")
    arg_parser.add_argument("--models", nargs="+", help="only run these model ids")
    arg_parser.add_argument("--test-types", nargs="+", choices=[t.value for t in TestType],
                            help="only run these test types")
    arg_parser.add_argument("--quick", action="store_true", help="run the built-in quick smoke suite")
    arg_parser.add_argument("--estimate", action="store_true", help="print the estimated duration and exit")

    args = arg_parser.parse_args()
    if args.output is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        args.output = f"results/{timestamp}"

    try:
        config = load_config(args.config)
        setup_logging(config)
        code = asyncio.run(run_benchmark(args, config))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        code = 2
    except BenchmarkError as e:
        print(f"Error: {e}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
