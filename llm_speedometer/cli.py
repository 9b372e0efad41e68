"""
LLM Speedometer command line.

Usage:
    llm-speedometer <command> [options]

Commands:
    bench       - Benchmark one model, print a JSON record (exit 1 on failure)
    run         - Benchmark several models concurrently and print rankings
    track       - Repeat a full run on an interval, appending to a CSV
    providers   - List known providers and whether credentials are set
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .harness.reporter import ChartReporter, ConsoleReporter, CSVReporter, JSONReporter
from .harness.runner import BenchmarkRunner, RunConfig, Tracker
from .harness.transports import TRANSPORTS, AnthropicSdkTransport, RestTransport
from .instrumentation.logs import LoggingManager
from .instrumentation.traces import Tracer
from .models import ModelRef, ProviderEndpoint
from .providers.catalog import Catalog, ProviderInfo
from .providers.credentials import CredentialStore, custom_providers_from, read_config_file
from .scenarios.definitions import DEFAULT_PROMPT, get_scenario, list_scenarios

logger = LoggingManager.get_logger(__name__)


async def load_context(args) -> tuple[Catalog, CredentialStore]:
    """Build the catalog and credential store for this invocation."""
    config = read_config_file(args.config)
    catalog = Catalog(custom_providers=custom_providers_from(config))
    if not args.offline:
        await catalog.refresh(force=getattr(args, "refresh", False))
    credentials = CredentialStore.from_config(config, catalog)
    return catalog, credentials


def resolve_target(catalog: Catalog, target: str) -> tuple[ProviderInfo, ModelRef]:
    """Resolve ``provider:model`` against the catalog."""
    provider_spec, sep, model_spec = target.partition(":")
    if not sep or not provider_spec or not model_spec:
        raise ConfigurationError(f"Invalid target {target!r}. Use provider:model (e.g. openai:gpt-4o)")

    provider = catalog.get_provider(provider_spec)
    if provider is None:
        available = ", ".join(p.id for p in catalog.list_providers())
        raise ConfigurationError(f"Provider '{provider_spec}' not found. Available: {available}")

    model = provider.find_model(model_spec)
    if model is None:
        available = ", ".join(m.id for m in provider.models)
        raise ConfigurationError(
            f"Model '{model_spec}' not found in provider '{provider.name}'. Available: {available}"
        )

    ref = ModelRef(
        provider_id=provider.id,
        model_id=model.id,
        display_name=model.name or model.id,
        provider_name=provider.name,
    )
    return provider, ref


def build_run_config(args) -> RunConfig:
    prompt, max_tokens = DEFAULT_PROMPT, 500
    if args.scenario:
        scenario = get_scenario(args.scenario)
        if scenario is None:
            raise ConfigurationError(f"Unknown scenario {args.scenario!r}. Available: {list_scenarios()}")
        prompt, max_tokens = scenario.prompt, scenario.max_tokens

    return RunConfig(
        prompt=args.prompt or prompt,
        max_tokens=args.max_tokens or max_tokens,
        temperature=args.temperature,
        method=args.transport,
        max_concurrency=getattr(args, "max_concurrency", None),
        name=args.scenario or "benchmark",
    )


def build_runner(args, credentials: CredentialStore, tracer: Optional[Tracer]) -> BenchmarkRunner:
    return BenchmarkRunner(
        credentials=credentials,
        config=build_run_config(args),
        logger=LoggingManager.get_logger("llm_speedometer.runner"),
        tracer=tracer,
    )


def collect_targets(args, catalog: Catalog, credentials: CredentialStore) -> list[ModelRef]:
    """Models selected by ``--model`` and/or ``--all``."""
    refs: list[ModelRef] = []
    for target in args.model or []:
        _, ref = resolve_target(catalog, target)
        refs.append(ref)

    if args.all:
        wanted = {p.lower() for p in args.provider or []}
        for provider in catalog.list_providers():
            if provider.id not in credentials:
                continue
            if wanted and provider.id.lower() not in wanted and provider.name.lower() not in wanted:
                continue
            refs.extend(provider.model_refs())

    # Keep first occurrence of each model
    unique = list(dict.fromkeys(refs))
    if not unique:
        raise ConfigurationError("No models selected. Use --model provider:model or --all")
    return unique


async def run_bench(args, tracer: Optional[Tracer]) -> int:
    """Headless single benchmark; prints the JSON record to stdout."""
    catalog, credentials = await load_context(args)
    provider, ref = resolve_target(catalog, args.target)

    if args.api_key and provider.id in credentials:
        credentials.override_api_key(provider.id, args.api_key)
    elif args.api_key:
        credentials.add(ProviderEndpoint(
            id=provider.id,
            display_name=provider.name,
            family=provider.family,
            base_url=provider.base_url,
            api_key=args.api_key,
        ))
    elif provider.id not in credentials:
        raise ConfigurationError(
            f"No API key found for provider '{provider.name}'. "
            f"Pass --api-key or configure the provider first"
        )

    runner = build_runner(args, credentials, tracer)
    result = await runner.run_single(runner.config.request_for(ref))
    print(JSONReporter().dumps(result, formatted=args.formatted))
    return 0 if result.success else 1


async def run_batch(args, tracer: Optional[Tracer]) -> int:
    """Benchmark the selected models concurrently and report."""
    catalog, credentials = await load_context(args)
    refs = collect_targets(args, catalog, credentials)
    runner = build_runner(args, credentials, tracer)
    reporter = ConsoleReporter(use_color=not args.no_color)

    print(f"Benchmarking {len(refs)} model(s) via {runner.transport.method}...")
    results = await runner.run_models(refs)
    print(reporter.batch_report(results))

    if args.save_json:
        path = JSONReporter(args.output_dir).save_batch(results, runner.config.name, runner.config.to_dict())
        print(f"\nResults saved to {path}")

    if args.charts:
        charts = ChartReporter(args.output_dir / "charts")
        for path in (charts.throughput_ranking(results), charts.ttft_vs_total_latency(results)):
            if path is not None:
                print(f"Chart saved to {path}")

    return 0 if any(r.success for r in results) else 1


async def run_track(args, tracer: Optional[Tracer]) -> int:
    """Run the selected models every ``--interval`` seconds until interrupted."""
    catalog, credentials = await load_context(args)
    # Without an explicit selection the tracker covers every configured model
    if not args.model:
        args.all = True
    refs = collect_targets(args, catalog, credentials)
    runner = build_runner(args, credentials, tracer)
    csv_reporter = CSVReporter(args.csv)
    tracker = Tracker(
        runner,
        refs,
        csv_reporter,
        console_reporter=ConsoleReporter(use_color=not args.no_color),
        interval_seconds=args.interval,
    )

    print("=" * 70)
    print("LLM PERFORMANCE TRACKER")
    print("=" * 70)
    print(f"Tracking {len(refs)} model(s) every {args.interval:g} seconds")
    print(f"Results will be saved to: {csv_reporter.path}")
    print("Press Ctrl+C to stop tracking\n")

    try:
        await tracker.run(max_cycles=args.cycles)
    except asyncio.CancelledError:
        print(f"\nTracking stopped. Results saved to: {csv_reporter.path}")
        raise
    print(f"\nResults saved to: {csv_reporter.path}")
    return 0


async def run_providers(args, tracer: Optional[Tracer]) -> int:
    """List catalog providers."""
    catalog, credentials = await load_context(args)
    reporter = ConsoleReporter(use_color=not args.no_color)

    providers = catalog.list_providers()
    id_width = max([len(p.id) for p in providers] + [8]) + 2
    print(reporter._color(f"{'Provider':<{id_width}}{'Type':<20}{'Models':>8}  Key", "bold"))
    print("-" * (id_width + 35))
    for provider in providers:
        has_key = reporter._color("yes", "green") if provider.id in credentials else "-"
        print(f"{provider.id:<{id_width}}{provider.family.value:<20}{len(provider.models):>8}  {has_key}")
    return 0


def add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=Path, default=None,
                        help="Config file (default: ~/.config/ai-speedometer/ai-benchmark-config.json)")
    parser.add_argument("--offline", action="store_true",
                        help="Do not fetch the models.dev catalog; use the cache or built-in providers")
    parser.add_argument("--prompt", default=None, help="Prompt sent to every model")
    parser.add_argument("--scenario", default=None, help="Named prompt scenario (see --list-scenarios)")
    parser.add_argument("--max-tokens", type=int, default=None, help="Max output tokens (default: 500)")
    parser.add_argument("--temperature", type=float, default=0.7, help="Sampling temperature (default: 0.7)")
    parser.add_argument("--transport", choices=sorted(TRANSPORTS), default=RestTransport.method,
                        help="How requests are sent (default: rest-api)")
    parser.add_argument("--ai-sdk", dest="transport", action="store_const", const=AnthropicSdkTransport.method,
                        help="Shortcut for --transport anthropic-sdk")
    parser.add_argument("--debug", action="store_true", help="Verbose logging, also written to debug.log")
    parser.add_argument("--log-level", default="WARNING", help="Log level when --debug is not set")
    parser.add_argument("--trace", action="store_true", help="Emit OpenTelemetry spans to the console")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI colors")


def add_selection_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--model", action="append", metavar="PROVIDER:MODEL",
                        help="Model to benchmark (repeatable)")
    parser.add_argument("--all", action="store_true",
                        help="Benchmark every model of every provider with credentials")
    parser.add_argument("--provider", action="append",
                        help="With --all, only these providers (repeatable)")
    parser.add_argument("--max-concurrency", type=int, default=None,
                        help="Cap on simultaneous requests (default: unbounded)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llm-speedometer",
        description="LLM Speedometer - Measure TTFT and tokens/sec of streaming LLM endpoints",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    llm-speedometer bench openai:gpt-4o-mini --formatted
    llm-speedometer bench anthropic:claude-3-5-haiku-20241022 --api-key sk-ant-...
    llm-speedometer run --model openai:gpt-4o --model openrouter:openai/gpt-4o --charts
    llm-speedometer track --all --interval 60
    llm-speedometer providers --refresh
        """,
    )
    parser.add_argument("--list-scenarios", action="store_true", help="List prompt scenarios and exit")
    subparsers = parser.add_subparsers(dest="command")

    bench = subparsers.add_parser("bench", help="Benchmark one model and print JSON")
    bench.add_argument("target", metavar="PROVIDER:MODEL")
    bench.add_argument("--api-key", default=None, help="API key to use instead of the configured one")
    bench.add_argument("--formatted", action="store_true", help="Pretty-print the JSON output")
    add_common_options(bench)

    run = subparsers.add_parser("run", help="Benchmark models concurrently and rank them")
    add_selection_options(run)
    run.add_argument("--output-dir", type=Path, default=Path("results"),
                     help="Directory for JSON results and charts (default: results/)")
    run.add_argument("--save-json", action="store_true", help="Save results as JSON")
    run.add_argument("--charts", action="store_true", help="Save matplotlib charts")
    add_common_options(run)

    track = subparsers.add_parser("track", help="Benchmark repeatedly, appending to a CSV")
    add_selection_options(track)
    track.add_argument("--interval", type=float, default=60.0, help="Seconds between cycles (default: 60)")
    track.add_argument("--cycles", type=int, default=None, help="Stop after this many cycles")
    track.add_argument("--csv", type=Path, default=None,
                       help="CSV file (default: llm_benchmark_results_<timestamp>.csv)")
    add_common_options(track)

    providers = subparsers.add_parser("providers", help="List known providers")
    providers.add_argument("--refresh", action="store_true", help="Force a models.dev catalog refresh")
    add_common_options(providers)

    return parser


COMMANDS = {
    "bench": run_bench,
    "run": run_batch,
    "track": run_track,
    "providers": run_providers,
}


async def dispatch(args) -> int:
    tracer = Tracer().initialize() if args.trace else None
    try:
        return await COMMANDS[args.command](args, tracer)
    finally:
        if tracer is not None:
            tracer.shutdown()


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_scenarios:
        for category, names in list_scenarios().items():
            print(f"{category}: {', '.join(names)}")
        return 0
    if not args.command:
        parser.print_help()
        return 1

    if args.debug:
        LoggingManager.setup_logging("DEBUG", log_file=Path("debug.log"))
    else:
        LoggingManager.setup_logging(args.log_level)

    try:
        return asyncio.run(dispatch(args))
    except KeyboardInterrupt:
        if args.command == "track":
            print("\nTracking stopped by user")
            return 0
        print("\nBenchmark interrupted by user", file=sys.stderr)
        return 1
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print(f"\nError: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
