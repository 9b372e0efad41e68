"""Unit tests for CLI parsing and target resolution."""

import pytest

from llm_speedometer.cli import build_parser, build_run_config, collect_targets, main, resolve_target
from llm_speedometer.errors import ConfigurationError
from llm_speedometer.providers.catalog import Catalog
from llm_speedometer.providers.credentials import CredentialStore
from llm_speedometer.scenarios import DEFAULT_PROMPT, get_scenario, list_scenarios

from ..helpers import make_endpoint


@pytest.fixture
def catalog(tmp_path):
    return Catalog(cache_path=tmp_path / "models.json")


def parse(*argv):
    return build_parser().parse_args(list(argv))


class TestParser:
    """Test argument parsing."""

    def test_bench_defaults(self):
        """Test bench defaults match the documented request settings."""
        args = parse("bench", "openai:gpt-4o")
        assert args.command == "bench"
        assert args.target == "openai:gpt-4o"
        assert args.transport == "rest-api"
        assert args.temperature == 0.7
        assert args.max_tokens is None
        assert not args.formatted

    def test_ai_sdk_shortcut(self):
        """Test --ai-sdk selects the SDK transport."""
        assert parse("bench", "anthropic:claude", "--ai-sdk").transport == "anthropic-sdk"

    def test_run_selection(self):
        """Test repeated --model and --provider flags."""
        args = parse("run", "--model", "openai:gpt-4o", "--model", "google:gemini-1.5-flash",
                     "--max-concurrency", "2")
        assert args.model == ["openai:gpt-4o", "google:gemini-1.5-flash"]
        assert args.max_concurrency == 2

    def test_track_options(self, tmp_path):
        """Test tracker interval, cycles and CSV path."""
        args = parse("track", "--all", "--interval", "5", "--cycles", "3", "--csv", str(tmp_path / "t.csv"))
        assert args.interval == 5.0
        assert args.cycles == 3
        assert args.csv == tmp_path / "t.csv"

    def test_unknown_transport_rejected(self):
        """Test --transport only accepts known methods."""
        with pytest.raises(SystemExit):
            parse("bench", "openai:gpt-4o", "--transport", "carrier-pigeon")


class TestResolveTarget:
    """Test provider:model resolution."""

    def test_resolves_by_id(self, catalog):
        """Test a fallback provider and model resolve."""
        provider, ref = resolve_target(catalog, "openai:gpt-4o-mini")
        assert provider.id == "openai"
        assert ref.model_id == "gpt-4o-mini"
        assert ref.display_name == "GPT-4o Mini"
        assert ref.provider_name == "OpenAI"

    def test_model_ids_may_contain_colons_and_slashes(self, catalog):
        """Test only the first colon separates provider from model."""
        _, ref = resolve_target(catalog, "OpenRouter:openai/gpt-4o")
        assert ref.provider_id == "openrouter"
        assert ref.model_id == "openai/gpt-4o"

    @pytest.mark.parametrize("target, message", [
        ("gpt-4o", "Invalid target"),
        ("openai:", "Invalid target"),
        ("nope:gpt-4o", "Provider 'nope' not found"),
        ("openai:gpt-99", "Model 'gpt-99' not found"),
    ])
    def test_errors(self, catalog, target, message):
        """Test bad targets are configuration errors."""
        with pytest.raises(ConfigurationError, match=message):
            resolve_target(catalog, target)


class TestRunConfig:
    """Test prompt and token settings from arguments."""

    def test_defaults(self):
        """Test the default prompt and token limit."""
        config = build_run_config(parse("run", "--all"))
        assert config.prompt == DEFAULT_PROMPT
        assert config.max_tokens == 500
        assert config.method == "rest-api"
        assert config.max_concurrency is None

    def test_scenario(self):
        """Test a scenario sets prompt and token limit."""
        config = build_run_config(parse("run", "--all", "--scenario", "short_factual"))
        scenario = get_scenario("short_factual")
        assert config.prompt == scenario.prompt
        assert config.max_tokens == scenario.max_tokens
        assert config.name == "short_factual"

    def test_explicit_values_override_scenario(self):
        """Test --prompt and --max-tokens win over the scenario."""
        config = build_run_config(parse("run", "--all", "--scenario", "long_essay",
                                        "--prompt", "Say hi", "--max-tokens", "20"))
        assert config.prompt == "Say hi"
        assert config.max_tokens == 20

    def test_unknown_scenario(self):
        """Test an unknown scenario name is rejected."""
        with pytest.raises(ConfigurationError, match="Unknown scenario"):
            build_run_config(parse("run", "--all", "--scenario", "nope"))


class TestCollectTargets:
    """Test model selection."""

    def test_all_limited_to_credentialed_providers(self, catalog):
        """Test --all only includes providers with credentials."""
        credentials = CredentialStore({"google": make_endpoint("google")})
        refs = collect_targets(parse("run", "--all"), catalog, credentials)
        assert refs
        assert {r.provider_id for r in refs} == {"google"}

    def test_duplicates_removed(self, catalog):
        """Test a model named twice is benchmarked once."""
        args = parse("run", "--model", "openai:gpt-4o", "--model", "openai:GPT-4o")
        refs = collect_targets(args, catalog, CredentialStore())
        assert len(refs) == 1

    def test_nothing_selected(self, catalog):
        """Test an empty selection is an error."""
        with pytest.raises(ConfigurationError, match="No models selected"):
            collect_targets(parse("run"), catalog, CredentialStore())


class TestMain:
    """Test the entry point."""

    def test_list_scenarios(self, capsys):
        """Test --list-scenarios prints every category."""
        assert main(["--list-scenarios"]) == 0
        out = capsys.readouterr().out
        for category, names in list_scenarios().items():
            assert category in out
            assert all(name in out for name in names)

    def test_no_command(self, capsys):
        """Test running without a command prints help and fails."""
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()
