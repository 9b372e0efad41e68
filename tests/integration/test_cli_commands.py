"""Integration tests for CLI commands and catalog refresh against local servers."""

import csv
import json

import pytest
from aiohttp import web

from llm_speedometer.cli import build_parser, dispatch
from llm_speedometer.providers.catalog import Catalog, FALLBACK_PROVIDERS

from ..helpers import stream_handler, write_config
from ..test_const import OPENAI_WITH_USAGE

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.delenv("LOCAL_API_KEY", raising=False)


async def local_config(fake_provider, tmp_path):
    base, app = await fake_provider({"/v1/chat/completions": stream_handler(OPENAI_WITH_USAGE)})
    path = write_config(tmp_path / "config.json", {
        "verifiedProviders": {},
        "customProviders": [{
            "id": "local",
            "name": "Local",
            "type": "openai-compatible",
            "baseUrl": f"{base}/v1",
            "apiKey": "local-key",
            "models": [{"id": "test-model", "name": "Test Model"}],
        }],
    })
    return path, app


def parse(*argv):
    return build_parser().parse_args([str(a) for a in argv])


class TestCommands:
    """Test each command end to end with --offline."""

    @pytest.mark.asyncio
    async def test_bench_prints_json(self, fake_provider, tmp_path, capsys):
        """Test bench prints one compact JSON record and exits 0."""
        config, app = await local_config(fake_provider, tmp_path)

        code = await dispatch(parse("bench", "local:test-model", "--config", config, "--offline"))

        record = json.loads(capsys.readouterr().out)
        assert code == 0
        assert record["success"] is True
        assert record["model"] == "Test Model"
        assert record["totalTokens"] == 30
        assert app["requests"][0]["headers"]["Authorization"] == "Bearer local-key"

    @pytest.mark.asyncio
    async def test_bench_api_key_override(self, fake_provider, tmp_path, capsys):
        """Test --api-key replaces the configured key."""
        config, app = await local_config(fake_provider, tmp_path)

        await dispatch(parse("bench", "local:test-model", "--config", config, "--offline",
                             "--api-key", "cli-key"))

        assert app["requests"][0]["headers"]["Authorization"] == "Bearer cli-key"

    @pytest.mark.asyncio
    async def test_bench_failure_exit_code(self, tmp_path, capsys):
        """Test a failed benchmark prints a record and exits 1."""
        config = write_config(tmp_path / "config.json", {
            "customProviders": [{
                "id": "local", "name": "Local", "type": "openai-compatible",
                "baseUrl": "http://127.0.0.1:9/v1", "apiKey": "k",
                "models": [{"id": "test-model"}],
            }],
        })

        code = await dispatch(parse("bench", "local:test-model", "--config", config, "--offline"))

        record = json.loads(capsys.readouterr().out)
        assert code == 1
        assert record["success"] is False
        assert record["error"]

    @pytest.mark.asyncio
    async def test_run_reports_and_saves(self, fake_provider, tmp_path, capsys):
        """Test run prints rankings and saves JSON."""
        config, _ = await local_config(fake_provider, tmp_path)
        output_dir = tmp_path / "results"

        code = await dispatch(parse("run", "--model", "local:test-model", "--config", config, "--offline",
                                    "--no-color", "--save-json", "--output-dir", output_dir))

        out = capsys.readouterr().out
        assert code == 0
        assert "TOKENS PER SECOND RANKING (higher is better)" in out
        saved = list(output_dir.glob("benchmark_*.json"))
        assert len(saved) == 1
        assert json.loads(saved[0].read_text())["summary"]["successful"] == 1

    @pytest.mark.asyncio
    async def test_track_writes_csv(self, fake_provider, tmp_path, capsys):
        """Test track runs the requested cycles into the CSV."""
        config, _ = await local_config(fake_provider, tmp_path)
        csv_path = tmp_path / "track.csv"

        code = await dispatch(parse("track", "--all", "--config", config, "--offline", "--no-color",
                                    "--provider", "local", "--interval", "0", "--cycles", "2",
                                    "--csv", csv_path))

        with open(csv_path, newline="") as f:
            rows = list(csv.reader(f))
        assert code == 0
        assert len(rows) == 3
        assert rows[1][1] == "Local+Test Model"

    @pytest.mark.asyncio
    async def test_providers_lists_custom_first(self, fake_provider, tmp_path, capsys):
        """Test the provider listing marks configured keys."""
        config, _ = await local_config(fake_provider, tmp_path)

        code = await dispatch(parse("providers", "--config", config, "--offline", "--no-color"))

        lines = capsys.readouterr().out.splitlines()
        assert code == 0
        assert lines[2].startswith("local")
        assert lines[2].rstrip().endswith("yes")


class TestCatalogRefresh:
    """Test fetching models.dev data over HTTP."""

    @pytest.mark.asyncio
    async def test_refresh_writes_cache(self, fake_provider, tmp_path):
        """Test a successful fetch replaces the fallback and is cached."""
        payload = {
            "zai": {
                "id": "zai", "name": "Z.AI", "npm": "@ai-sdk/openai-compatible",
                "api": "https://api.z.ai/api/paas/v4",
                "models": {"glm-4.5": {"id": "glm-4.5", "name": "GLM-4.5"}},
            },
        }

        async def api_json(request):
            return web.json_response(payload)

        base, _ = await fake_provider({}, get_routes={"/api.json": api_json})
        cache = tmp_path / "models.json"
        catalog = Catalog(cache_path=cache, url=f"{base}/api.json")

        providers = await catalog.refresh()

        assert [p.id for p in providers] == ["zai"]
        assert cache.exists()
        assert [p.id for p in Catalog(cache_path=cache).list_providers()] == ["zai"]

    @pytest.mark.asyncio
    async def test_refresh_failure_uses_fallback(self, fake_provider, tmp_path):
        """Test a server error leaves the built-in providers in place."""

        async def broken(request):
            return web.Response(status=500, text="oops")

        base, _ = await fake_provider({}, get_routes={"/api.json": broken})
        catalog = Catalog(cache_path=tmp_path / "models.json", url=f"{base}/api.json")

        providers = await catalog.refresh(force=True)

        assert [p.id for p in providers] == [p.id for p in FALLBACK_PROVIDERS]
