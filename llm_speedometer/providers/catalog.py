"""
Provider catalog: which providers exist, how to reach them and which
models they serve.

The catalog starts from a small built-in provider list and can be
refreshed from models.dev. The refreshed data is cached on disk for an
hour. Custom providers from the user's config file are merged on top.
"""

import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import aiohttp

from ..errors import ConfigurationError
from ..models import ModelRef, ProviderFamily

MODELS_DEV_URL = "https://models.dev/api.json"
CACHE_TTL_SECONDS = 60 * 60


@dataclass
class CatalogModel:
    id: str
    name: str = ""


@dataclass
class ProviderInfo:
    """A provider as listed in the catalog. Holds no credentials."""

    id: str
    name: str
    family: ProviderFamily
    base_url: str = ""
    models: list[CatalogModel] = field(default_factory=list)
    custom: bool = False

    def model_refs(self) -> list[ModelRef]:
        return [
            ModelRef(
                provider_id=self.id,
                model_id=m.id,
                display_name=m.name or m.id,
                provider_name=self.name,
            )
            for m in self.models
        ]

    def find_model(self, query: str) -> Optional[CatalogModel]:
        """Match a model by full id, id without a ``provider_`` prefix, or name."""
        wanted = query.lower()
        for model in self.models:
            model_id = model.id.lower()
            if model_id == wanted:
                return model
            if "_" in model_id and model_id.split("_", 1)[1] == wanted:
                return model
            if model.name and model.name.lower() == wanted:
                return model
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.family.value,
            "baseUrl": self.base_url,
            "models": [{"id": m.id, "name": m.name} for m in self.models],
        }

    @classmethod
    def from_dict(cls, data: dict, custom: bool = False) -> "ProviderInfo":
        models = data.get("models") or []
        if isinstance(models, dict):
            models = list(models.values())
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            family=ProviderFamily.parse(data.get("type") or "openai-compatible"),
            base_url=data.get("baseUrl") or "",
            models=[CatalogModel(id=m["id"], name=m.get("name") or m["id"]) for m in models if m.get("id")],
            custom=custom,
        )


def _fallback(id, name, family, base_url, models) -> ProviderInfo:
    return ProviderInfo(
        id=id,
        name=name,
        family=family,
        base_url=base_url,
        models=[CatalogModel(model_id, model_name) for model_id, model_name in models],
    )


FALLBACK_PROVIDERS = [
    _fallback("openai", "OpenAI", ProviderFamily.OPENAI_COMPATIBLE, "https://api.openai.com/v1", [
        ("gpt-4o", "GPT-4o"),
        ("gpt-4o-mini", "GPT-4o Mini"),
        ("gpt-4-turbo", "GPT-4 Turbo"),
        ("gpt-3.5-turbo", "GPT-3.5 Turbo"),
    ]),
    _fallback("anthropic", "Anthropic", ProviderFamily.ANTHROPIC, "https://api.anthropic.com/v1", [
        ("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet"),
        ("claude-3-5-haiku-20241022", "Claude 3.5 Haiku"),
        ("claude-3-opus-20240229", "Claude 3 Opus"),
    ]),
    _fallback("openrouter", "OpenRouter", ProviderFamily.OPENAI_COMPATIBLE, "https://openrouter.ai/api/v1", [
        ("anthropic/claude-3.5-sonnet", "Claude 3.5 Sonnet"),
        ("openai/gpt-4o", "GPT-4o"),
        ("openai/gpt-4o-mini", "GPT-4o Mini"),
    ]),
    _fallback("google", "Google", ProviderFamily.GOOGLE, "https://generativelanguage.googleapis.com/v1beta", [
        ("gemini-1.5-pro", "Gemini 1.5 Pro"),
        ("gemini-1.5-flash", "Gemini 1.5 Flash"),
    ]),
]


def default_cache_path() -> Path:
    cache_home = os.getenv("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(cache_home) / "ai-speedometer" / "models.json"


def family_from_npm(npm: Optional[str]) -> ProviderFamily:
    """Infer the wire family from a models.dev ``npm`` package name."""
    if npm:
        if "anthropic" in npm:
            return ProviderFamily.ANTHROPIC
        if "google" in npm and "vertex" not in npm:
            return ProviderFamily.GOOGLE
    return ProviderFamily.OPENAI_COMPATIBLE


def transform_models_dev(data: dict) -> list[ProviderInfo]:
    """Convert the models.dev api.json payload into catalog entries.

    First-party providers (openai, anthropic, google) carry no ``api`` URL
    on models.dev; they keep the built-in base URL for the same id.
    """
    known_urls = {p.id: p.base_url for p in FALLBACK_PROVIDERS}
    providers = []
    for entry in data.values():
        if not isinstance(entry, dict):
            continue
        if not (entry.get("id") and entry.get("name") and entry.get("models")):
            continue
        models = entry["models"]
        if isinstance(models, dict):
            models = list(models.values())
        providers.append(ProviderInfo(
            id=entry["id"],
            name=entry["name"],
            family=family_from_npm(entry.get("npm")),
            base_url=entry.get("api") or entry.get("baseUrl") or known_urls.get(entry["id"], ""),
            models=[
                CatalogModel(id=m["id"], name=m.get("name") or m["id"])
                for m in models
                if isinstance(m, dict) and m.get("id")
            ],
        ))
    return providers


class Catalog:
    """Lists providers and the models they serve."""

    def __init__(
        self,
        cache_path: Optional[Path] = None,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        custom_providers: Optional[list[ProviderInfo]] = None,
        url: str = MODELS_DEV_URL,
        logger: Optional[logging.Logger] = None,
    ):
        self.cache_path = cache_path or default_cache_path()
        self.ttl_seconds = ttl_seconds
        self.custom_providers = list(custom_providers or [])
        self.url = url
        self.logger = logger or logging.getLogger(__name__)
        self._remote: Optional[list[ProviderInfo]] = None

    def _load_cache(self, allow_stale: bool = False) -> Optional[list[ProviderInfo]]:
        if not self.cache_path.exists():
            return None
        try:
            with open(self.cache_path) as f:
                cached = json.load(f)
            timestamp = cached.get("timestamp", 0)
            if not allow_stale and time.time() - timestamp > self.ttl_seconds:
                self.logger.debug("Catalog cache at %s is stale", self.cache_path)
                return None
            return [ProviderInfo.from_dict(p) for p in cached.get("providers", [])]
        except (OSError, ValueError, KeyError, ConfigurationError) as e:
            self.logger.warning("Could not load catalog cache %s: %s", self.cache_path, e)
            return None

    def _save_cache(self, providers: list[ProviderInfo]) -> None:
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.cache_path, "w") as f:
                json.dump({
                    "timestamp": time.time(),
                    "providers": [p.to_dict() for p in providers],
                }, f, indent=2)
        except OSError as e:
            self.logger.warning("Could not save catalog cache %s: %s", self.cache_path, e)

    async def refresh(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        force: bool = False,
    ) -> list[ProviderInfo]:
        """Fetch the models.dev catalog unless a fresh cache exists.

        Falls back to the cached copy (even if stale) and finally to the
        built-in providers when the fetch fails.
        """
        if not force:
            cached = self._load_cache()
            if cached:
                self._remote = cached
                return self.list_providers()

        owns_session = session is None
        if owns_session:
            session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=30))
        try:
            async with session.get(self.url) as response:
                response.raise_for_status()
                data = await response.json(content_type=None)
            providers = transform_models_dev(data)
            if providers:
                self._remote = providers
                self._save_cache(providers)
                self.logger.info("Fetched %d providers from %s", len(providers), self.url)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.logger.warning("Could not fetch provider catalog from %s: %s", self.url, e)
            self._remote = self._load_cache(allow_stale=True)
        finally:
            if owns_session:
                await session.close()
        return self.list_providers()

    def list_providers(self) -> list[ProviderInfo]:
        """All known providers, custom ones first."""
        if self._remote is None:
            self._remote = self._load_cache()
        base = self._remote or FALLBACK_PROVIDERS

        providers = list(self.custom_providers)
        seen = {p.id for p in providers}
        for provider in base:
            if provider.id not in seen:
                providers.append(provider)
                seen.add(provider.id)
        return providers

    def get_provider(self, query: str) -> Optional[ProviderInfo]:
        """Find a provider by id or display name, case-insensitively."""
        wanted = query.lower()
        for provider in self.list_providers():
            if provider.id.lower() == wanted or provider.name.lower() == wanted:
                return provider
        return None

    def models_for(self, provider_id: str) -> list[ModelRef]:
        provider = self.get_provider(provider_id)
        if provider is None:
            raise ConfigurationError(f"Provider '{provider_id}' not found")
        return provider.model_refs()
