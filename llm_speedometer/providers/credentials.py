"""
Credential store backed by ``ai-benchmark-config.json``.

File layout::

    {
      "verifiedProviders": {"openai": "sk-..."},
      "customProviders": [
        {"id": "my-proxy", "name": "My Proxy", "type": "openai-compatible",
         "baseUrl": "https://proxy.example/v1", "apiKey": "...",
         "models": [{"id": "llama-3", "name": "Llama 3"}]}
      ]
    }

Verified providers only store a key; their URL and protocol family come
from the catalog. An environment variable ``<PROVIDER_ID>_API_KEY``
overrides any stored key.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Mapping, Optional

from ..errors import ConfigurationError
from ..models import ProviderEndpoint
from .catalog import Catalog, ProviderInfo

CONFIG_FILENAME = "ai-benchmark-config.json"


def default_config_path() -> Path:
    override = os.getenv("SPEEDOMETER_CONFIG")
    if override:
        return Path(override)
    config_home = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / "ai-speedometer" / CONFIG_FILENAME


def api_key_env_var(provider_id: str) -> str:
    """``openrouter`` -> ``OPENROUTER_API_KEY``, ``zai-code`` -> ``ZAI_CODE_API_KEY``."""
    return re.sub(r"[^A-Za-z0-9]", "_", provider_id).upper() + "_API_KEY"


def read_config_file(path: Optional[Path] = None, logger: Optional[logging.Logger] = None) -> dict:
    """Read the config file, returning an empty config if it is missing or broken."""
    logger = logger or logging.getLogger(__name__)
    path = path or default_config_path()
    empty = {"verifiedProviders": {}, "customProviders": []}
    if not path.exists():
        return empty
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return empty
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected a JSON object", path)
        return empty
    data.setdefault("verifiedProviders", {})
    data.setdefault("customProviders", [])
    return data


def custom_providers_from(config: dict, logger: Optional[logging.Logger] = None) -> list[ProviderInfo]:
    """Catalog entries for the custom providers in a config dict."""
    logger = logger or logging.getLogger(__name__)
    providers = []
    for entry in config.get("customProviders") or []:
        try:
            providers.append(ProviderInfo.from_dict(entry, custom=True))
        except (KeyError, TypeError, ConfigurationError) as e:
            logger.warning("Skipping malformed custom provider %r: %s", entry, e)
    return providers


class CredentialStore:
    """Resolves provider ids to endpoints with credentials."""

    def __init__(self, endpoints: Optional[Mapping[str, ProviderEndpoint]] = None):
        self._endpoints: dict[str, ProviderEndpoint] = dict(endpoints or {})

    def __contains__(self, provider_id: str) -> bool:
        return provider_id in self._endpoints

    def __len__(self) -> int:
        return len(self._endpoints)

    @property
    def provider_ids(self) -> list[str]:
        return list(self._endpoints)

    def add(self, endpoint: ProviderEndpoint) -> None:
        self._endpoints[endpoint.id] = endpoint

    def endpoint_for(self, provider_id: str) -> ProviderEndpoint:
        """Return the endpoint for a provider or raise ConfigurationError."""
        endpoint = self._endpoints.get(provider_id)
        if endpoint is None:
            raise ConfigurationError(f"No credentials configured for provider {provider_id}")
        return endpoint

    def override_api_key(self, provider_id: str, api_key: str) -> None:
        self._endpoints[provider_id] = self.endpoint_for(provider_id).with_api_key(api_key)

    @classmethod
    def from_config(
        cls,
        config: dict,
        catalog: Catalog,
        environ: Optional[Mapping[str, str]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "CredentialStore":
        """Build endpoints for every catalog provider that has a key.

        Keys come from ``verifiedProviders``, a custom provider's
        ``apiKey``, or the provider's environment variable, in rising
        order of precedence.
        """
        logger = logger or logging.getLogger(__name__)
        environ = os.environ if environ is None else environ

        stored: dict[str, str] = {}
        verified = config.get("verifiedProviders") or {}
        if isinstance(verified, dict):
            stored.update({k: v for k, v in verified.items() if isinstance(v, str)})
        for entry in config.get("customProviders") or []:
            if isinstance(entry, dict) and entry.get("id") and entry.get("apiKey"):
                stored[entry["id"]] = entry["apiKey"]

        store = cls()
        for provider in catalog.list_providers():
            api_key = environ.get(api_key_env_var(provider.id)) or stored.get(provider.id)
            if not api_key:
                continue
            store.add(ProviderEndpoint(
                id=provider.id,
                display_name=provider.name,
                family=provider.family,
                base_url=provider.base_url,
                api_key=api_key,
            ))
            logger.debug("Loaded credentials for %s (key ...%s)", provider.id, api_key[-4:])

        unknown = set(stored) - set(store.provider_ids)
        for provider_id in sorted(unknown):
            logger.warning("Stored key for unknown provider %s ignored", provider_id)
        return store
