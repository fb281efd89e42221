"""Per-provider settings loader."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from .discovery import DEFAULT_DISCOVERY_TIMEOUT_MS, DEFAULT_OLLAMA_BASE_URL, DiscoveryConfig, OLLAMA_PROVIDER
from .selection import DEFAULT_PREFERRED_PROVIDERS

_PROVIDER_FILE = Path(__file__).resolve().parent.parent.parent / "config" / "llm_providers.yaml"


@dataclass
class UserModelPreferences:
    """Generation parameters a user configured for a provider."""

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    extended_thinking: Optional[bool] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> Optional["UserModelPreferences"]:
        if not data:
            return None
        return cls(
            temperature=data.get("temperature"),
            max_tokens=data.get("max_tokens", data.get("maxTokens")),
            extended_thinking=data.get("extended_thinking", data.get("extendedThinking")),
        )


@dataclass
class ProviderSettings:
    name: str
    enabled: bool = True
    base_url: Optional[str] = None
    timeout_ms: Optional[int] = None
    api_key_env: Optional[str] = None
    user_preferences: Optional[UserModelPreferences] = None

    def copy(self) -> "ProviderSettings":
        return ProviderSettings(
            name=self.name,
            enabled=self.enabled,
            base_url=self.base_url,
            timeout_ms=self.timeout_ms,
            api_key_env=self.api_key_env,
            user_preferences=(
                UserModelPreferences(**vars(self.user_preferences)) if self.user_preferences else None
            ),
        )

    @property
    def api_key(self) -> Optional[str]:
        if not self.api_key_env:
            return None
        return os.getenv(self.api_key_env)

    def discovery_config(self) -> DiscoveryConfig:
        return DiscoveryConfig(enabled=self.enabled, base_url=self.base_url, timeout_ms=self.timeout_ms)


@dataclass
class ProviderConfiguration:
    providers: Dict[str, ProviderSettings] = field(default_factory=dict)
    preferred_providers: List[str] = field(default_factory=lambda: list(DEFAULT_PREFERRED_PROVIDERS))

    def get(self, provider: str) -> Optional[ProviderSettings]:
        return self.providers.get(provider)

    def discovery_config(self) -> DiscoveryConfig:
        """Discovery settings; disabled when no ollama block is configured."""
        ollama = self.providers.get(OLLAMA_PROVIDER)
        if ollama is None:
            return DiscoveryConfig(enabled=False)
        return ollama.discovery_config()


def _default_providers() -> Dict[str, ProviderSettings]:
    return {
        "anthropic": ProviderSettings(name="anthropic", api_key_env="ANTHROPIC_API_KEY"),
        "openai": ProviderSettings(name="openai", api_key_env="OPENAI_API_KEY"),
        "google": ProviderSettings(name="google", api_key_env="GOOGLE_API_KEY"),
        "groq": ProviderSettings(name="groq", api_key_env="GROQ_API_KEY"),
        "ollama": ProviderSettings(
            name="ollama",
            enabled=False,
            base_url=DEFAULT_OLLAMA_BASE_URL,
            timeout_ms=DEFAULT_DISCOVERY_TIMEOUT_MS,
        ),
    }


def _parse_provider(name: str, item: Mapping[str, Any]) -> ProviderSettings:
    timeout = item.get("timeout_ms", item.get("timeout"))
    return ProviderSettings(
        name=name,
        enabled=bool(item.get("enabled", True)),
        base_url=item.get("base_url") or item.get("baseUrl"),
        timeout_ms=int(timeout) if timeout else None,
        api_key_env=item.get("api_key_env"),
        user_preferences=UserModelPreferences.from_mapping(item.get("user_preferences")),
    )


def _load_provider_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}

    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_provider_configuration(
    path: Union[str, Path, None] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ProviderConfiguration:
    """Merge built-in defaults, the YAML file and explicit overrides.

    ``overrides`` may carry ``preferred_providers`` and an ``ollama`` mapping
    (``enabled``, ``base_url``, ``timeout_ms``); ``None`` values are ignored.
    """
    providers = _default_providers()
    data = _load_provider_file(Path(path) if path else _PROVIDER_FILE)

    for name, item in (data.get("providers") or {}).items():
        providers[name] = _parse_provider(name, item or {})

    preferred = list(data.get("preferred_providers") or DEFAULT_PREFERRED_PROVIDERS)

    overrides = overrides or {}
    if overrides.get("preferred_providers"):
        preferred = list(overrides["preferred_providers"])

    ollama_overrides = {key: value for key, value in (overrides.get(OLLAMA_PROVIDER) or {}).items() if value is not None}
    if ollama_overrides:
        ollama = providers.get(OLLAMA_PROVIDER, ProviderSettings(name=OLLAMA_PROVIDER, enabled=False)).copy()
        ollama.enabled = bool(ollama_overrides.get("enabled", ollama.enabled))
        ollama.base_url = ollama_overrides.get("base_url", ollama.base_url)
        ollama.timeout_ms = ollama_overrides.get("timeout_ms", ollama.timeout_ms)
        providers[OLLAMA_PROVIDER] = ollama

    return ProviderConfiguration(
        providers={name: settings.copy() for name, settings in providers.items()},
        preferred_providers=preferred,
    )


def get_user_model_preferences(
    provider: str,
    configuration: Optional[ProviderConfiguration],
) -> Optional[UserModelPreferences]:
    if configuration is None:
        return None
    settings = configuration.get(provider)
    return settings.user_preferences if settings else None


__all__ = [
    "ProviderConfiguration",
    "ProviderSettings",
    "UserModelPreferences",
    "get_user_model_preferences",
    "load_provider_configuration",
]
