"""Unified registry of static and dynamically discovered LLM models."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .capabilities import ModelCapabilities, ModelInfo, ModelSource, default_model_capabilities
from .catalog import CatalogSource, load_static_models
from .discovery import DiscoveryConfig, OLLAMA_PROVIDER, OllamaDiscoveryClient
from .errors import CatalogLoadError, DiscoveryError, RegistryNotInitializedError
from .parameters import ParameterResolver
from .provider_config import ProviderConfiguration, load_provider_configuration
from .selection import (
    DEFAULT_PREFERRED_PROVIDERS,
    FALLBACK_MODEL_ID,
    ModelHint,
    ModelSelectionPreferences,
    get_smart_default_model,
    map_hint_to_model,
    select_model_by_preferences,
)

logger = logging.getLogger(__name__)

PreferencesInput = Union[ModelSelectionPreferences, Mapping[str, Any], None]


class ModelRegistry:
    """In-memory store of ModelInfo records indexed by id and by provider.

    ``initialize`` runs once; concurrent callers share the same in-flight
    initialization. Queries made before initialization log a warning and
    return empty results instead of raising.
    """

    def __init__(
        self,
        discovery_client: Optional[OllamaDiscoveryClient] = None,
        preferred_providers: Optional[Sequence[str]] = None,
    ) -> None:
        self._models: Dict[str, ModelInfo] = {}
        self._provider_models: Dict[str, List[str]] = {}
        self._initialized = False
        self._init_task: Optional[asyncio.Task] = None
        self._discovery_client = discovery_client or OllamaDiscoveryClient()
        self._discovery_config = DiscoveryConfig(enabled=False)
        self._provider_configuration: Optional[ProviderConfiguration] = None
        self._preferred_providers: List[str] = list(preferred_providers or DEFAULT_PREFERRED_PROVIDERS)
        self._parameters = ParameterResolver(self)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def provider_configuration(self) -> Optional[ProviderConfiguration]:
        return self._provider_configuration

    @property
    def parameters(self) -> ParameterResolver:
        return self._parameters

    async def initialize(
        self,
        catalog: CatalogSource = None,
        provider_configuration: Optional[ProviderConfiguration] = None,
        discovery_config: Optional[DiscoveryConfig] = None,
        discover: bool = True,
    ) -> None:
        """Load the static catalog, then run discovery once.

        With ``discover=False`` the registry is usable as soon as the static
        catalog is loaded; ``refresh_dynamic_models`` can run discovery later.
        """
        if self._initialized:
            return

        if self._init_task is None:
            self._init_task = asyncio.ensure_future(
                self._initialize(catalog, provider_configuration, discovery_config, discover)
            )

        task = self._init_task
        try:
            await asyncio.shield(task)
        except Exception:
            # A failed initialization may be retried.
            if self._init_task is task and task.done():
                self._init_task = None
            raise

    async def _initialize(
        self,
        catalog: CatalogSource,
        provider_configuration: Optional[ProviderConfiguration],
        discovery_config: Optional[DiscoveryConfig],
        discover: bool,
    ) -> None:
        try:
            self._load_static_models(catalog)
        except CatalogLoadError as exc:
            self._clear()
            logger.error(f"ModelRegistry: Failed to initialize: {exc}")
            raise

        # Configuration only takes effect once the catalog has loaded.
        if provider_configuration is not None:
            self._provider_configuration = provider_configuration
            self._preferred_providers = list(provider_configuration.preferred_providers)

        if discovery_config is not None:
            self._discovery_config = discovery_config
        elif provider_configuration is not None:
            self._discovery_config = provider_configuration.discovery_config()

        if discover:
            await self._discover_dynamic_models_safely()

        self._initialized = True
        logger.info(f"ModelRegistry: Initialized with {len(self._models)} models")

    def reset(self) -> None:
        """Drop all state; the next ``initialize`` starts from scratch."""
        self._clear()
        self._initialized = False
        self._init_task = None
        self._preferred_providers = list(DEFAULT_PREFERRED_PROVIDERS)
        self._provider_configuration = None
        self._discovery_config = DiscoveryConfig(enabled=False)

    def _clear(self) -> None:
        self._models.clear()
        self._provider_models.clear()

    def _load_static_models(self, catalog: CatalogSource) -> None:
        for model in load_static_models(catalog):
            self.register_model(model)
        logger.info(f"ModelRegistry: Loaded {len(self._models)} static models")

    def register_model(self, model: ModelInfo) -> None:
        """Insert or overwrite a record, keeping the provider index consistent."""
        existing = self._models.get(model.id)
        if existing is not None and existing.provider != model.provider:
            previous = self._provider_models.get(existing.provider, [])
            if model.id in previous:
                previous.remove(model.id)

        self._models[model.id] = model
        ids = self._provider_models.setdefault(model.provider, [])
        if model.id not in ids:
            ids.append(model.id)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def discover_dynamic_models(self, config: Optional[DiscoveryConfig] = None) -> List[str]:
        """Run discovery and register results; discovery errors propagate."""
        config = config or self._discovery_config
        if not config.enabled:
            logger.info("ModelRegistry: Ollama discovery disabled in configuration")
            return []

        models = await self._discovery_client.discover(config)
        for model in models:
            self.register_model(model)
        return [model.id for model in models]

    async def _discover_dynamic_models_safely(self) -> List[str]:
        try:
            discovered = await self.discover_dynamic_models()
        except DiscoveryError as exc:
            logger.warning(f"ModelRegistry: Error discovering Ollama models: {exc}")
            return []
        if discovered:
            logger.info(f"ModelRegistry: Discovered {len(discovered)} Ollama models")
        return discovered

    async def refresh_dynamic_models(self) -> List[str]:
        """Re-run discovery; previously discovered models survive a failed attempt."""
        if not self._initialized:
            raise RegistryNotInitializedError()
        return await self._discover_dynamic_models_safely()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _ready(self, fallback: str) -> bool:
        if not self._initialized:
            logger.warning(f"ModelRegistry: Service not initialized, returning {fallback}")
        return self._initialized

    def _visible_models(self) -> List[ModelInfo]:
        return [model for model in self._models.values() if not model.hidden]

    def get_all_models(self, include_hidden: bool = False) -> List[ModelInfo]:
        if not self._ready("empty list"):
            return []
        return [model.copy() for model in self._models.values() if include_hidden or not model.hidden]

    def get_all_models_including_hidden(self) -> List[ModelInfo]:
        return self.get_all_models(include_hidden=True)

    def get_models_by_provider(self, provider: str, include_hidden: bool = False) -> List[ModelInfo]:
        if not self._ready("empty list"):
            return []
        models: List[ModelInfo] = []
        for model_id in self._provider_models.get(provider, []):
            model = self._models.get(model_id)
            if model is None:
                continue
            if include_hidden or not model.hidden:
                models.append(model.copy())
        return models

    def get_models_by_provider_including_hidden(self, provider: str) -> List[ModelInfo]:
        return self.get_models_by_provider(provider, include_hidden=True)

    def get_providers(self) -> List[str]:
        if not self._ready("empty list"):
            return []
        return [provider for provider, ids in self._provider_models.items() if ids]

    def get_model(self, model_id: str) -> Optional[ModelInfo]:
        if not self._ready("None"):
            return None
        model = self._models.get(model_id)
        return model.copy() if model else None

    def get_model_capabilities(self, model_id: str) -> ModelCapabilities:
        """Capabilities for ``model_id``; unknown ids get conservative defaults."""
        model = self.get_model(model_id)
        if model is None:
            logger.warning(f"ModelRegistry: Model not found: {model_id}, using defaults")
            return default_model_capabilities()
        return model.capabilities

    def get_model_provider(self, model_id: str) -> Optional[str]:
        model = self.get_model(model_id)
        return model.provider if model else None

    def supports_feature(self, model_id: str, feature: str) -> bool:
        return self.get_model_capabilities(model_id).supported_features.supports(feature)

    def get_model_to_provider_mapping(self) -> Dict[str, str]:
        if not self._ready("empty mapping"):
            return {}
        return {model_id: model.provider for model_id, model in self._models.items()}

    def get_default_model_for_provider(self, provider: str) -> Optional[str]:
        models = self.get_models_by_provider(provider)
        return models[0].id if models else None

    def get_dynamic_models(self) -> List[ModelInfo]:
        return [model for model in self.get_all_models(include_hidden=True) if model.source is ModelSource.DYNAMIC]

    # ------------------------------------------------------------------
    # Provider preference
    # ------------------------------------------------------------------

    def set_preferred_providers(self, providers: Sequence[str]) -> None:
        self._preferred_providers = list(providers)
        logger.info(f"ModelRegistry: Preferred providers set to {self._preferred_providers}")

    def get_preferred_providers(self) -> List[str]:
        return list(self._preferred_providers)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_model_by_preferences(self, preferences: PreferencesInput = None) -> str:
        if isinstance(preferences, Mapping):
            preferences = ModelSelectionPreferences.from_dict(preferences)
        if not self._initialized or preferences is None:
            return self.get_smart_default_model()
        return select_model_by_preferences(self._visible_models(), preferences, self._preferred_providers)

    def map_hint_to_model(
        self,
        hint: Union[str, ModelHint],
        models: Optional[Sequence[ModelInfo]] = None,
    ) -> Optional[str]:
        if models is None:
            models = self._visible_models() if self._ready("no match") else []
        return map_hint_to_model(models, hint, self._preferred_providers)

    def get_smart_default_model(self) -> str:
        if not self._ready(FALLBACK_MODEL_ID):
            return FALLBACK_MODEL_ID
        return get_smart_default_model(self._visible_models(), self._preferred_providers)

    # ------------------------------------------------------------------
    # Parameter resolution
    # ------------------------------------------------------------------

    def resolve_temperature(self, model_id: str, *values: Optional[float]) -> float:
        return self._parameters.resolve_temperature(model_id, *values)

    def resolve_max_tokens(self, model_id: str, *values: Optional[int]) -> int:
        return self._parameters.resolve_max_tokens(model_id, *values)

    def resolve_extended_thinking(self, model_id: str, *values: Optional[bool]) -> bool:
        return self._parameters.resolve_extended_thinking(model_id, *values)


_default_registry: Optional[ModelRegistry] = None


def get_model_registry() -> ModelRegistry:
    """Return the process-wide registry instance (not necessarily initialized)."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ModelRegistry()
    return _default_registry


def reset_model_registry() -> None:
    global _default_registry
    if _default_registry is not None:
        _default_registry.reset()
    _default_registry = None


def provider_configuration_from_settings(settings: Any) -> ProviderConfiguration:
    """Build provider configuration from application settings."""
    return load_provider_configuration(
        getattr(settings, "PROVIDER_CONFIG_PATH", None),
        overrides={
            "preferred_providers": getattr(settings, "PREFERRED_PROVIDERS", None),
            OLLAMA_PROVIDER: {
                "enabled": getattr(settings, "OLLAMA_ENABLED", None),
                "base_url": getattr(settings, "OLLAMA_BASE_URL", None),
                "timeout_ms": getattr(settings, "OLLAMA_TIMEOUT_MS", None),
            },
        },
    )


async def ensure_model_registry(settings: Any, discover: bool = True) -> ModelRegistry:
    """Initialize the process-wide registry from settings if needed."""
    registry = get_model_registry()
    if not registry.initialized:
        await registry.initialize(
            catalog=getattr(settings, "MODEL_CATALOG_PATH", None),
            provider_configuration=provider_configuration_from_settings(settings),
            discover=discover,
        )
    return registry


__all__ = [
    "ModelRegistry",
    "ensure_model_registry",
    "get_model_registry",
    "provider_configuration_from_settings",
    "reset_model_registry",
]
