"""Model registry and model selection services."""

from .capabilities import (  # noqa: F401
    ModelCapabilities,
    ModelInfo,
    ModelSource,
    ResponseSpeed,
    SystemPromptBehavior,
    default_model_capabilities,
)
from .catalog import load_static_models  # noqa: F401
from .discovery import (  # noqa: F401
    DiscoveryConfig,
    OllamaDiscoveryClient,
)
from .errors import (  # noqa: F401
    CatalogLoadError,
    DiscoveryAPIError,
    DiscoveryError,
    DiscoveryTimeoutError,
    ModelRegistryError,
    RegistryNotInitializedError,
)
from .model_registry import (  # noqa: F401
    ModelRegistry,
    ensure_model_registry,
    get_model_registry,
    reset_model_registry,
)
from .parameters import (  # noqa: F401
    ParameterResolver,
    ParameterSet,
    ResolvedParameters,
)
from .provider_config import (  # noqa: F401
    ProviderConfiguration,
    ProviderSettings,
    UserModelPreferences,
    load_provider_configuration,
)
from .selection import (  # noqa: F401
    FALLBACK_MODEL_ID,
    ModelHint,
    ModelSelectionPreferences,
)

__all__ = [
    "ModelCapabilities",
    "ModelInfo",
    "ModelSource",
    "ResponseSpeed",
    "SystemPromptBehavior",
    "default_model_capabilities",
    "load_static_models",
    "DiscoveryConfig",
    "OllamaDiscoveryClient",
    "CatalogLoadError",
    "DiscoveryAPIError",
    "DiscoveryError",
    "DiscoveryTimeoutError",
    "ModelRegistryError",
    "RegistryNotInitializedError",
    "ModelRegistry",
    "ensure_model_registry",
    "get_model_registry",
    "reset_model_registry",
    "ParameterResolver",
    "ParameterSet",
    "ResolvedParameters",
    "ProviderConfiguration",
    "ProviderSettings",
    "UserModelPreferences",
    "load_provider_configuration",
    "FALLBACK_MODEL_ID",
    "ModelHint",
    "ModelSelectionPreferences",
]
