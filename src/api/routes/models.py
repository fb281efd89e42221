"""
Model Registry API Routes - listing, lookup, selection and parameter resolution
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Any, Dict, Optional
import logging

from src.models.model_selection import (
    ModelSelectionRequest,
    ModelSelectionResponse,
    ParameterRequest,
    PreferredProvidersModel,
    RefreshResponse,
    ResolvedParametersResponse,
)
from src.services.llm import ModelRegistry, RegistryNotInitializedError, get_model_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/models", tags=["models"])


def get_registry() -> ModelRegistry:
    """Dependency returning the process-wide model registry."""
    return get_model_registry()


@router.get("")
async def list_models(
    include_hidden: bool = Query(False, description="Include hidden models"),
    provider: Optional[str] = Query(None, description="Restrict to one provider"),
    registry: ModelRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """List registered models, optionally for a single provider."""
    if provider:
        models = registry.get_models_by_provider(provider, include_hidden=include_hidden)
    else:
        models = registry.get_all_models(include_hidden=include_hidden)

    return {
        "models": [model.to_dict() for model in models],
        "count": len(models),
        "initialized": registry.initialized,
    }


@router.get("/providers")
async def list_providers(registry: ModelRegistry = Depends(get_registry)) -> Dict[str, Any]:
    """Providers with registered models and each provider's default model."""
    providers = registry.get_providers()
    return {
        "providers": providers,
        "defaults": {provider: registry.get_default_model_for_provider(provider) for provider in providers},
        "preferred": registry.get_preferred_providers(),
    }


@router.get("/preferred-providers", response_model=PreferredProvidersModel)
async def get_preferred_providers(registry: ModelRegistry = Depends(get_registry)) -> PreferredProvidersModel:
    return PreferredProvidersModel(providers=registry.get_preferred_providers())


@router.put("/preferred-providers", response_model=PreferredProvidersModel)
async def set_preferred_providers(
    request: PreferredProvidersModel,
    registry: ModelRegistry = Depends(get_registry),
) -> PreferredProvidersModel:
    registry.set_preferred_providers(request.providers)
    return PreferredProvidersModel(providers=registry.get_preferred_providers())


@router.post("/select", response_model=ModelSelectionResponse)
async def select_model(
    request: Optional[ModelSelectionRequest] = None,
    registry: ModelRegistry = Depends(get_registry),
) -> ModelSelectionResponse:
    """
    Select a model for the given preferences.

    Without a body the smart default is returned. Selection never fails; an
    empty registry yields the fallback model id.
    """
    preferences = request.to_preferences() if request is not None else None
    model_id = registry.select_model_by_preferences(preferences)
    return ModelSelectionResponse(model_id=model_id, provider=registry.get_model_provider(model_id))


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_models(registry: ModelRegistry = Depends(get_registry)) -> RefreshResponse:
    """Re-run dynamic discovery."""
    try:
        discovered = await registry.refresh_dynamic_models()
    except RegistryNotInitializedError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    return RefreshResponse(
        discovered=discovered,
        total_models=len(registry.get_all_models(include_hidden=True)),
    )


@router.get("/{model_id:path}/capabilities")
async def get_model_capabilities(model_id: str, registry: ModelRegistry = Depends(get_registry)) -> Dict[str, Any]:
    """Capabilities for a model; unknown ids return conservative defaults."""
    return registry.get_model_capabilities(model_id).to_dict()


@router.post("/{model_id:path}/parameters", response_model=ResolvedParametersResponse)
async def resolve_parameters(
    model_id: str,
    request: ParameterRequest,
    registry: ModelRegistry = Depends(get_registry),
) -> ResolvedParametersResponse:
    """Resolve temperature, max tokens and extended thinking for a model."""
    resolver = registry.parameters
    interaction = request.to_parameter_set(request.interaction)
    if interaction is None and request.interaction_type:
        interaction = resolver.get_interaction_preferences(request.interaction_type, model_id)

    resolved = resolver.resolve_model_parameters(
        model_id,
        explicit=request.to_parameter_set(request.explicit),
        user_preferences=request.to_parameter_set(request.user),
        interaction_preferences=interaction,
    )
    return ResolvedParametersResponse(
        model_id=model_id,
        temperature=resolved.temperature,
        max_tokens=resolved.max_tokens,
        extended_thinking=resolved.extended_thinking,
    )


# Registered last: the path converter would otherwise swallow the suffix routes above.
@router.get("/{model_id:path}")
async def get_model(model_id: str, registry: ModelRegistry = Depends(get_registry)) -> Dict[str, Any]:
    model = registry.get_model(model_id)
    if model is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Model not found: {model_id}")
    return model.to_dict()
