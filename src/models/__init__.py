"""
Model Registry Server Models
Request/response payloads for the model registry API
"""

from .model_selection import (
    ModelHintModel,
    ModelSelectionRequest,
    ModelSelectionResponse,
    ParameterRequest,
    PreferredProvidersModel,
    RefreshResponse,
    ResolvedParametersResponse,
)

__all__ = [
    "ModelHintModel",
    "ModelSelectionRequest",
    "ModelSelectionResponse",
    "ParameterRequest",
    "PreferredProvidersModel",
    "RefreshResponse",
    "ResolvedParametersResponse",
]
