"""
Model Selection Models - Request/response payloads for the model registry API
"""

from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field, validator

from src.services.llm.selection import ModelHint, ModelSelectionPreferences
from src.services.llm.parameters import ParameterSet


class ModelHintModel(BaseModel):
    """Free-text hint naming a model, family or provider."""

    name: str = Field(
        ...,
        description="Model id, alias (e.g. 'claude', 'gpt-4o') or id fragment"
    )

    description: Optional[str] = Field(
        default=None,
        description="Optional note on why the hint was given"
    )


class ModelSelectionRequest(BaseModel):
    """
    Weighted preferences for choosing a model.

    Hints are tried in order before capability scoring. Unset priorities
    default to 0.5.
    """

    cost_priority: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Weight of low price")
    speed_priority: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Weight of response speed")
    intelligence_priority: Optional[float] = Field(
        default=None, ge=0.0, le=1.0, description="Weight of capability breadth"
    )
    hints: List[ModelHintModel] = Field(default_factory=list, description="Ordered model hints")

    def to_preferences(self) -> ModelSelectionPreferences:
        return ModelSelectionPreferences(
            cost_priority=self.cost_priority,
            speed_priority=self.speed_priority,
            intelligence_priority=self.intelligence_priority,
            hints=[ModelHint(name=hint.name, description=hint.description) for hint in self.hints],
        )

    class Config:
        json_schema_extra = {
            "example": {
                "cost_priority": 0.2,
                "speed_priority": 0.3,
                "intelligence_priority": 0.9,
                "hints": [{"name": "claude-sonnet"}],
            }
        }


class ModelSelectionResponse(BaseModel):
    model_id: str = Field(..., description="Selected model id")
    provider: Optional[str] = Field(default=None, description="Provider of the selected model, if registered")

    class Config:
        protected_namespaces = ()


class ParameterRequest(BaseModel):
    """Layered generation parameters to resolve for a model."""

    explicit: Dict[str, Any] = Field(default_factory=dict, description="Values set on the request")
    user: Dict[str, Any] = Field(default_factory=dict, description="User configured preferences")
    interaction: Dict[str, Any] = Field(default_factory=dict, description="Interaction defaults")
    interaction_type: Optional[str] = Field(
        default=None,
        description="Use the preset for this interaction type ('chat', 'conversation') as interaction defaults"
    )

    @validator('explicit', 'user', 'interaction')
    def validate_known_parameters(cls, v):
        """Only temperature, max_tokens and extended_thinking are resolvable"""
        unknown = set(v) - {"temperature", "max_tokens", "extended_thinking"}
        if unknown:
            raise ValueError(f"Unknown parameters: {sorted(unknown)}")
        return v

    @staticmethod
    def to_parameter_set(values: Dict[str, Any]) -> Optional[ParameterSet]:
        return ParameterSet(**values) if values else None


class ResolvedParametersResponse(BaseModel):
    model_id: str
    temperature: float
    max_tokens: int
    extended_thinking: bool

    class Config:
        protected_namespaces = ()


class PreferredProvidersModel(BaseModel):
    providers: List[str] = Field(..., description="Provider ids in preference order")


class RefreshResponse(BaseModel):
    discovered: List[str] = Field(default_factory=list, description="Model ids returned by discovery")
    total_models: int
