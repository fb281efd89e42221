"""Generation parameter resolution against model constraints.

Precedence for every parameter: explicit request value, then the user's
configured preference, then the interaction default, then the model's own
default. Caller-supplied values are clamped to what the model allows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from .capabilities import ModelCapabilities, ResponseSpeed
from .provider_config import get_user_model_preferences

if TYPE_CHECKING:  # pragma: no cover
    from .model_registry import ModelRegistry

logger = logging.getLogger(__name__)

TEMPERATURE = "temperature"
MAX_TOKENS = "max_tokens"
EXTENDED_THINKING = "extended_thinking"

_PARAMETER_ALIASES = {
    "temperature": TEMPERATURE,
    "max_tokens": MAX_TOKENS,
    "maxTokens": MAX_TOKENS,
    "extended_thinking": EXTENDED_THINKING,
    "extendedThinking": EXTENDED_THINKING,
}

EXTENDED_THINKING_TEMPERATURE = 1.0


@dataclass
class ParameterSet:
    """Optional values for each generation parameter."""

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    extended_thinking: Optional[bool] = None


@dataclass
class ResolvedParameters:
    temperature: float
    max_tokens: int
    extended_thinking: bool


def _canonical(name: str) -> str:
    try:
        return _PARAMETER_ALIASES[name]
    except KeyError:
        raise ValueError(f"Unknown model parameter: {name}") from None


def clamp_temperature(capabilities: ModelCapabilities, value: float) -> float:
    return capabilities.constraints.temperature.clamp(value)


def clamp_max_tokens(capabilities: ModelCapabilities, value: int) -> int:
    max_allowed = capabilities.max_output_tokens
    return min(max_allowed, value if value > 0 else max_allowed)


def gate_extended_thinking(capabilities: ModelCapabilities, value: bool) -> bool:
    return bool(value) and capabilities.supported_features.extended_thinking


def validate_parameter(name: str, capabilities: ModelCapabilities, value: Any) -> Any:
    parameter = _canonical(name)
    if parameter == TEMPERATURE:
        return clamp_temperature(capabilities, value)
    if parameter == MAX_TOKENS:
        return clamp_max_tokens(capabilities, value)
    return gate_extended_thinking(capabilities, value)


def model_default(name: str, capabilities: ModelCapabilities) -> Any:
    return getattr(capabilities.defaults, _canonical(name))


class ParameterResolver:
    """Resolves parameters for a model using capabilities from the registry."""

    def __init__(self, registry: "ModelRegistry") -> None:
        self._registry = registry

    def _capabilities(self, model_id: str) -> ModelCapabilities:
        return self._registry.get_model_capabilities(model_id)

    def resolve_parameter(
        self,
        name: str,
        model_id: str,
        explicit_value: Any = None,
        user_preference: Any = None,
        interaction_preference: Any = None,
    ) -> Any:
        capabilities = self._capabilities(model_id)
        for value in (explicit_value, user_preference, interaction_preference):
            if value is not None:
                return validate_parameter(name, capabilities, value)
        return model_default(name, capabilities)

    def resolve_temperature(
        self,
        model_id: str,
        explicit_value: Optional[float] = None,
        user_preference: Optional[float] = None,
        interaction_preference: Optional[float] = None,
    ) -> float:
        temperature = self.resolve_parameter(
            TEMPERATURE, model_id, explicit_value, user_preference, interaction_preference
        )
        return clamp_temperature(self._capabilities(model_id), temperature)

    def resolve_max_tokens(
        self,
        model_id: str,
        explicit_value: Optional[int] = None,
        user_preference: Optional[int] = None,
        interaction_preference: Optional[int] = None,
    ) -> int:
        max_tokens = self.resolve_parameter(
            MAX_TOKENS, model_id, explicit_value, user_preference, interaction_preference
        )
        return clamp_max_tokens(self._capabilities(model_id), max_tokens)

    def resolve_extended_thinking(
        self,
        model_id: str,
        explicit_value: Optional[bool] = None,
        user_preference: Optional[bool] = None,
        interaction_preference: Optional[bool] = None,
    ) -> bool:
        enabled = self.resolve_parameter(
            EXTENDED_THINKING, model_id, explicit_value, user_preference, interaction_preference
        )
        return gate_extended_thinking(self._capabilities(model_id), enabled)

    def resolve_model_parameters(
        self,
        model_id: str,
        explicit: Optional[ParameterSet] = None,
        user_preferences: Any = None,
        interaction_preferences: Any = None,
    ) -> ResolvedParameters:
        """Resolve all parameters at once.

        Without explicit ``user_preferences`` the user block configured for the
        model's provider is used. Extended thinking forces temperature to 1.0.
        """
        explicit = explicit or ParameterSet()
        if user_preferences is None:
            provider = self._registry.get_model_provider(model_id)
            if provider is not None:
                user_preferences = get_user_model_preferences(provider, self._registry.provider_configuration)
        user = user_preferences or ParameterSet()
        interaction = interaction_preferences or ParameterSet()

        extended_thinking = self.resolve_extended_thinking(
            model_id,
            explicit.extended_thinking,
            getattr(user, EXTENDED_THINKING, None),
            getattr(interaction, EXTENDED_THINKING, None),
        )
        max_tokens = self.resolve_max_tokens(
            model_id,
            explicit.max_tokens,
            getattr(user, MAX_TOKENS, None),
            getattr(interaction, MAX_TOKENS, None),
        )
        if extended_thinking:
            temperature = EXTENDED_THINKING_TEMPERATURE
        else:
            temperature = self.resolve_temperature(
                model_id,
                explicit.temperature,
                getattr(user, TEMPERATURE, None),
                getattr(interaction, TEMPERATURE, None),
            )
        return ResolvedParameters(temperature=temperature, max_tokens=max_tokens, extended_thinking=extended_thinking)

    def get_interaction_preferences(self, interaction_type: str, model_id: str) -> ParameterSet:
        """Interaction-level defaults for ``chat`` and ``conversation`` interactions."""
        capabilities = self._capabilities(model_id)

        if interaction_type == "chat":
            return ParameterSet(temperature=0.7, max_tokens=min(4096, capabilities.max_output_tokens))

        if interaction_type == "conversation":
            limit = 8192 if capabilities.response_speed is ResponseSpeed.FAST else 16384
            return ParameterSet(temperature=0.2, max_tokens=min(limit, capabilities.max_output_tokens))

        logger.debug(f"No interaction preset for '{interaction_type}', using model defaults")
        return ParameterSet(
            temperature=capabilities.defaults.temperature,
            max_tokens=capabilities.defaults.max_tokens,
        )


__all__ = [
    "ParameterResolver",
    "ParameterSet",
    "ResolvedParameters",
    "clamp_max_tokens",
    "clamp_temperature",
    "gate_extended_thinking",
    "validate_parameter",
]
