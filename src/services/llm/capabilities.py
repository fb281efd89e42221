"""Capability metadata for LLM models known to the registry.

Records use snake_case attributes in Python; the static catalog and the HTTP
surface use the camelCase keys produced by :meth:`ModelCapabilities.to_dict`.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class ResponseSpeed(str, Enum):
    """Relative response latency of a model."""

    VERY_FAST = "very_fast"
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"
    VERY_SLOW = "very_slow"

    @classmethod
    def parse(cls, value: Any) -> "ResponseSpeed":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return cls.MEDIUM


class SystemPromptBehavior(str, Enum):
    """How a model treats the system prompt."""

    REQUIRED = "required"
    OPTIONAL = "optional"
    UNSUPPORTED = "unsupported"

    @classmethod
    def parse(cls, value: Any) -> "SystemPromptBehavior":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return cls.OPTIONAL


class ModelSource(str, Enum):
    """Where a registry record came from."""

    STATIC = "static"
    DYNAMIC = "dynamic"


# snake_case attribute -> catalog key
_FEATURE_KEYS = {
    "function_calling": "functionCalling",
    "json": "json",
    "streaming": "streaming",
    "vision": "vision",
    "extended_thinking": "extendedThinking",
    "prompt_caching": "promptCaching",
}


def _today() -> str:
    return date.today().isoformat()


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass
class TokenPricing:
    """Price per 1K tokens."""

    input: float = 0.0
    output: float = 0.0

    @property
    def average(self) -> float:
        return (self.input + self.output) / 2


@dataclass
class PricingMetadata:
    currency: str = "USD"
    effective_date: str = field(default_factory=_today)


@dataclass
class SupportedFeatures:
    function_calling: bool = False
    json: bool = False
    streaming: bool = True
    vision: bool = False
    extended_thinking: bool = False
    prompt_caching: bool = False

    def supports(self, feature: str) -> bool:
        """Return True when ``feature`` (snake_case or camelCase) is enabled."""
        for name, key in _FEATURE_KEYS.items():
            if feature in (name, key):
                return bool(getattr(self, name))
        return False

    def to_dict(self) -> Dict[str, bool]:
        return {key: bool(getattr(self, name)) for name, key in _FEATURE_KEYS.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SupportedFeatures":
        values = {name: bool(data.get(key, data.get(name, False))) for name, key in _FEATURE_KEYS.items()}
        if "streaming" not in data:
            values["streaming"] = True
        return cls(**values)


@dataclass
class ModelDefaults:
    temperature: float = 0.7
    max_tokens: int = 2048
    extended_thinking: bool = False


@dataclass
class TemperatureRange:
    min: float = 0.0
    max: float = 1.0

    def clamp(self, value: float) -> float:
        return max(self.min, min(self.max, value))


@dataclass
class ModelConstraints:
    temperature: TemperatureRange = field(default_factory=TemperatureRange)


@dataclass
class ModelCapabilities:
    """Everything the registry knows about what a model can do."""

    display_name: str
    context_window: int
    max_output_tokens: int
    token_pricing: TokenPricing = field(default_factory=TokenPricing)
    pricing_metadata: PricingMetadata = field(default_factory=PricingMetadata)
    supported_features: SupportedFeatures = field(default_factory=SupportedFeatures)
    defaults: ModelDefaults = field(default_factory=ModelDefaults)
    constraints: ModelConstraints = field(default_factory=ModelConstraints)
    system_prompt_behavior: SystemPromptBehavior = SystemPromptBehavior.OPTIONAL
    response_speed: ResponseSpeed = ResponseSpeed.MEDIUM
    feature_key: Optional[str] = None
    hidden: Optional[bool] = None

    def copy(self) -> "ModelCapabilities":
        """Return a deep copy suitable for safe mutation by callers."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "displayName": self.display_name,
            "contextWindow": self.context_window,
            "maxOutputTokens": self.max_output_tokens,
            "token_pricing": {"input": self.token_pricing.input, "output": self.token_pricing.output},
            "pricing_metadata": {
                "currency": self.pricing_metadata.currency,
                "effectiveDate": self.pricing_metadata.effective_date,
            },
            "supportedFeatures": self.supported_features.to_dict(),
            "defaults": {
                "temperature": self.defaults.temperature,
                "maxTokens": self.defaults.max_tokens,
                "extendedThinking": self.defaults.extended_thinking,
            },
            "constraints": {
                "temperature": {
                    "min": self.constraints.temperature.min,
                    "max": self.constraints.temperature.max,
                }
            },
            "systemPromptBehavior": self.system_prompt_behavior.value,
            "responseSpeed": self.response_speed.value,
        }
        if self.feature_key is not None:
            payload["featureKey"] = self.feature_key
        if self.hidden is not None:
            payload["hidden"] = self.hidden
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], display_name: Optional[str] = None) -> "ModelCapabilities":
        """Build capabilities from a catalog record.

        Accepts both the current ``token_pricing`` layout and the older
        ``pricing.inputTokens.basePrice`` layout.
        """
        pricing = _pick(data, "token_pricing", "tokenPricing")
        metadata = _pick(data, "pricing_metadata", "pricingMetadata", default={})
        legacy = data.get("pricing")
        if pricing is None and isinstance(legacy, Mapping):
            pricing = {
                "input": legacy.get("inputTokens", {}).get("basePrice", 0.0),
                "output": legacy.get("outputTokens", {}).get("basePrice", 0.0),
            }
            metadata = metadata or {
                "currency": legacy.get("currency", "USD"),
                "effectiveDate": legacy.get("effectiveDate"),
            }
        pricing = pricing or {}

        defaults = data.get("defaults") or {}
        temperature = (data.get("constraints") or {}).get("temperature") or {}

        return cls(
            display_name=display_name or _pick(data, "displayName", "display_name", default="Unknown Model"),
            context_window=int(_pick(data, "contextWindow", "context_window")),
            max_output_tokens=int(_pick(data, "maxOutputTokens", "max_output_tokens")),
            token_pricing=TokenPricing(
                input=float(pricing.get("input", 0.0)),
                output=float(pricing.get("output", 0.0)),
            ),
            pricing_metadata=PricingMetadata(
                currency=metadata.get("currency") or "USD",
                effective_date=_pick(metadata, "effectiveDate", "effective_date", default=_today()),
            ),
            supported_features=SupportedFeatures.from_dict(
                _pick(data, "supportedFeatures", "supported_features", default={})
            ),
            defaults=ModelDefaults(
                temperature=float(defaults.get("temperature", 0.7)),
                max_tokens=int(_pick(defaults, "maxTokens", "max_tokens", default=2048)),
                extended_thinking=bool(_pick(defaults, "extendedThinking", "extended_thinking", default=False)),
            ),
            constraints=ModelConstraints(
                temperature=TemperatureRange(
                    min=float(temperature.get("min", 0.0)),
                    max=float(temperature.get("max", 1.0)),
                )
            ),
            system_prompt_behavior=SystemPromptBehavior.parse(
                _pick(data, "systemPromptBehavior", "system_prompt_behavior")
            ),
            response_speed=ResponseSpeed.parse(_pick(data, "responseSpeed", "response_speed")),
            feature_key=_pick(data, "featureKey", "feature_key"),
            hidden=data.get("hidden"),
        )


def default_model_capabilities() -> ModelCapabilities:
    """Conservative capabilities used when a model id is unknown."""
    return ModelCapabilities(
        display_name="Unknown Model",
        context_window=4096,
        max_output_tokens=2048,
        supported_features=SupportedFeatures(streaming=True),
        defaults=ModelDefaults(temperature=0.7, max_tokens=2048, extended_thinking=False),
        constraints=ModelConstraints(temperature=TemperatureRange(min=0.0, max=1.0)),
        system_prompt_behavior=SystemPromptBehavior.OPTIONAL,
        response_speed=ResponseSpeed.MEDIUM,
    )


@dataclass
class ModelInfo:
    """A single registry entry; ``id`` is unique across the registry."""

    id: str
    display_name: str
    provider: str
    capabilities: ModelCapabilities
    source: ModelSource = ModelSource.STATIC
    hidden: bool = False
    local_only: Optional[bool] = None

    def copy(self) -> "ModelInfo":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "displayName": self.display_name,
            "provider": self.provider,
            "capabilities": self.capabilities.to_dict(),
            "source": self.source.value,
            "hidden": self.hidden,
        }
        if self.local_only is not None:
            payload["localOnly"] = self.local_only
        return payload


__all__ = [
    "ModelCapabilities",
    "ModelConstraints",
    "ModelDefaults",
    "ModelInfo",
    "ModelSource",
    "PricingMetadata",
    "ResponseSpeed",
    "SupportedFeatures",
    "SystemPromptBehavior",
    "TemperatureRange",
    "TokenPricing",
    "default_model_capabilities",
]
