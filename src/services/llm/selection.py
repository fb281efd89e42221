"""Preference-driven model selection.

Selection works in three stages:

1. Hints are tried in order; the first hint that maps to a registered model
   wins (exact id, then named alias, then alias-name substring, then a loose
   id substring match).
2. Without a matching hint every visible model is scored as a weighted sum of
   cost, speed and intelligence scores plus a small bonus for preferred
   providers. The first model reaching the maximum score wins.
3. Without preferences at all the smart default scores the first preferred
   provider that has models, using balanced weights.

All functions here are pure over the model list they are given; the registry
supplies its live state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .capabilities import ModelCapabilities, ModelInfo, ResponseSpeed

logger = logging.getLogger(__name__)

FALLBACK_MODEL_ID = "claude-sonnet-4-5-20250929"
DEFAULT_PREFERRED_PROVIDERS: Tuple[str, ...] = ("anthropic",)

# Product tuning constants.
MAX_PRICE_FOR_SCORING = 0.10
CONTEXT_WINDOW_NORMALIZATION = 200_000
MAX_CONTEXT_BONUS = 0.15
BASE_INTELLIGENCE_SCORE = 0.5
FEATURE_BONUS = 0.1
PROMPT_CACHING_BONUS = 0.05
DEFAULT_PRIORITY = 0.5
PROVIDER_BONUS_MAX = 0.1
PROVIDER_BONUS_STEP = 0.02

SPEED_SCORES: Dict[ResponseSpeed, float] = {
    ResponseSpeed.VERY_FAST: 1.0,
    ResponseSpeed.FAST: 0.8,
    ResponseSpeed.MEDIUM: 0.6,
    ResponseSpeed.SLOW: 0.4,
    ResponseSpeed.VERY_SLOW: 0.2,
}
DEFAULT_SPEED_SCORE = 0.6


@dataclass(frozen=True)
class HintAlias:
    """Named shortcut resolved against the live model list.

    A model matches when it belongs to ``provider`` (if set) and its id
    contains any of ``substrings`` (if any are given).
    """

    substrings: Tuple[str, ...] = ()
    provider: Optional[str] = None

    def matches(self, model: ModelInfo) -> bool:
        if self.provider is not None and model.provider != self.provider:
            return False
        if not self.substrings:
            return self.provider is not None
        lowered = model.id.lower()
        return any(substring in lowered for substring in self.substrings)


HINT_ALIASES: Dict[str, HintAlias] = {
    "claude": HintAlias(substrings=("claude",)),
    "claude-sonnet": HintAlias(substrings=("sonnet",)),
    "claude-opus": HintAlias(substrings=("opus",)),
    "claude-haiku": HintAlias(substrings=("haiku",)),
    "claude-3-opus": HintAlias(substrings=("claude-3-opus",)),
    "claude-3-5-sonnet": HintAlias(substrings=("claude-3-5-sonnet",)),
    "anthropic": HintAlias(provider="anthropic"),
    "gpt-4o": HintAlias(substrings=("gpt-4o",)),
    "gpt-4": HintAlias(substrings=("gpt-4",)),
    "gpt": HintAlias(substrings=("gpt",)),
    "openai": HintAlias(provider="openai"),
    "gemini": HintAlias(substrings=("gemini",)),
    "google": HintAlias(provider="google"),
    "llama": HintAlias(substrings=("llama",)),
    "groq": HintAlias(provider="groq"),
    "deepseek": HintAlias(substrings=("deepseek",)),
    "ollama": HintAlias(provider="ollama"),
}


@dataclass
class ModelHint:
    name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class SelectionWeights:
    cost: float
    speed: float
    intelligence: float


SMART_DEFAULT_WEIGHTS = SelectionWeights(cost=0.3, speed=0.3, intelligence=0.7)


def _clamp_priority(value: Optional[float]) -> float:
    if value is None:
        return DEFAULT_PRIORITY
    return max(0.0, min(1.0, float(value)))


@dataclass
class ModelSelectionPreferences:
    """Per-call selection preferences; priorities lie in [0, 1]."""

    cost_priority: Optional[float] = None
    speed_priority: Optional[float] = None
    intelligence_priority: Optional[float] = None
    hints: List[ModelHint] = field(default_factory=list)

    def weights(self) -> SelectionWeights:
        return SelectionWeights(
            cost=_clamp_priority(self.cost_priority),
            speed=_clamp_priority(self.speed_priority),
            intelligence=_clamp_priority(self.intelligence_priority),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModelSelectionPreferences":
        hints: List[ModelHint] = []
        for hint in data.get("hints") or []:
            if isinstance(hint, str):
                hints.append(ModelHint(name=hint))
            elif isinstance(hint, Mapping):
                hints.append(ModelHint(name=hint.get("name") or "", description=hint.get("description")))
        return cls(
            cost_priority=data.get("costPriority", data.get("cost_priority")),
            speed_priority=data.get("speedPriority", data.get("speed_priority")),
            intelligence_priority=data.get("intelligencePriority", data.get("intelligence_priority")),
            hints=hints,
        )


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------


def cost_score(capabilities: ModelCapabilities) -> float:
    """1.0 for free models, falling linearly to 0 at MAX_PRICE_FOR_SCORING."""
    average_price = capabilities.token_pricing.average
    return max(0.0, 1.0 - average_price / MAX_PRICE_FOR_SCORING)


def speed_score(capabilities: ModelCapabilities) -> float:
    return SPEED_SCORES.get(capabilities.response_speed, DEFAULT_SPEED_SCORE)


def intelligence_score(capabilities: ModelCapabilities) -> float:
    features = capabilities.supported_features
    score = BASE_INTELLIGENCE_SCORE
    for enabled in (features.function_calling, features.json, features.vision, features.extended_thinking):
        if enabled:
            score += FEATURE_BONUS
    if features.prompt_caching:
        score += PROMPT_CACHING_BONUS
    score += min(MAX_CONTEXT_BONUS, capabilities.context_window / CONTEXT_WINDOW_NORMALIZATION * MAX_CONTEXT_BONUS)
    return min(1.0, score)


def provider_preference_score(provider: str, preferred_providers: Sequence[str]) -> float:
    try:
        rank = list(preferred_providers).index(provider)
    except ValueError:
        return 0.0
    return max(0.0, PROVIDER_BONUS_MAX - PROVIDER_BONUS_STEP * rank)


def score_model(model: ModelInfo, weights: SelectionWeights, preferred_providers: Sequence[str]) -> float:
    capabilities = model.capabilities
    return (
        cost_score(capabilities) * weights.cost
        + speed_score(capabilities) * weights.speed
        + intelligence_score(capabilities) * weights.intelligence
        + provider_preference_score(model.provider, preferred_providers)
    )


def select_best_model(
    models: Sequence[ModelInfo],
    weights: SelectionWeights,
    preferred_providers: Sequence[str],
) -> Optional[str]:
    """Return the id of the highest scoring model; earlier models win ties."""
    if not models:
        logger.warning("No models available for capability scoring")
        return None

    best_id: Optional[str] = None
    best_score = float("-inf")
    for model in models:
        score = score_model(model, weights, preferred_providers)
        if score > best_score:
            best_id = model.id
            best_score = score
    logger.debug(f"Capability scoring selected {best_id} (score {best_score:.3f})")
    return best_id


# ---------------------------------------------------------------------------
# Hints
# ---------------------------------------------------------------------------


def apply_provider_preference(candidates: Sequence[ModelInfo], preferred_providers: Sequence[str]) -> ModelInfo:
    """Pick from a non-empty candidate list using the provider ranking."""
    if len(candidates) == 1:
        return candidates[0]
    for provider in preferred_providers:
        for candidate in candidates:
            if candidate.provider == provider:
                return candidate
    return candidates[0]


def alias_candidates(models: Iterable[ModelInfo], alias: HintAlias) -> List[ModelInfo]:
    return [model for model in models if alias.matches(model)]


def map_hint_to_model(
    models: Sequence[ModelInfo],
    hint: Union[str, ModelHint, None],
    preferred_providers: Sequence[str] = DEFAULT_PREFERRED_PROVIDERS,
) -> Optional[str]:
    """Map a free-text hint to a registered model id, or None."""
    name = hint.name if isinstance(hint, ModelHint) else hint
    if not name or not name.strip():
        logger.warning("Ignoring empty model hint")
        return None
    if not models:
        logger.warning(f"No models available to match hint '{name}'")
        return None

    hint_text = name.strip()
    lowered = hint_text.lower()

    for model in models:
        if model.id.lower() == lowered:
            return model.id

    alias = HINT_ALIASES.get(lowered)
    if alias is not None:
        candidates = alias_candidates(models, alias)
        if candidates:
            return apply_provider_preference(candidates, preferred_providers).id

    for alias_name, alias in HINT_ALIASES.items():
        if lowered in alias_name:
            candidates = alias_candidates(models, alias)
            if candidates:
                return apply_provider_preference(candidates, preferred_providers).id

    for model in models:
        if lowered in model.id.lower():
            return model.id

    return None


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def get_smart_default_model(
    models: Sequence[ModelInfo],
    preferred_providers: Sequence[str] = DEFAULT_PREFERRED_PROVIDERS,
) -> str:
    """Balanced pick from the first preferred provider with models, else from all."""
    for provider in preferred_providers:
        provider_models = [model for model in models if model.provider == provider]
        if provider_models:
            selected = select_best_model(provider_models, SMART_DEFAULT_WEIGHTS, preferred_providers)
            if selected:
                logger.debug(f"Smart default chose {selected} from preferred provider {provider}")
                return selected

    if models:
        selected = select_best_model(models, SMART_DEFAULT_WEIGHTS, preferred_providers)
        if selected:
            return selected

    logger.warning(f"No models available, falling back to {FALLBACK_MODEL_ID}")
    return FALLBACK_MODEL_ID


def select_model_by_preferences(
    models: Sequence[ModelInfo],
    preferences: Optional[ModelSelectionPreferences] = None,
    preferred_providers: Sequence[str] = DEFAULT_PREFERRED_PROVIDERS,
) -> str:
    """Select a model id for ``preferences`` from the visible ``models``."""
    if preferences is None:
        return get_smart_default_model(models, preferred_providers)

    if not models:
        logger.warning(f"No models available, falling back to {FALLBACK_MODEL_ID}")
        return FALLBACK_MODEL_ID

    for hint in preferences.hints:
        if not hint.name or not hint.name.strip():
            continue
        matched = map_hint_to_model(models, hint, preferred_providers)
        if matched:
            logger.info(f"Selected model {matched} from hint '{hint.name}'")
            return matched
        logger.debug(f"Hint '{hint.name}' did not match any registered model")

    selected = select_best_model(models, preferences.weights(), preferred_providers)
    return selected or FALLBACK_MODEL_ID


__all__ = [
    "DEFAULT_PREFERRED_PROVIDERS",
    "FALLBACK_MODEL_ID",
    "HINT_ALIASES",
    "HintAlias",
    "ModelHint",
    "ModelSelectionPreferences",
    "SMART_DEFAULT_WEIGHTS",
    "SPEED_SCORES",
    "SelectionWeights",
    "apply_provider_preference",
    "cost_score",
    "get_smart_default_model",
    "intelligence_score",
    "map_hint_to_model",
    "provider_preference_score",
    "score_model",
    "select_best_model",
    "select_model_by_preferences",
    "speed_score",
]
