import asyncio
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "src"))

from services.llm.capabilities import default_model_capabilities  # noqa: E402
from services.llm.model_registry import ModelRegistry  # noqa: E402
from services.llm.parameters import (  # noqa: E402
    ParameterSet,
    clamp_temperature,
    validate_parameter,
)
from services.llm.provider_config import (  # noqa: E402
    ProviderConfiguration,
    ProviderSettings,
    UserModelPreferences,
)

from catalog_fixtures import capability_record, sample_catalog  # noqa: E402

SONNET = "claude-sonnet-4-5-20250929"
HAIKU = "claude-3-5-haiku-20241022"


def build_registry(provider_configuration=None):
    catalog = sample_catalog()
    catalog["custom"] = {"small-model": capability_record("Small", max_output_tokens=2048, default_max_tokens=1024)}
    registry = ModelRegistry()
    asyncio.run(registry.initialize(catalog=catalog, provider_configuration=provider_configuration, discover=False))
    return registry


@pytest.fixture
def registry():
    return build_registry()


def test_max_tokens_clamped_to_model_limit(registry):
    assert registry.resolve_max_tokens("small-model", 100_000) == 2048
    assert registry.resolve_max_tokens("gpt-4o", 100_000) == 16384
    assert registry.resolve_max_tokens(SONNET, 1000) == 1000


@pytest.mark.parametrize("value", [0, -5])
def test_non_positive_max_tokens_use_model_limit(registry, value):
    assert registry.resolve_max_tokens("small-model", value) == 2048


def test_max_tokens_default(registry):
    assert registry.resolve_max_tokens(SONNET) == 16384
    assert registry.resolve_max_tokens("small-model") == 1024


def test_temperature_clamped_to_range(registry):
    assert registry.resolve_temperature("gpt-4o", 3.5) == 2.0
    assert registry.resolve_temperature(SONNET, 1.5) == 1.0
    assert registry.resolve_temperature(SONNET, -0.3) == 0.0
    assert registry.resolve_temperature("gpt-4o", 1.4) == pytest.approx(1.4)


@pytest.mark.parametrize("value", [-1.0, 0.0, 0.5, 1.0, 7.0])
def test_temperature_clamp_is_idempotent(value):
    capabilities = default_model_capabilities()
    once = clamp_temperature(capabilities, value)

    assert clamp_temperature(capabilities, once) == once
    assert 0.0 <= once <= 1.0


def test_extended_thinking_requires_support(registry):
    assert registry.resolve_extended_thinking("gpt-4o", True) is False
    assert registry.resolve_extended_thinking(SONNET, True) is True
    assert registry.resolve_extended_thinking(SONNET) is False


def test_precedence_explicit_user_interaction_default(registry):
    assert registry.resolve_temperature(SONNET, 0.1, 0.3, 0.9) == pytest.approx(0.1)
    assert registry.resolve_temperature(SONNET, None, 0.3, 0.9) == pytest.approx(0.3)
    assert registry.resolve_temperature(SONNET, None, None, 0.9) == pytest.approx(0.9)
    assert registry.resolve_temperature(SONNET) == pytest.approx(0.7)


def test_unknown_model_uses_default_capabilities(registry):
    assert registry.resolve_max_tokens("mystery-model", 100_000) == 2048
    assert registry.resolve_temperature("mystery-model", 1.8) == 1.0
    assert registry.resolve_extended_thinking("mystery-model", True) is False


def test_unknown_parameter_name_is_rejected():
    with pytest.raises(ValueError):
        validate_parameter("top_p", default_model_capabilities(), 0.9)


def test_extended_thinking_forces_temperature(registry):
    resolved = registry.parameters.resolve_model_parameters(
        SONNET, ParameterSet(temperature=0.2, extended_thinking=True)
    )

    assert resolved.extended_thinking is True
    assert resolved.temperature == 1.0
    assert resolved.max_tokens == 16384


def test_unsupported_extended_thinking_keeps_temperature(registry):
    resolved = registry.parameters.resolve_model_parameters(
        "gpt-4o", ParameterSet(temperature=0.2, extended_thinking=True, max_tokens=50_000)
    )

    assert resolved.extended_thinking is False
    assert resolved.temperature == pytest.approx(0.2)
    assert resolved.max_tokens == 16384


def test_user_preferences_come_from_provider_configuration():
    configuration = ProviderConfiguration(
        providers={
            "anthropic": ProviderSettings(
                name="anthropic",
                user_preferences=UserModelPreferences(temperature=0.4, max_tokens=1000),
            )
        },
        preferred_providers=["anthropic"],
    )
    registry = build_registry(configuration)

    anthropic = registry.parameters.resolve_model_parameters(SONNET)
    assert anthropic.temperature == pytest.approx(0.4)
    assert anthropic.max_tokens == 1000

    openai = registry.parameters.resolve_model_parameters("gpt-4o")
    assert openai.temperature == pytest.approx(0.7)
    assert openai.max_tokens == 2048

    explicit = registry.parameters.resolve_model_parameters(SONNET, ParameterSet(temperature=0.9))
    assert explicit.temperature == pytest.approx(0.9)
    assert explicit.max_tokens == 1000


def test_interaction_presets(registry):
    resolver = registry.parameters

    assert resolver.get_interaction_preferences("chat", SONNET) == ParameterSet(temperature=0.7, max_tokens=4096)
    assert resolver.get_interaction_preferences("chat", "small-model").max_tokens == 2048
    assert resolver.get_interaction_preferences("conversation", HAIKU) == ParameterSet(
        temperature=0.2, max_tokens=8192
    )
    assert resolver.get_interaction_preferences("conversation", SONNET).max_tokens == 16384
    assert resolver.get_interaction_preferences("conversation", "gpt-4o").max_tokens == 8192
    assert resolver.get_interaction_preferences("summary", SONNET) == ParameterSet(temperature=0.7, max_tokens=16384)


def test_interaction_preset_feeds_resolution(registry):
    interaction = registry.parameters.get_interaction_preferences("conversation", SONNET)

    resolved = registry.parameters.resolve_model_parameters(SONNET, interaction_preferences=interaction)

    assert resolved.temperature == pytest.approx(0.2)
    assert resolved.max_tokens == 16384


@pytest.mark.parametrize("model_id", ["small-model", "gpt-4o", SONNET, "mystery-model"])
@pytest.mark.parametrize("value", [100_000, 2048, 500, 1, 0, -5])
def test_max_tokens_resolution_is_idempotent(registry, model_id, value):
    once = registry.resolve_max_tokens(model_id, value)

    assert registry.resolve_max_tokens(model_id, once) == once
    assert 0 < once <= registry.get_model_capabilities(model_id).max_output_tokens


@pytest.mark.parametrize("model_id", ["gpt-4o", SONNET, "mystery-model"])
@pytest.mark.parametrize("value", [-3.0, 0.0, 0.45, 1.0, 1.7, 9.0])
def test_temperature_resolution_is_idempotent(registry, model_id, value):
    once = registry.resolve_temperature(model_id, value)

    assert registry.resolve_temperature(model_id, once) == once
