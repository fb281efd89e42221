import asyncio
import logging
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "src"))

from services.llm import model_registry  # noqa: E402
from services.llm.capabilities import ModelInfo, ModelSource  # noqa: E402
from services.llm.discovery import DiscoveryConfig, OllamaDiscoveryClient, build_ollama_model_info  # noqa: E402
from services.llm.errors import (  # noqa: E402
    CatalogLoadError,
    DiscoveryAPIError,
    DiscoveryTimeoutError,
    RegistryNotInitializedError,
)
from services.llm.model_registry import ModelRegistry  # noqa: E402
from services.llm.provider_config import ProviderConfiguration, ProviderSettings  # noqa: E402
from services.llm.selection import FALLBACK_MODEL_ID  # noqa: E402

from catalog_fixtures import ollama_model, sample_catalog  # noqa: E402


class StubDiscoveryClient:
    """Returns queued results (lists of model names or exceptions) per call."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def discover(self, config):
        self.calls += 1
        if not config or not config.enabled:
            return []
        result = self.results.pop(0) if self.results else []
        if isinstance(result, Exception):
            raise result
        return [build_ollama_model_info(ollama_model(name)) for name in result]


ENABLED = DiscoveryConfig(enabled=True)


def assert_index_consistent(registry):
    mapping = registry.get_model_to_provider_mapping()
    seen = []
    for provider in registry.get_providers():
        ids = [model.id for model in registry.get_models_by_provider_including_hidden(provider)]
        assert len(ids) == len(set(ids))
        for model_id in ids:
            assert mapping[model_id] == provider
        seen.extend(ids)
    assert sorted(seen) == sorted(mapping)


@pytest.mark.asyncio
async def test_initialize_loads_static_catalog():
    registry = ModelRegistry(discovery_client=StubDiscoveryClient())
    await registry.initialize(catalog=sample_catalog())

    assert registry.initialized
    assert registry.get_model("gpt-4o").provider == "openai"
    assert registry.get_model("stale-ollama-model:7b") is None
    assert_index_consistent(registry)


@pytest.mark.asyncio
async def test_hidden_models_are_filtered():
    registry = ModelRegistry(discovery_client=StubDiscoveryClient())
    await registry.initialize(catalog=sample_catalog())

    visible = {model.id for model in registry.get_all_models()}
    everything = {model.id for model in registry.get_all_models_including_hidden()}

    assert visible <= everything
    assert everything - visible == {"claude-3-opus-20240229"}
    anthropic = [model.id for model in registry.get_models_by_provider("anthropic")]
    assert anthropic == ["claude-sonnet-4-5-20250929", "claude-3-5-haiku-20241022"]
    assert len(registry.get_models_by_provider("anthropic", include_hidden=True)) == 3


@pytest.mark.asyncio
async def test_default_model_for_provider_is_first_registered():
    registry = ModelRegistry(discovery_client=StubDiscoveryClient())
    await registry.initialize(catalog=sample_catalog())

    assert registry.get_default_model_for_provider("openai") == "gpt-4o"
    assert registry.get_default_model_for_provider("mistral") is None


@pytest.mark.asyncio
async def test_unknown_model_gets_default_capabilities(caplog):
    registry = ModelRegistry(discovery_client=StubDiscoveryClient())
    await registry.initialize(catalog=sample_catalog())

    with caplog.at_level(logging.WARNING):
        caps = registry.get_model_capabilities("no-such-model")

    assert caps.display_name == "Unknown Model"
    assert caps.context_window == 4096
    assert caps.token_pricing.input == 0
    assert not caps.supported_features.function_calling
    assert "Model not found" in caplog.text


@pytest.mark.asyncio
async def test_feature_and_provider_lookups():
    registry = ModelRegistry(discovery_client=StubDiscoveryClient())
    await registry.initialize(catalog=sample_catalog())

    assert registry.supports_feature("claude-sonnet-4-5-20250929", "extendedThinking")
    assert registry.supports_feature("claude-sonnet-4-5-20250929", "extended_thinking")
    assert not registry.supports_feature("gpt-4o", "extendedThinking")
    assert registry.get_model_provider("gemini-2.0-flash") == "google"
    assert registry.get_model_provider("unknown") is None


def test_uninitialized_queries_degrade(caplog):
    registry = ModelRegistry(discovery_client=StubDiscoveryClient())

    with caplog.at_level(logging.WARNING):
        assert registry.get_all_models() == []
        assert registry.get_models_by_provider("anthropic") == []
        assert registry.get_model("gpt-4o") is None
        assert registry.get_default_model_for_provider("anthropic") is None
        assert registry.get_model_capabilities("gpt-4o").display_name == "Unknown Model"
        assert registry.select_model_by_preferences() == FALLBACK_MODEL_ID
        assert registry.select_model_by_preferences({"hints": [{"name": "gpt-4o"}]}) == FALLBACK_MODEL_ID

    assert "not initialized" in caplog.text


@pytest.mark.asyncio
async def test_refresh_before_initialize_raises():
    registry = ModelRegistry(discovery_client=StubDiscoveryClient())

    with pytest.raises(RegistryNotInitializedError):
        await registry.refresh_dynamic_models()


@pytest.mark.asyncio
async def test_bad_catalog_fails_initialization(tmp_path):
    bad = tmp_path / "catalog.json"
    bad.write_text("[]")
    registry = ModelRegistry(discovery_client=StubDiscoveryClient())

    with pytest.raises(CatalogLoadError):
        await registry.initialize(catalog=bad)

    assert not registry.initialized
    assert registry.get_all_models(include_hidden=True) == []

    await registry.initialize(catalog=sample_catalog())
    assert registry.initialized


@pytest.mark.asyncio
async def test_discovery_failure_does_not_abort_initialization(caplog):
    client = StubDiscoveryClient(DiscoveryTimeoutError(5000))
    registry = ModelRegistry(discovery_client=client)

    with caplog.at_level(logging.WARNING):
        await registry.initialize(catalog=sample_catalog(), discovery_config=ENABLED)

    assert registry.initialized
    assert registry.get_models_by_provider("ollama") == []
    assert "Error discovering Ollama models" in caplog.text


@pytest.mark.asyncio
async def test_discovered_models_are_registered():
    client = StubDiscoveryClient(["llama3.2:3b", "qwen2.5:7b"])
    registry = ModelRegistry(discovery_client=client)
    await registry.initialize(catalog=sample_catalog(), discovery_config=ENABLED)

    ollama = registry.get_models_by_provider("ollama")
    assert [model.id for model in ollama] == ["llama3.2:3b", "qwen2.5:7b"]
    assert all(model.source is ModelSource.DYNAMIC for model in ollama)
    assert registry.get_default_model_for_provider("ollama") == "llama3.2:3b"
    assert [model.id for model in registry.get_dynamic_models()] == ["llama3.2:3b", "qwen2.5:7b"]


@pytest.mark.asyncio
async def test_rediscovery_keeps_ids_unique():
    client = StubDiscoveryClient(["llama3.2:3b"], ["llama3.2:3b", "mistral:7b"], ["mistral:7b"])
    registry = ModelRegistry(discovery_client=client)
    await registry.initialize(catalog=sample_catalog(), discovery_config=ENABLED)

    await registry.refresh_dynamic_models()
    await registry.refresh_dynamic_models()

    ids = [model.id for model in registry.get_models_by_provider("ollama")]
    assert ids == ["llama3.2:3b", "mistral:7b"]
    assert_index_consistent(registry)


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_dynamic_models():
    client = StubDiscoveryClient(["llama3.2:3b"], DiscoveryAPIError(500, "Internal Server Error"))
    registry = ModelRegistry(discovery_client=client)
    await registry.initialize(catalog=sample_catalog(), discovery_config=ENABLED)

    assert await registry.refresh_dynamic_models() == []
    assert registry.get_model("llama3.2:3b") is not None


@pytest.mark.asyncio
async def test_initialize_without_discovery_then_refresh():
    client = StubDiscoveryClient(["llama3.2:3b"])
    registry = ModelRegistry(discovery_client=client)
    await registry.initialize(catalog=sample_catalog(), discovery_config=ENABLED, discover=False)

    assert registry.initialized
    assert client.calls == 0
    assert registry.get_model("gpt-4o") is not None

    assert await registry.refresh_dynamic_models() == ["llama3.2:3b"]


@pytest.mark.asyncio
async def test_disabled_discovery_adds_nothing():
    client = StubDiscoveryClient(["llama3.2:3b"])
    registry = ModelRegistry(discovery_client=client)
    configuration = ProviderConfiguration(
        providers={"ollama": ProviderSettings(name="ollama", enabled=False)},
        preferred_providers=["openai"],
    )
    await registry.initialize(catalog=sample_catalog(), provider_configuration=configuration)

    assert registry.get_models_by_provider("ollama") == []
    assert client.calls == 0
    assert registry.get_preferred_providers() == ["openai"]


@pytest.mark.asyncio
async def test_concurrent_initialize_runs_once(monkeypatch):
    loads = []
    real_load = model_registry.load_static_models

    def counting_load(source):
        loads.append(source)
        return real_load(source)

    monkeypatch.setattr(model_registry, "load_static_models", counting_load)

    class SlowDiscovery(StubDiscoveryClient):
        async def discover(self, config):
            await asyncio.sleep(0.01)
            return await super().discover(config)

    client = SlowDiscovery(["llama3.2:3b"])
    registry = ModelRegistry(discovery_client=client)

    await asyncio.gather(
        *(registry.initialize(catalog=sample_catalog(), discovery_config=ENABLED) for _ in range(5))
    )
    await registry.initialize(catalog=sample_catalog(), discovery_config=ENABLED)

    assert len(loads) == 1
    assert client.calls == 1
    assert registry.initialized


@pytest.mark.asyncio
async def test_reregistration_under_new_provider_moves_id():
    registry = ModelRegistry(discovery_client=StubDiscoveryClient())
    await registry.initialize(catalog=sample_catalog())

    moved = registry.get_model("gpt-4o")
    registry.register_model(
        ModelInfo(id="gpt-4o", display_name="GPT-4o (proxy)", provider="proxy", capabilities=moved.capabilities)
    )

    assert "gpt-4o" not in [model.id for model in registry.get_models_by_provider("openai")]
    assert registry.get_model_provider("gpt-4o") == "proxy"
    assert_index_consistent(registry)


def test_preferred_providers_are_copied():
    registry = ModelRegistry()
    providers = ["openai", "anthropic"]
    registry.set_preferred_providers(providers)
    providers.append("google")

    returned = registry.get_preferred_providers()
    returned.append("groq")

    assert registry.get_preferred_providers() == ["openai", "anthropic"]


@pytest.mark.asyncio
async def test_returned_models_are_copies():
    registry = ModelRegistry(discovery_client=StubDiscoveryClient())
    await registry.initialize(catalog=sample_catalog())

    model = registry.get_model("gpt-4o")
    model.capabilities.max_output_tokens = 1

    assert registry.get_model("gpt-4o").capabilities.max_output_tokens == 16384


@pytest.mark.asyncio
async def test_reset_clears_state():
    registry = ModelRegistry(discovery_client=StubDiscoveryClient())
    await registry.initialize(catalog=sample_catalog())

    registry.reset()

    assert not registry.initialized
    assert registry.get_all_models() == []


@pytest.mark.asyncio
async def test_ensure_model_registry_uses_settings(monkeypatch):
    class StubSettings:
        MODEL_CATALOG_PATH = None
        PROVIDER_CONFIG_PATH = "/nonexistent/llm_providers.yaml"
        PREFERRED_PROVIDERS = ["google"]
        OLLAMA_ENABLED = False
        OLLAMA_BASE_URL = None
        OLLAMA_TIMEOUT_MS = None

    model_registry.reset_model_registry()
    monkeypatch.setattr(model_registry, "_default_registry", ModelRegistry(discovery_client=StubDiscoveryClient()))

    registry = await model_registry.ensure_model_registry(StubSettings())

    assert registry is model_registry.get_model_registry()
    assert registry.initialized
    assert registry.get_preferred_providers() == ["google"]
    assert registry.get_model("claude-sonnet-4-5-20250929") is not None
    model_registry.reset_model_registry()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"models": [{"name": "llava:7b", "details": "7B"}]}, ["llava:7b"]),
        ({"models": [{"name": 123}]}, []),
        ({"models": 5}, []),
    ],
)
async def test_malformed_tags_do_not_abort_initialization(payload, expected):
    client = OllamaDiscoveryClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload)))
    registry = ModelRegistry(discovery_client=client)

    await registry.initialize(catalog=sample_catalog(), discovery_config=ENABLED)

    assert registry.initialized
    assert [model.id for model in registry.get_models_by_provider("ollama")] == expected
    assert registry.get_model("gpt-4o") is not None


@pytest.mark.asyncio
async def test_failed_initialization_keeps_previous_configuration(tmp_path):
    bad = tmp_path / "catalog.json"
    bad.write_text("{ not json")
    registry = ModelRegistry(discovery_client=StubDiscoveryClient(), preferred_providers=["openai"])
    configuration = ProviderConfiguration(
        providers={"ollama": ProviderSettings(name="ollama", enabled=True)},
        preferred_providers=["google"],
    )

    with pytest.raises(CatalogLoadError):
        await registry.initialize(catalog=bad, provider_configuration=configuration)

    assert registry.get_preferred_providers() == ["openai"]
    assert registry.provider_configuration is None

    client = StubDiscoveryClient(["llama3.2:3b"])
    retry = ModelRegistry(discovery_client=client)
    with pytest.raises(CatalogLoadError):
        await retry.initialize(catalog=bad, discovery_config=ENABLED)
    await retry.initialize(catalog=sample_catalog(), discover=False)

    assert await retry.refresh_dynamic_models() == []
    assert client.calls == 0
