import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "src"))

from services.llm.discovery import DEFAULT_OLLAMA_BASE_URL  # noqa: E402
from services.llm.provider_config import (  # noqa: E402
    get_user_model_preferences,
    load_provider_configuration,
)

PROVIDERS_YAML = """
preferred_providers:
  - openai
  - anthropic

providers:
  openai:
    enabled: true
    api_key_env: TEST_OPENAI_KEY
    user_preferences:
      temperature: 0.3
      maxTokens: 1200
  ollama:
    enabled: true
    baseUrl: http://gpu-box:11434
    timeout: 2500
"""


def write_providers(tmp_path, text=PROVIDERS_YAML):
    path = tmp_path / "llm_providers.yaml"
    path.write_text(text)
    return path


def test_builtin_provider_file_loads():
    configuration = load_provider_configuration()

    assert configuration.preferred_providers[0] == "anthropic"
    assert configuration.discovery_config().enabled is False
    assert configuration.get("anthropic").user_preferences.temperature == 0.7


def test_missing_file_uses_defaults(tmp_path):
    configuration = load_provider_configuration(tmp_path / "absent.yaml")

    assert configuration.preferred_providers == ["anthropic"]
    assert configuration.get("ollama").enabled is False
    assert configuration.discovery_config().resolved_base_url == DEFAULT_OLLAMA_BASE_URL
    assert configuration.get("groq").api_key_env == "GROQ_API_KEY"


def test_yaml_values_are_parsed(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_OPENAI_KEY", "sk-test")
    configuration = load_provider_configuration(write_providers(tmp_path))

    assert configuration.preferred_providers == ["openai", "anthropic"]
    openai = configuration.get("openai")
    assert openai.api_key == "sk-test"
    assert openai.user_preferences.temperature == 0.3
    assert openai.user_preferences.max_tokens == 1200

    discovery = configuration.discovery_config()
    assert discovery.enabled is True
    assert discovery.resolved_base_url == "http://gpu-box:11434"
    assert discovery.resolved_timeout_ms == 2500


def test_overrides_win_and_none_is_ignored(tmp_path):
    configuration = load_provider_configuration(
        write_providers(tmp_path),
        overrides={
            "preferred_providers": ["google"],
            "ollama": {"enabled": False, "base_url": None, "timeout_ms": 1000},
        },
    )

    assert configuration.preferred_providers == ["google"]
    discovery = configuration.discovery_config()
    assert discovery.enabled is False
    assert discovery.resolved_base_url == "http://gpu-box:11434"
    assert discovery.resolved_timeout_ms == 1000


def test_empty_overrides_keep_file_values(tmp_path):
    configuration = load_provider_configuration(
        write_providers(tmp_path),
        overrides={"preferred_providers": None, "ollama": {"enabled": None}},
    )

    assert configuration.preferred_providers == ["openai", "anthropic"]
    assert configuration.discovery_config().enabled is True


def test_user_model_preferences_lookup(tmp_path):
    configuration = load_provider_configuration(write_providers(tmp_path))

    assert get_user_model_preferences("openai", configuration).max_tokens == 1200
    assert get_user_model_preferences("google", configuration) is None
    assert get_user_model_preferences("mistral", configuration) is None
    assert get_user_model_preferences("openai", None) is None
