"""Dynamic model discovery against a local Ollama server."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx

from .capabilities import (
    ModelCapabilities,
    ModelInfo,
    ModelSource,
    PricingMetadata,
    SupportedFeatures,
    TokenPricing,
    default_model_capabilities,
)
from .errors import DiscoveryAPIError, DiscoveryError, DiscoveryTimeoutError

logger = logging.getLogger(__name__)

OLLAMA_PROVIDER = "ollama"
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_DISCOVERY_TIMEOUT_MS = 5000

# Name fragments of model families known to handle tool calls.
TOOL_SUPPORTING_PATTERNS: List[str] = [
    "command-r",
    "firefunction",
    "tool-use",
    "function",
    "qwen",
    "llama3-groq",
]

VISION_PATTERNS: List[str] = [
    "vision",
    "llava",
    "multimodal",
]

# Context window / max output tokens for local models.
BASE_CONTEXT_WINDOW = 4096
BASE_MAX_OUTPUT_TOKENS = 2048
SIZED_CONTEXT_WINDOW = min(32768, 8192)
SIZED_MAX_OUTPUT_TOKENS = min(8192, 4096)


def matches_any(model_id: str, patterns: Iterable[str]) -> bool:
    lowered = model_id.lower()
    return any(pattern.lower() in lowered for pattern in patterns)


def model_supports_tools(model_id: str, patterns: Optional[Iterable[str]] = None) -> bool:
    """Heuristic: does the model name look like a tool-calling family?"""
    return matches_any(model_id, TOOL_SUPPORTING_PATTERNS if patterns is None else patterns)


def model_supports_vision(model_id: str, patterns: Optional[Iterable[str]] = None) -> bool:
    """Heuristic: does the model name look multimodal?"""
    return matches_any(model_id, VISION_PATTERNS if patterns is None else patterns)


@dataclass
class DiscoveryConfig:
    """Settings for the dynamic discovery provider."""

    enabled: bool = False
    base_url: Optional[str] = None
    timeout_ms: Optional[int] = None

    @property
    def resolved_base_url(self) -> str:
        return (self.base_url or DEFAULT_OLLAMA_BASE_URL).rstrip("/")

    @property
    def resolved_timeout_ms(self) -> int:
        return self.timeout_ms or DEFAULT_DISCOVERY_TIMEOUT_MS

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "DiscoveryConfig":
        if not data:
            return cls()
        base_url = data.get("base_url") or data.get("baseUrl") or data.get("baseURL")
        timeout = data.get("timeout_ms", data.get("timeout"))
        return cls(
            enabled=bool(data.get("enabled", False)),
            base_url=base_url,
            timeout_ms=int(timeout) if timeout else None,
        )


def _has_parameter_size(details: Mapping[str, Any]) -> bool:
    size = details.get("parameter_size")
    return isinstance(size, str) and bool(size.strip())


def build_ollama_model_info(entry: Mapping[str, Any]) -> ModelInfo:
    """Synthesize a registry record for one ``/api/tags`` entry."""
    model_id = entry["name"]
    details = entry.get("details")
    if not isinstance(details, Mapping):
        details = {}
    family = details.get("family")
    if not isinstance(family, str):
        family = None
    display_name = f"{model_id} ({family})" if family else model_id

    sized = _has_parameter_size(details)
    capabilities: ModelCapabilities = default_model_capabilities()
    capabilities.display_name = display_name
    capabilities.token_pricing = TokenPricing(input=0.0, output=0.0)
    capabilities.pricing_metadata = PricingMetadata(currency="USD", effective_date=date.today().isoformat())
    capabilities.context_window = SIZED_CONTEXT_WINDOW if sized else BASE_CONTEXT_WINDOW
    capabilities.max_output_tokens = SIZED_MAX_OUTPUT_TOKENS if sized else BASE_MAX_OUTPUT_TOKENS
    capabilities.supported_features = SupportedFeatures(
        function_calling=model_supports_tools(model_id),
        json=True,
        streaming=True,
        vision=model_supports_vision(model_id),
        extended_thinking=False,
        prompt_caching=False,
    )

    return ModelInfo(
        id=model_id,
        display_name=display_name,
        provider=OLLAMA_PROVIDER,
        capabilities=capabilities,
        source=ModelSource.DYNAMIC,
        hidden=False,
        local_only=True,
    )


class OllamaDiscoveryClient:
    """Lists the models a local Ollama server currently serves."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = client
        self._transport = transport

    async def fetch_tags(self, config: DiscoveryConfig) -> List[Dict[str, Any]]:
        url = f"{config.resolved_base_url}/api/tags"
        timeout_ms = config.resolved_timeout_ms

        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=timeout_ms / 1000)
            else:
                async with httpx.AsyncClient(transport=self._transport) as client:
                    response = await client.get(
                        url,
                        timeout=timeout_ms / 1000,
                        headers={"Content-Type": "application/json"},
                    )
        except httpx.TimeoutException as exc:
            raise DiscoveryTimeoutError(timeout_ms) from exc
        except httpx.HTTPError as exc:
            raise DiscoveryError(f"Ollama discovery request failed: {exc}") from exc

        if not response.is_success:
            raise DiscoveryAPIError(response.status_code, response.reason_phrase)

        try:
            payload = response.json()
        except ValueError as exc:
            raise DiscoveryError(f"Ollama discovery returned invalid JSON: {exc}") from exc

        models = payload.get("models") if isinstance(payload, dict) else None
        if models is None:
            return []
        if not isinstance(models, list):
            raise DiscoveryError(f"Ollama discovery returned unexpected models field: {type(models).__name__}")

        entries = []
        for model in models:
            name = model.get("name") if isinstance(model, dict) else None
            if isinstance(name, str) and name.strip():
                entries.append(model)
            else:
                logger.warning(f"Skipping Ollama model entry without a usable name: {model!r}")
        return entries

    async def discover(self, config: Optional[DiscoveryConfig]) -> List[ModelInfo]:
        """Return synthesized records, or nothing when discovery is disabled."""
        if config is None or not config.enabled:
            return []

        models: List[ModelInfo] = []
        for entry in await self.fetch_tags(config):
            try:
                models.append(build_ollama_model_info(entry))
            except (TypeError, ValueError, AttributeError, KeyError) as exc:
                logger.warning(f"Skipping malformed Ollama model entry {entry.get('name')!r}: {exc}")
        logger.debug(f"Ollama at {config.resolved_base_url} reported {len(models)} models")
        return models


__all__ = [
    "DEFAULT_DISCOVERY_TIMEOUT_MS",
    "DEFAULT_OLLAMA_BASE_URL",
    "DiscoveryConfig",
    "OLLAMA_PROVIDER",
    "OllamaDiscoveryClient",
    "TOOL_SUPPORTING_PATTERNS",
    "VISION_PATTERNS",
    "build_ollama_model_info",
    "model_supports_tools",
    "model_supports_vision",
]
