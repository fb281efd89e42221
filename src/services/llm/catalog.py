"""Static capability catalog loader."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .capabilities import ModelCapabilities, ModelInfo, ModelSource
from .errors import CatalogLoadError

logger = logging.getLogger(__name__)

_CATALOG_FILE = Path(__file__).resolve().parent.parent.parent / "config" / "model_capabilities.json"

METADATA_KEY = "_metadata"

# Ollama models are only ever sourced from discovery.
DYNAMIC_ONLY_PROVIDERS = frozenset({"ollama"})

_REQUIRED_PROPERTIES = (
    "contextWindow",
    "maxOutputTokens",
    "supportedFeatures",
    "defaults",
    "constraints",
)

CatalogSource = Union[str, Path, Mapping[str, Any], None]


def _read_catalog_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except OSError as exc:
        raise CatalogLoadError(f"Unable to read model catalog {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogLoadError(f"Malformed model catalog {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise CatalogLoadError("Invalid capabilities data: must be an object")
    return data


def load_catalog_data(source: CatalogSource = None) -> Dict[str, Any]:
    """Return the raw catalog mapping from a path, a mapping, or the built-in file."""
    if source is None:
        return _read_catalog_file(_CATALOG_FILE)
    if isinstance(source, Mapping):
        return dict(source)
    return _read_catalog_file(Path(source))


def _validate_model(provider: str, model_id: str, record: Any) -> None:
    where = f"{provider}/{model_id}"
    if not isinstance(record, Mapping):
        raise CatalogLoadError(f"Invalid capabilities for model {where}: must be an object")

    for prop in _REQUIRED_PROPERTIES:
        if prop not in record:
            raise CatalogLoadError(f"Invalid capabilities for model {where}: missing required property {prop}")

    for prop in ("contextWindow", "maxOutputTokens"):
        value = record[prop]
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise CatalogLoadError(f"Invalid capabilities for model {where}: {prop} must be a positive integer")

    constraints = record.get("constraints")
    if not isinstance(constraints, Mapping):
        raise CatalogLoadError(f"Invalid capabilities for model {where}: constraints must be an object")
    temperature = constraints.get("temperature")
    if not isinstance(temperature, Mapping) or "min" not in temperature or "max" not in temperature:
        raise CatalogLoadError(f"Invalid capabilities for model {where}: missing temperature constraints")
    if temperature["min"] > temperature["max"]:
        raise CatalogLoadError(f"Invalid capabilities for model {where}: temperature min exceeds max")

    pricing = record.get("token_pricing") or record.get("tokenPricing") or {}
    if not isinstance(pricing, Mapping):
        raise CatalogLoadError(f"Invalid capabilities for model {where}: token_pricing must be an object")
    for side in ("input", "output"):
        if pricing.get(side, 0) < 0:
            raise CatalogLoadError(f"Invalid capabilities for model {where}: negative {side} price")


def validate_catalog(data: Mapping[str, Any]) -> None:
    """Raise CatalogLoadError if the catalog structure is unusable."""
    if not isinstance(data, Mapping):
        raise CatalogLoadError("Invalid capabilities data: must be an object")

    for provider, models in data.items():
        if provider == METADATA_KEY:
            continue
        if not isinstance(models, Mapping):
            raise CatalogLoadError(f"Invalid capabilities for provider {provider}: must be an object")
        for model_id, record in models.items():
            _validate_model(provider, model_id, record)


def build_static_models(data: Mapping[str, Any]) -> List[ModelInfo]:
    """Convert a validated catalog into static ModelInfo records, in catalog order."""
    models: List[ModelInfo] = []
    for provider, entries in data.items():
        if provider == METADATA_KEY:
            continue
        if provider in DYNAMIC_ONLY_PROVIDERS:
            logger.debug(f"Skipping {len(entries)} static {provider} entries; these are discovered dynamically")
            continue
        for model_id, record in entries.items():
            try:
                capabilities = ModelCapabilities.from_dict(record)
            except (TypeError, ValueError, AttributeError) as exc:
                raise CatalogLoadError(f"Invalid capabilities for model {provider}/{model_id}: {exc}") from exc
            models.append(
                ModelInfo(
                    id=model_id,
                    display_name=capabilities.display_name,
                    provider=provider,
                    capabilities=capabilities,
                    source=ModelSource.STATIC,
                    hidden=bool(record.get("hidden", False)),
                )
            )
    return models


def load_static_models(source: CatalogSource = None) -> List[ModelInfo]:
    """Read, validate and convert the static catalog."""
    data = load_catalog_data(source)
    try:
        validate_catalog(data)
    except (TypeError, ValueError, AttributeError) as exc:
        raise CatalogLoadError(f"Invalid capabilities data: {exc}") from exc
    return build_static_models(data)


def catalog_metadata(source: CatalogSource = None) -> Optional[Dict[str, Any]]:
    """Return the ``_metadata`` block of the catalog, if present."""
    return load_catalog_data(source).get(METADATA_KEY)


__all__ = [
    "DYNAMIC_ONLY_PROVIDERS",
    "METADATA_KEY",
    "build_static_models",
    "catalog_metadata",
    "load_catalog_data",
    "load_static_models",
    "validate_catalog",
]
