"""Exception hierarchy for the model registry."""

from __future__ import annotations

from typing import Optional


class ModelRegistryError(Exception):
    """Base class for model registry failures."""


class CatalogLoadError(ModelRegistryError):
    """Raised when the static capability catalog cannot be read or parsed."""


class RegistryNotInitializedError(ModelRegistryError):
    """Raised when an operation requires a completed registry initialization."""

    def __init__(self, message: str = "ModelRegistry: Service not initialized") -> None:
        super().__init__(message)


class DiscoveryError(ModelRegistryError):
    """Raised when dynamic model discovery fails."""


class DiscoveryTimeoutError(DiscoveryError):
    """Raised when the discovery endpoint does not answer in time."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Ollama discovery timeout after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class DiscoveryAPIError(DiscoveryError):
    """Raised when the discovery endpoint answers with a non-2xx status."""

    def __init__(self, status_code: int, reason: Optional[str] = None) -> None:
        message = f"Ollama API error: {status_code}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


__all__ = [
    "ModelRegistryError",
    "CatalogLoadError",
    "RegistryNotInitializedError",
    "DiscoveryError",
    "DiscoveryTimeoutError",
    "DiscoveryAPIError",
]
