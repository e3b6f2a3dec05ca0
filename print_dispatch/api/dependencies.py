"""
Dependency injection for API routes.

These are set up during app initialization.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from print_dispatch.config_store import ConfigStore
from print_dispatch.engine import DispatchEngine


@dataclass
class ServiceInfo:
    """Host facts reported by GET /config."""

    platform: str
    resources_dir: Path
    log_file: Optional[Path] = None


# Global instances (set during app init)
_engine: Optional[DispatchEngine] = None
_config_store: Optional[ConfigStore] = None
_service_info: Optional[ServiceInfo] = None


def init_dependencies(
    engine: DispatchEngine,
    config_store: ConfigStore,
    service_info: ServiceInfo
):
    """Initialize global dependencies."""
    global _engine, _config_store, _service_info
    _engine = engine
    _config_store = config_store
    _service_info = service_info


def get_engine() -> DispatchEngine:
    """Get dispatch engine instance."""
    if _engine is None:
        raise RuntimeError("Dispatch engine not initialized")
    return _engine


def get_config_store() -> ConfigStore:
    """Get configuration store instance."""
    if _config_store is None:
        raise RuntimeError("Configuration store not initialized")
    return _config_store


def get_service_info() -> ServiceInfo:
    """Get host service info."""
    if _service_info is None:
        raise RuntimeError("Service info not initialized")
    return _service_info
