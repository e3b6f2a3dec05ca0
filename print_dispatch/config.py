"""
Deployment settings loading.

Server, path and retention settings live in YAML. The user-editable print
configuration (office paths, retries) lives in the JSON ConfigStore whose
location is resolved here.
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml

from print_dispatch.config_store import ConfigStore

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).parent
PROJECT_ROOT = PACKAGE_DIR.parent

# Bundled resources: print helper, automation script, demo documents
DEFAULT_RESOURCES_DIR = PACKAGE_DIR / "static"

# Environment variable that overrides the JSON configuration store location
CONFIG_STORE_ENV = "PRINT_DISPATCH_CONFIG"


def _data_home() -> Path:
    return Path(os.environ.get("PRINT_DISPATCH_HOME", Path.home() / ".print-dispatch"))


def load_config(config_path: Optional[str] = None) -> dict:
    """
    Load deployment settings from a YAML file.

    Looks for settings in order:
    1. Explicit path if provided
    2. CONFIG_FILE environment variable
    3. ./config/local.yaml
    4. ./config/default.yaml
    """
    search_paths = []

    if config_path:
        search_paths.append(Path(config_path))

    if env_path := os.environ.get("CONFIG_FILE"):
        search_paths.append(Path(env_path))

    search_paths.extend([
        PROJECT_ROOT / "config" / "local.yaml",
        PROJECT_ROOT / "config" / "default.yaml",
    ])

    for path in search_paths:
        if path.exists():
            logger.info(f"Loading settings from {path}")
            with open(path) as f:
                return yaml.safe_load(f) or {}

    logger.warning("No settings file found, using defaults")
    return {}


def get_server_config(config: dict) -> dict:
    """Extract server configuration."""
    server = config.get("server") or {}
    return {
        "host": server.get("host", "127.0.0.1"),
        "port": server.get("port", 8000),
        "debug": server.get("debug", False),
        "cors_origins": server.get("cors_origins", None),
    }


def get_paths_config(config: dict) -> dict:
    """
    Extract filesystem locations.

    Config format:
        paths:
          resources_dir: /opt/print-dispatch/static
          temp_dir: /var/tmp/print-dispatch
          log_file: /var/log/print-dispatch.log
    """
    paths = config.get("paths") or {}
    home = _data_home()
    return {
        "resources_dir": Path(paths.get("resources_dir") or DEFAULT_RESOURCES_DIR).expanduser(),
        "temp_dir": Path(paths.get("temp_dir") or home / "tmp").expanduser(),
        "log_file": Path(paths.get("log_file") or home / "logs" / "print-dispatch.log").expanduser(),
    }


def get_temp_config(config: dict) -> dict:
    """Extract temp-file retention settings."""
    temp = config.get("temp") or {}
    return {
        "retention_hours": float(temp.get("retention_hours", 24.0)),
        "sweep_interval_sec": float(temp.get("sweep_interval_sec", 3600.0)),
    }


def resolve_config_store_path(config: dict) -> Path:
    """
    Locate the JSON configuration store.

    The PRINT_DISPATCH_CONFIG environment variable wins over the
    `config_store.path` setting, which wins over the per-user default.
    """
    if env_path := os.environ.get(CONFIG_STORE_ENV):
        return Path(env_path)

    store = config.get("config_store") or {}
    if store.get("path"):
        return Path(store["path"]).expanduser()

    return _data_home() / "config.json"


def create_config_store(config: dict) -> ConfigStore:
    path = resolve_config_store_path(config)
    logger.info(f"Using print configuration at {path}")
    return ConfigStore(path)
