"""
Startup checks and validation.

Run before starting the server to catch configuration issues early.
"""

import importlib.util
import logging
import socket
import sys
from typing import Optional

from print_dispatch.config_store import ConfigStore
from print_dispatch.locator import ROLES

logger = logging.getLogger(__name__)

# Optional runtime dependencies: import name -> distribution name
OPTIONAL_DEPENDENCIES = {
    "playwright": "playwright",
    "cups": "pycups",
    "win32print": "pywin32",
    "pypdf": "pypdf",
}


def check_port_available(host: str, port: int) -> tuple[bool, Optional[str]]:
    """
    Check if a port is available for binding.

    Returns:
        (True, None) if available
        (False, error_message) if not
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
        return True, None
    except OSError as e:
        if e.errno in (10048, 98, 48):  # Windows / Linux / macOS "address in use"
            return False, f"Port {port} is already in use. Another service may be running on this port."
        elif e.errno in (10049, 99, 49):  # Can't assign address
            return False, f"Cannot bind to {host}:{port}. Check if the host address is valid."
        elif e.errno in (10013, 13):  # Permission denied
            return False, f"Permission denied for port {port}. Ports below 1024 require admin/root privileges."
        else:
            return False, f"Cannot bind to {host}:{port}: {e}"
    finally:
        sock.close()


def validate_config(config: dict) -> list[str]:
    """
    Validate deployment settings and return list of warnings/errors.

    Returns:
        List of warning/error messages (empty if all good)
    """
    issues = []

    server = config.get("server") or {}
    port = server.get("port", 8000)

    if not isinstance(port, int) or isinstance(port, bool) or port < 1 or port > 65535:
        issues.append(f"Invalid port: {port}. Must be between 1 and 65535.")
    elif port < 1024:
        issues.append(f"Port {port} is a privileged port. Consider using a port >= 1024.")

    temp = config.get("temp") or {}
    for key in ("retention_hours", "sweep_interval_sec"):
        value = temp.get(key)
        if value is not None and (not isinstance(value, (int, float)) or value <= 0):
            issues.append(f"Invalid temp.{key}: {value}. Must be a positive number.")

    return issues


def validate_print_config(store: ConfigStore) -> list[str]:
    """
    Check the shape of office path settings in the print configuration.

    Accepted per role: a string, a list of strings, or an object keyed by
    platform (with optional `default`).
    """
    issues = []

    office = store.get("office")
    if office is not None and not isinstance(office, dict):
        issues.append("'office' must be an object keyed by role (word, excel, ppt).")
        office = {}

    for role in ROLES:
        value = (office or {}).get(role)
        if value is None or isinstance(value, str):
            continue
        if isinstance(value, list):
            if not all(isinstance(v, str) for v in value):
                issues.append(f"office.{role} list must contain only strings.")
        elif isinstance(value, dict):
            for key, entry in value.items():
                if not isinstance(entry, (str, list)):
                    issues.append(f"office.{role}.{key} must be a string or list of strings.")
        else:
            issues.append(f"office.{role} has unsupported type {type(value).__name__}.")

    office_paths = store.get("officePaths")
    if office_paths is not None and not isinstance(office_paths, dict):
        issues.append("'officePaths' must be an object keyed by platform.")

    for key in ("print.retries", "print.retryDelayMs"):
        value = store.get(key)
        if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value < 0):
            issues.append(f"{key} must be a non-negative integer, got {value!r}.")

    return issues


def check_dependencies() -> dict[str, bool]:
    """
    Check which optional dependencies are available.

    Returns:
        Dict of distribution name -> is_available
    """
    return {
        dist: importlib.util.find_spec(module) is not None
        for module, dist in OPTIONAL_DEPENDENCIES.items()
    }


def run_startup_checks(config: dict, store: ConfigStore, platform: str) -> None:
    """
    Run all startup checks. Exits with error if critical issues found.

    Args:
        config: Loaded deployment settings
        store: Print configuration store
        platform: Host platform name
    """
    logger.info("Running startup checks...")

    errors = []
    warnings = []

    server = config.get("server") or {}
    host = server.get("host", "127.0.0.1")
    port = server.get("port", 8000)

    for issue in validate_config(config):
        if issue.startswith("Invalid"):
            errors.append(issue)
        else:
            warnings.append(issue)

    if not errors:
        available, port_error = check_port_available(host, port)
        if not available:
            errors.append(port_error)

    warnings.extend(validate_print_config(store))

    # Only the backend for this platform matters
    deps = check_dependencies()
    if platform == "win32":
        deps.pop("pycups", None)
    else:
        deps.pop("pywin32", None)
    missing_deps = [name for name, available in deps.items() if not available]
    if missing_deps:
        warnings.append(f"Optional dependencies not installed: {', '.join(missing_deps)}")

    for warning in warnings:
        logger.warning(f"  ⚠ {warning}")

    if errors:
        logger.error("Startup checks failed:")
        for error in errors:
            logger.error(f"  ✗ {error}")
        logger.error("")
        logger.error("Fix these issues and try again.")
        sys.exit(1)

    if warnings:
        logger.info(f"Startup checks passed with {len(warnings)} warning(s)")
    else:
        logger.info("Startup checks passed ✓")


def print_startup_banner(config: dict, store: ConfigStore, platform: str) -> None:
    """Print a startup banner with useful info."""
    server = config.get("server") or {}
    host = server.get("host", "127.0.0.1")
    port = server.get("port", 8000)

    print("")
    print("=" * 50)
    print("  Print Dispatch Service")
    print("=" * 50)
    print("")
    print(f"  Local URL:    http://{host}:{port}")
    print(f"  API Docs:     http://{host}:{port}/docs")
    print(f"  Platform:     {platform}")
    print(f"  Config file:  {store.path}")
    print("")
    print("  Endpoints:")
    print("    POST /print/pdf | /print/pdf-stream | /print/pdf/batch")
    print("    POST /print/word | /print/excel | /print/ppt | /print/office")
    print("    POST /print/html | /print/jsx")
    print("    GET  /printers                  - List printers")
    print("    GET  /config                    - Resolved configuration")
    print("    POST /setConfig                 - Update configuration")
    print("")
    print("=" * 50)
    print("")
