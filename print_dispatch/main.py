"""
Print Dispatch Service entry point.
"""

import argparse
import logging
import sys

import uvicorn

from print_dispatch.api.dependencies import ServiceInfo
from print_dispatch.api.server import create_app
from print_dispatch.config import (
    create_config_store,
    get_paths_config,
    get_server_config,
    get_temp_config,
    load_config,
)
from print_dispatch.engine import create_engine
from print_dispatch.logging_config import setup_logging
from print_dispatch.maintenance import TempSweeper
from print_dispatch.platforms import current_platform
from print_dispatch.startup import print_startup_banner, run_startup_checks

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Print Dispatch Service")
    parser.add_argument(
        "-c", "--config",
        help="Path to settings file (default: config/default.yaml)"
    )
    parser.add_argument(
        "--host",
        help="Override host from settings"
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Override port from settings"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode"
    )
    parser.add_argument(
        "--skip-checks",
        action="store_true",
        help="Skip startup checks (not recommended)"
    )
    args = parser.parse_args()

    setup_logging(debug=args.debug)

    # Load settings
    try:
        config = load_config(args.config)
    except Exception as e:
        logger.error(f"Failed to load settings: {e}")
        sys.exit(1)

    # Apply CLI overrides before validation
    if args.host:
        config.setdefault("server", {})["host"] = args.host
    if args.port:
        config.setdefault("server", {})["port"] = args.port
    if args.debug:
        config.setdefault("server", {})["debug"] = True

    server_config = get_server_config(config)
    paths = get_paths_config(config)
    temp = get_temp_config(config)

    setup_logging(log_file=paths["log_file"], debug=server_config["debug"])

    platform = current_platform()
    store = create_config_store(config)

    # Run startup checks
    if not args.skip_checks:
        run_startup_checks(config, store, platform)

    engine = create_engine(
        store,
        temp_dir=paths["temp_dir"],
        resources_dir=paths["resources_dir"],
        platform=platform
    )

    sweeper = TempSweeper(
        paths["temp_dir"],
        retention_hours=temp["retention_hours"],
        interval_sec=temp["sweep_interval_sec"]
    )

    app = create_app(
        engine,
        store,
        ServiceInfo(
            platform=platform,
            resources_dir=paths["resources_dir"],
            log_file=paths["log_file"]
        ),
        cors_origins=server_config.get("cors_origins"),
        debug=server_config["debug"],
        sweeper=sweeper
    )

    print_startup_banner(config, store, platform)

    # Run server
    try:
        uvicorn.run(
            app,
            host=server_config["host"],
            port=server_config["port"],
            log_level="debug" if server_config["debug"] else "info"
        )
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
