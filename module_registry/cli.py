#!/usr/bin/env python3
"""
Module Registry CLI Entry Point

Loads configuration files and serves the registry on every configured
listener.
"""

import argparse
import asyncio
import sys

from module_registry import __version__, __package_name__
from module_registry.config import ConfigError, ConfigManager, ListenerConfig, load_config
from module_registry.utils.logger import Logger


def print_version():
    """Print version info."""
    print(f"{__package_name__} v{__version__}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="module-registry",
        description="Terraform module registry serving modules from git repositories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  module-registry registry.json           Serve the modules declared in registry.json
  module-registry /etc/module-registry/   Load every *.json file in the directory
  module-registry --port 3000 a.json b.json

Configuration (JSON):

  {
    "hostname": "registry.example.com",
    "listeners": {"http": [{"address": "127.0.0.1:8080"}]},
    "modules": [
      {"namespace": "acme", "name": "widget", "provider": "aws",
       "git_dir": "/srv/git/widget.git"}
    ]
  }

Versions are the repository's tags named v<version>.
"""
    )

    parser.add_argument(
        "config",
        nargs="*",
        help="Configuration files or directories of *.json files",
    )
    parser.add_argument(
        "--version", "-v",
        action="store_true",
        help="Show version and exit"
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Listen address when the configuration declares no listeners (default: REGISTRY_HOST or 0.0.0.0)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Listen port when the configuration declares no listeners (default: REGISTRY_PORT or 8000)"
    )
    return parser


async def main_async(args) -> int:
    manager = ConfigManager.get_instance()
    await manager.load()
    settings = manager.get()
    logger = Logger(name=__package_name__, level=settings.log_level)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        for message in e.errors:
            print(f"Error: {message}", file=sys.stderr)
        return 1

    listeners = config.listeners
    if not listeners:
        host = args.host or settings.host
        port = args.port or settings.port
        listeners = [ListenerConfig(address=f"{host}:{port}")]

    from module_registry.server_http import create_app, serve

    app = create_app(config, router_logger=Logger(f"{__package_name__}-router", level=settings.log_level))
    logger.info(f"Serving {len(config.modules)} modules as {config.hostname.for_display()}")
    await serve(app, listeners, log_level=settings.log_level, access_log=not settings.is_production)
    return 0


def main():
    """Main CLI entry point."""
    args = build_parser().parse_args()

    if args.version:
        print_version()
        sys.exit(0)

    sys.exit(asyncio.run(main_async(args)))


if __name__ == "__main__":
    main()
