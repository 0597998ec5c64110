"""
webtop - Main Entry Point.

Starts the HTTP server that samples the local host and serves
metrics to the webtop dashboard.
"""

import argparse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .core.config import Config, LoggingConfig, get_default_config_path
from .web.api import start_web_server


logger = logging.getLogger(__name__)


def setup_logging(logging_config: LoggingConfig, verbose: bool = False):
    """Configure the root logger."""
    level = logging.DEBUG if verbose else getattr(logging, logging_config.level.upper(), logging.INFO)
    handlers = [logging.StreamHandler()]

    if logging_config.file_path:
        Path(logging_config.file_path).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            logging_config.file_path,
            maxBytes=logging_config.max_file_size_mb * 1024 * 1024,
            backupCount=logging_config.backup_count,
        ))

    logging.basicConfig(
        level=level,
        format=logging_config.format,
        handlers=handlers,
        force=True,
    )


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="webtop - host metrics server for the web dashboard"
    )

    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file (YAML)"
    )

    parser.add_argument(
        "-p", "--port",
        type=int,
        default=None,
        help="Web server port (default: 3001)"
    )

    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind to (default: 0.0.0.0)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument(
        "--generate-config",
        action="store_true",
        help="Generate a sample configuration file"
    )

    return parser.parse_args(argv)


def load_config(args) -> Config:
    """Load configuration and apply command line overrides."""
    config_path = args.config or get_default_config_path()
    config = Config.from_yaml(config_path)

    if args.port:
        config.server.port = args.port
    if args.host:
        config.server.host = args.host

    return config


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    # Generate sample config if requested
    if args.generate_config:
        config = Config()
        config_path = "config/config.yaml"
        Path("config").mkdir(exist_ok=True)
        config.to_yaml(config_path)
        print(f"Generated sample configuration: {config_path}")
        return

    config = load_config(args)
    setup_logging(config.logging, verbose=args.verbose)
    logger.info(f"Loaded configuration from {args.config or get_default_config_path()}")

    start_web_server(
        host=config.server.host,
        port=config.server.port,
        app_config=config,
    )


def run():
    """Entry point for the application."""
    try:
        main()
    except KeyboardInterrupt:
        print("\nShutdown complete")


if __name__ == "__main__":
    run()
