#!/usr/bin/env python3
"""Main entry point for the DeepSearch server.

Bootstraps a Uvicorn ASGI server for deepsearch.api.server:app.
Loads .env file from --workdir if present to populate environment variables.
Configuration lives in <workdir>/.deepsearch/config.json (created on first run).
"""

import asyncio
import os
import signal
import sys
from argparse import ArgumentParser
from pathlib import Path

# Global flag for graceful shutdown
shutdown_event = asyncio.Event()

if __name__ == "__main__":
    # Parse arguments FIRST (before any config validation) so --help works always
    parser = ArgumentParser(description="Start DeepSearch server")
    parser.add_argument(
        "--workdir",
        required=True,
        help="Path to the working directory (config and chat database stored here)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port to listen on. Overrides config and SERVER_PORT env var.",
    )
    parser.add_argument(
        "--log-format",
        choices=["pretty", "json"],
        help="Log format (pretty or json). Overrides config and LOG_FORMAT env var.",
    )
    parser.add_argument(
        "--log-colors",
        type=lambda x: x.lower() in ("true", "1", "yes", "on"),
        help="Enable colored logs (true/false). Overrides config and LOG_COLORS env var.",
    )
    args, _ = parser.parse_known_args()

    # Set logging env vars from CLI flags before logger import
    if args.log_format:
        os.environ["LOG_FORMAT"] = args.log_format
    if args.log_colors is not None:
        os.environ["LOG_COLORS"] = "true" if args.log_colors else "false"

    from deepsearch.utils.logger import get_logger

    startup_logger = get_logger("server.startup")

    def signal_handler(signum, frame):
        """Handle shutdown signals gracefully."""
        sig_name = signal.Signals(signum).name
        startup_logger.info(f"Received {sig_name}, initiating graceful shutdown...")
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    workdir_path = Path(args.workdir).expanduser().resolve()
    if not workdir_path.is_dir():
        startup_logger.error("--workdir is not a directory", path=str(workdir_path))
        sys.exit(1)

    # Relative paths in config (database_path) resolve against the workdir
    os.chdir(workdir_path)

    from dotenv import load_dotenv

    env_file = workdir_path / ".env"
    if env_file.exists():
        load_dotenv(dotenv_path=env_file, override=False)
        startup_logger.debug("Loaded .env file", path=str(env_file))

    from deepsearch.config import create_config_manager, get_default_config, settings

    try:
        config_dir = workdir_path / ".deepsearch"
        config_dir.mkdir(parents=True, exist_ok=True)
        config_manager = create_config_manager(
            config_dir, defaults=get_default_config()
        )
        asyncio.run(config_manager.initialize())
        settings._config_manager = config_manager
        startup_logger.info(
            "Configuration initialized",
            config_file=str(config_dir / "config.json"),
        )
    except Exception as e:
        startup_logger.error("Failed to initialize configuration", error=str(e))
        sys.exit(1)

    config_valid, config_errors = settings.validation_status()
    if not config_valid:
        # Server still starts so /health can report what is missing
        startup_logger.warning("Configuration incomplete", errors=config_errors)

    try:
        import uvicorn

        from deepsearch.config.logging_config import get_logging_config

        port = args.port or settings.server_port
        startup_logger.info(
            "Starting DeepSearch Server",
            server_url=f"http://{settings.server_host}:{port}",
            docs_url=f"http://{settings.server_host}:{port}/docs",
            workdir=str(workdir_path),
        )

        config = uvicorn.Config(
            "deepsearch.api.server:app",
            host=settings.server_host,
            port=port,
            log_config=get_logging_config(),
            lifespan="on",
            timeout_graceful_shutdown=5,
        )
        server = uvicorn.Server(config)
        # We manage signals ourselves
        server.install_signal_handlers = False  # type: ignore[attr-defined]

        async def run_server():
            from deepsearch import __version__
            from deepsearch.api.server import app

            # Pass config manager to app for lifespan
            app.state.config_manager = config_manager
            startup_logger.info("Runtime environment", version=__version__)

            serve_task = asyncio.create_task(server.serve())
            shutdown_task = asyncio.create_task(shutdown_event.wait())

            done, _pending = await asyncio.wait(
                {shutdown_task, serve_task}, return_when=asyncio.FIRST_COMPLETED
            )

            if shutdown_task in done:
                startup_logger.info("Stopping server due to shutdown signal...")
                server.should_exit = True
                await serve_task
            else:
                shutdown_task.cancel()
            startup_logger.info("Server stopped")

        asyncio.run(run_server())
    except Exception as e:
        startup_logger.error("Error starting server", exc_info=True, error=str(e))
        sys.exit(1)
