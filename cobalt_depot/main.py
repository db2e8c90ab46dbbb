"""
Main entry point for the Cobalt Depot application.

This module provides the command-line interface and application startup logic.
"""

import asyncio
import json
import logging
import sys
from typing import Optional

import aiohttp
import typer
import uvicorn

from .application.container import Container
from .application.startup import ApplicationStartup
from .core.domain.models import SweepReport
from .core.interfaces.assets import ITempSweeper
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import ApplicationConfig
from .infrastructure.logging.setup import setup_logging
from .presentation.api.app import create_app

# Create CLI application
cli = typer.Typer(
    name="cobalt-depot",
    help="Resumable file upload server speaking the tus protocol"
)

logger = logging.getLogger(__name__)

# Components needed to reach stored data without serving HTTP
MAINTENANCE_COMPONENTS = ['catalog', 'temp_area', 'storage', 'upload_manager']


@cli.command()
def start(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="Server host address"
    ),
    port: Optional[int] = typer.Option(
        None, "--port", "-p", help="Server port"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug mode"
    )
) -> None:
    """Start the Cobalt Depot server."""

    config_loader = ConfigLoader()
    try:
        config = config_loader.load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    # Override with command line arguments
    if host:
        config.server.host = host
    if port:
        config.server.port = port
    if log_level:
        config.logging.level = log_level.upper()
    if debug:
        config.debug = True
        config.logging.level = "DEBUG"

    setup_logging(config.logging)

    logger.info(f"Starting {config.name} v{config.version}")
    logger.info(f"Environment: {config.environment}")
    logger.info(f"Storage backend: {config.storage.backend}")

    try:
        asyncio.run(run_application(config))
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
    except Exception as e:
        logger.error(f"Application failed to start: {e}")
        sys.exit(1)


@cli.command()
def dev(
    config_file: Optional[str] = typer.Option(
        "config.yaml", "--config", "-c", help="Configuration file path"
    ),
    port: int = typer.Option(
        3011, "--port", "-p", help="Server port"
    ),
    reload: bool = typer.Option(
        True, "--reload/--no-reload", help="Enable auto-reload"
    )
) -> None:
    """Start the server in development mode with auto-reload."""

    config_loader = ConfigLoader()
    config = config_loader.load_config(config_file)

    config.debug = True
    config.environment = "development"
    config.logging.level = "DEBUG"
    config.server.port = port

    setup_logging(config.logging)

    logger.info(f"Starting {config.name} in development mode")

    uvicorn.run(
        "cobalt_depot.presentation.api.app:create_app_from_config",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        reload=reload,
        reload_dirs=["cobalt_depot"],
        log_level=config.logging.level.lower(),
        access_log=True
    )


@cli.command()
def init_config(
    output: str = typer.Option(
        "config.yaml", "--output", "-o", help="Output configuration file"
    ),
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Configuration format (yaml/json)"
    )
) -> None:
    """Generate a default configuration file."""

    config = ApplicationConfig()
    config_loader = ConfigLoader()

    try:
        config_loader.save_config(config, output, format)
        typer.echo(f"Default configuration saved to {output}")
    except (OSError, ValueError) as e:
        typer.echo(f"Error saving configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
def validate_config(
    config_file: str = typer.Argument(...,
                                      help="Configuration file to validate")
) -> None:
    """Validate a configuration file."""

    config_loader = ConfigLoader()

    try:
        config = config_loader.load_config(config_file)
        typer.echo(f"Configuration file {config_file} is valid")
        typer.echo(f"Application: {config.name} v{config.version}")
        typer.echo(f"Environment: {config.environment}")
        typer.echo(f"Storage backend: {config.storage.backend}")
    except Exception as e:
        typer.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)


@cli.command()
def health_check(
    host: str = typer.Option("localhost", "--host", help="Server host"),
    port: int = typer.Option(3011, "--port", help="Server port"),
    prefix: str = typer.Option("/api", "--prefix", help="API path prefix"),
    timeout: float = typer.Option(10.0, "--timeout", help="Request timeout")
) -> None:
    """Check the health of a running server."""

    async def check_health() -> bool:
        url = f"http://{host}:{port}{prefix}/health"
        timeout_config = aiohttp.ClientTimeout(total=timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout_config) as session:
                async with session.get(url) as response:
                    if response.status == 200:
                        data = await response.json()
                        typer.echo(
                            f"Server is healthy: {data.get('status', 'unknown')} "
                            f"({data.get('filesCount', 0)} files, "
                            f"{data.get('activeUploads', 0)} active uploads)")
                        return True
                    else:
                        typer.echo(f"Server returned status {response.status}")
                        return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            typer.echo(f"Health check failed: {e}")
            return False

    result = asyncio.run(check_health())
    if not result:
        sys.exit(1)


@cli.command()
def sweep(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    retention: Optional[float] = typer.Option(
        None, "--retention", help="Override idle retention in seconds"
    )
) -> None:
    """Run one cleanup pass over temp and permanent storage, then exit."""

    config_loader = ConfigLoader()
    try:
        config = config_loader.load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    if retention is not None:
        config.sweeper.retention = retention

    setup_logging(config.logging)

    try:
        report = asyncio.run(run_sweep(config))
    except Exception as e:
        typer.echo(f"Sweep failed: {e}", err=True)
        sys.exit(1)

    typer.echo(json.dumps(report.to_dict(), indent=2))
    if report.errors:
        sys.exit(1)


async def run_sweep(config: ApplicationConfig) -> SweepReport:
    """Start storage components, run one sweeper pass and stop them."""
    container = Container()
    startup = ApplicationStartup(container)

    await startup.configure_services(config)
    await startup.start_application(only=MAINTENANCE_COMPONENTS)
    try:
        sweeper = container.resolve(ITempSweeper)  # type: ignore[type-abstract]
        return await sweeper.sweep_once()
    finally:
        await shutdown_handler(startup)


async def run_application(config: ApplicationConfig) -> None:
    """
    Run the application with the given configuration.

    Args:
        config: Application configuration
    """
    container = Container()
    startup = ApplicationStartup(container)

    try:
        await startup.configure_services(config)

        await startup.start_application()

        app = create_app(container, config)

        # uvicorn installs its own SIGINT/SIGTERM handlers for graceful exit
        server_config = uvicorn.Config(
            app=app,
            host=config.server.host,
            port=config.server.port,
            log_level=config.logging.level.lower(),
            access_log=config.server.access_log or config.debug,
            log_config=None,
        )

        server = uvicorn.Server(server_config)

        await server.serve()

    except Exception as e:
        logger.error(f"Application error: {e}")
        raise
    finally:
        await shutdown_handler(startup)


async def shutdown_handler(startup: ApplicationStartup) -> None:
    """Handle graceful shutdown."""
    try:
        await startup.stop_application()
        logger.info("Application shutdown completed")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
