# cli.py
import logging
from typing import Optional

import click

from files_proxy.settings import get_settings

# Configure logging
logger = logging.getLogger(__name__)


@click.group()
def cli():
    """CLI commands for the files proxy"""
    pass


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Interface to bind")
@click.option("--port", type=int, default=None, help="Port to listen on (defaults to the PORT setting)")
def serve(host: str, port: Optional[int]):
    """Run the HTTP server"""
    import uvicorn

    from files_proxy.main import create_app

    settings = get_settings()
    port = port or settings.port
    logger.info(f"Starting {settings.app_name} on {host}:{port}")
    uvicorn.run(create_app(settings), host=host, port=port)


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    click.echo("Current Configuration:")
    for key, value in settings.get_environment_dict().items():
        click.echo(f"  {key}: {value}")


if __name__ == "__main__":
    cli()
