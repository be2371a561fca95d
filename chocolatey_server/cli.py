"""CLI entry point for chocolatey-server."""

import asyncio
import sys

import click
import uvicorn

from chocolatey_server import __version__
from chocolatey_server.core.config import load_settings
from chocolatey_server.data.loader import load_feed
from chocolatey_server.domain.errors import ChocolateyServerError
from chocolatey_server.main import configure_logging, create_app


@click.command()
@click.version_option(version=__version__, prog_name="chocolatey-server")
@click.argument("packages", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option("--host", default=None, help="Interface to listen on (default 0.0.0.0).")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on (default 8000, or $PORT).")
@click.option("--prefix", default=None, help="Route prefix for all feed URLs (default /).")
@click.option(
    "--catalog",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON list of packages hosted elsewhere.",
)
@click.option(
    "--templates",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Directory with custom feed templates.",
)
@click.option("--log-level", default=None, help="Logging level (default INFO).")
def main(packages, host, port, prefix, catalog, templates, log_level):
    """Serve Chocolatey packages from a minimal NuGet v2 feed.

    PACKAGES are the .nupkg files to host.

    Examples:

        chocolatey-server foo.1.0.0.nupkg bar.2.1.nupkg

        PORT=9000 chocolatey-server --prefix /choco *.nupkg
    """
    settings = load_settings(
        {
            "package_paths": list(packages),
            "host": host,
            "port": port,
            "prefix": prefix,
            "catalog_path": catalog,
            "template_dir": templates,
            "log_level": log_level,
        }
    )
    configure_logging(settings.log_level)

    if not settings.package_paths and not settings.catalog_path:
        click.echo("Please specify paths to Chocolatey packages.", err=True)
        sys.exit(1)

    try:
        feed = asyncio.run(load_feed(settings))
    except ChocolateyServerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Listening on port {settings.port}")
    click.echo("To override the port, use --port or the PORT environment variable.")
    uvicorn.run(create_app(settings, feed=feed), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
