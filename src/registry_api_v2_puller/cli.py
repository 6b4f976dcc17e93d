"""Command line interface for pulling images into docker load archives."""

import asyncio
import logging

import click

from .core.types import DEFAULT_NAMESPACE, DEFAULT_PLATFORM, DEFAULT_REGISTRY_URL
from .exceptions import RegistryError
from .pull import list_platforms, pull_image
from .utils.validator import validate_legacy_tar

logger = logging.getLogger(__name__)


def setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def echo_progress(current: int, total: int, description: str) -> None:
    click.echo(f"downloading {current}/{total}: {description}")


@click.command()
@click.option("--image", "-i", required=True, help="Image to pull, e.g. nginx:alpine")
@click.option(
    "--arch",
    "-a",
    "platform",
    default=DEFAULT_PLATFORM,
    show_default=True,
    help="Target platform os/architecture",
)
@click.option("--output", "-o", default=None, help="Archive path (default: <name>-<tag>-<arch>.tar.gz)")
@click.option("--proxy", "-p", default=None, help="Proxy URL, e.g. http://127.0.0.1:7890")
@click.option("--registry", default=DEFAULT_REGISTRY_URL, show_default=True, help="Registry URL")
@click.option("--namespace", default=DEFAULT_NAMESPACE, show_default=True, help="Repository namespace")
@click.option("--timeout", default=300, show_default=True, type=int, help="Request timeout in seconds")
@click.option("--no-verify", is_flag=True, help="Skip blob digest verification")
@click.option("--no-validate", is_flag=True, help="Skip validation of the written archive")
@click.option("--list-platforms", "show_platforms", is_flag=True, help="List available platforms and exit")
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging")
def cli(
    image,
    platform,
    output,
    proxy,
    registry,
    namespace,
    timeout,
    no_verify,
    no_validate,
    show_platforms,
    debug,
):
    """Pull an image from a Docker Registry v2 into a docker load archive."""
    setup_logging(debug)

    try:
        if show_platforms:
            platforms = asyncio.run(
                list_platforms(
                    image,
                    registry_url=registry,
                    namespace=namespace,
                    proxy=proxy,
                    timeout=timeout,
                )
            )
            for name in platforms:
                click.echo(name)
            return

        path = asyncio.run(
            pull_image(
                image,
                platform=platform,
                output=output,
                registry_url=registry,
                namespace=namespace,
                proxy=proxy,
                timeout=timeout,
                verify_digests=not no_verify,
                progress_callback=echo_progress,
            )
        )
        if not no_validate and not validate_legacy_tar(path):
            raise click.ClickException(f"Archive {path} is not a valid docker save archive")
    except RegistryError as e:
        logger.debug("Pull failed", exc_info=True)
        raise click.ClickException(str(e)) from e

    click.echo(f"exported image: {path}")
    click.echo(f"you can use `docker load -i {path}` to load it into Docker")


if __name__ == "__main__":
    cli()
