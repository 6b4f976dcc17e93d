"""Example usage of the async registry puller."""

import asyncio
import logging

from registry_api_v2_puller import RegistryError, list_platforms, pull_image

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def show_progress(current, total, description):
    logger.info(f"  layer {current}/{total}: {description}")


async def main():
    """Pull nginx:alpine for the first two platforms Docker Hub publishes."""
    try:
        platforms = await list_platforms("nginx:alpine")
        logger.info(f"Available platforms: {platforms}")

        for platform in platforms[:2]:
            logger.info(f"Pulling nginx:alpine for {platform}...")
            path = await pull_image(
                "nginx:alpine",
                platform=platform,
                progress_callback=show_progress,
            )
            logger.info(f"✓ Saved {path}, load it with: docker load -i {path}")

    except RegistryError as e:
        logger.error(f"Registry error: {e}")


async def cancellable_pull():
    """Cancel a pull after a few seconds."""
    cancel = asyncio.Event()
    asyncio.get_running_loop().call_later(5, cancel.set)

    try:
        await pull_image("python:3.12", output="python-3.12.tar.gz", cancel=cancel)
    except RegistryError as e:
        logger.info(f"Pull stopped: {e}")


if __name__ == "__main__":
    asyncio.run(main())
    asyncio.run(cancellable_pull())
