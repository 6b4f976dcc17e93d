"""gzip tar archiver for a legacy image layout."""

import asyncio
import logging
import os
import tarfile
from pathlib import Path

from ..exceptions import ArchiveError

logger = logging.getLogger(__name__)


def iter_files(source_dir: Path) -> list[Path]:
    """Regular files under ``source_dir`` in sorted walk order."""
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(source_dir):
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if path.is_file():
                files.append(path)
    return files


def build_archive(source_dir: str | Path, output_path: str | Path) -> Path:
    """Pack every regular file of ``source_dir`` into a tar.gz.

    Member names are relative to ``source_dir``; directories get no entries
    of their own. A partially written archive is removed on failure.

    Args:
        source_dir: Layout root directory
        output_path: Destination .tar.gz path

    Returns:
        Path of the written archive

    Raises:
        ArchiveError: If the archive cannot be written
    """
    source_dir = Path(source_dir)
    output_path = Path(output_path)
    if not source_dir.is_dir():
        raise ArchiveError(f"Source directory does not exist: {source_dir}")

    try:
        with tarfile.open(output_path, "w:gz") as tar:
            for path in iter_files(source_dir):
                tar.add(path, arcname=path.relative_to(source_dir).as_posix())
    except (OSError, tarfile.TarError) as e:
        output_path.unlink(missing_ok=True)
        raise ArchiveError(f"Failed to build archive {output_path}: {e}") from e

    logger.debug("Wrote archive %s", output_path)
    return output_path


async def build_archive_async(source_dir: str | Path, output_path: str | Path) -> Path:
    """Run :func:`build_archive` in the default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, build_archive, source_dir, output_path)
