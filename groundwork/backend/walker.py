"""Enumerate candidate source files under a project root."""

import asyncio
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".py", ".pyi")

# Dependency and build output directories never hold project code
SKIP_DIRS = frozenset({
    "node_modules", "__pycache__", "venv", "env", "site-packages",
    "build", "dist",
})


def _is_skipped(dirname: str) -> bool:
    return dirname.startswith(".") or dirname in SKIP_DIRS


def iter_source_files(root: str | Path) -> list[Path]:
    """Walk ``root`` and return source files in sorted order.

    Hidden directories and dependency directories are pruned. Directories that
    cannot be read are skipped.
    """
    files: list[Path] = []

    def _on_error(err: OSError) -> None:
        logger.debug(f"Skipping unreadable directory {err.filename}: {err.strerror}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = sorted(d for d in dirnames if not _is_skipped(d))
        for name in sorted(filenames):
            if name.endswith(SOURCE_EXTENSIONS):
                files.append(Path(dirpath) / name)
    return files


async def collect_source_files(root: str | Path) -> list[Path]:
    return await asyncio.to_thread(iter_source_files, root)
