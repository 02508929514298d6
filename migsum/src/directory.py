"""
Reading a migration directory into an ordered list of files.

Only the file names and raw bytes matter here; contents are never parsed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from migsum.src.versions import check_order, validate_name, version_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MigrationFile:
    """One versioned migration: file name and raw content."""
    name: str
    content: bytes

    def __post_init__(self) -> None:
        validate_name(self.name)


def read_directory(
    migrations_dir: str | Path,
    pattern: str = "*.sql",
    exclude: Iterable[str] = (),
) -> list[MigrationFile]:
    """Load every migration in *migrations_dir*, ordered by version.

    Parameters
    ----------
    migrations_dir : str | Path
        Directory holding the migration files (not searched recursively).
    pattern : str
        Glob selecting migration files.
    exclude : Iterable[str]
        File names to skip, typically the sum file itself.

    Returns
    -------
    list[MigrationFile]
        Files sorted by version token.

    Raises
    ------
    FileNotFoundError
        If the directory does not exist.
    OrderingViolationError
        If two files share a version token.
    """
    base = Path(migrations_dir)
    if not base.is_dir():
        raise FileNotFoundError(f"Migration directory does not exist: {migrations_dir}")

    skip = set(exclude)
    paths = [
        fp for fp in base.glob(pattern)
        if fp.is_file() and fp.name not in skip
    ]
    paths.sort(key=lambda fp: version_key(fp.name))
    check_order(fp.name for fp in paths)

    files = [MigrationFile(name=fp.name, content=fp.read_bytes()) for fp in paths]
    for f in files:
        logger.debug("[directory] %-40s %d bytes", f.name, len(f.content))
    logger.info(
        "[directory] Read %d migration file(s) from '%s'.", len(files), migrations_dir
    )
    return files
