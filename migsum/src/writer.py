"""
Appending new migrations to a sum file.

Updates are append-only: recorded lines are carried over byte-for-byte,
new files are folded onto the last recorded checkpoint, and the header is
folded forward over the new lines.  Nothing is written when any check
fails, so callers either get a complete, self-consistent sum file or an
exception.
"""

from __future__ import annotations

import logging
from typing import Sequence

from migsum.src.chain import INITIAL_DIGEST, checkpoints
from migsum.src.directory import MigrationFile
from migsum.src.hasher import leaf_hash
from migsum.src.sumfile import CorruptSumFileError, SumEntry, SumFile
from migsum.src.verifier import IntegrityError, verify
from migsum.src.versions import check_order

logger = logging.getLogger(__name__)


def update(sum_file: SumFile, new_entries: Sequence[MigrationFile]) -> SumFile:
    """Append *new_entries* to *sum_file*.

    Raises
    ------
    CorruptSumFileError
        If *sum_file* is not self-consistent; nothing is appended to it.
    OrderingViolationError
        If a new file does not sort strictly after the last recorded one
        (or after the new file before it).
    """
    if not sum_file.is_self_consistent():
        raise CorruptSumFileError("Sum file header does not match its entries; refusing to append")
    if not new_entries:
        return sum_file

    last = sum_file.entries[-1] if sum_file.entries else None
    check_order((f.name for f in new_entries), after=last.name if last else None)

    start = last.digest if last else INITIAL_DIGEST
    digests = checkpoints(((f.name, leaf_hash(f.content)) for f in new_entries), start)
    appended = [SumEntry(name=f.name, digest=d) for f, d in zip(new_entries, digests)]

    logger.info(
        "[writer] Appending %d migration(s) after %s: %s",
        len(appended),
        last.name if last else "<empty>",
        ", ".join(e.name for e in appended),
    )
    return sum_file.extend(appended)


def update_directory(
    live_entries: Sequence[MigrationFile],
    sum_file: SumFile,
) -> SumFile:
    """Verify the directory, then record its unrecorded tail.

    The recorded entries must be an exact prefix of *live_entries*;
    anything else (edits, removals, reordering) raises
    :class:`IntegrityError` and nothing is appended.
    """
    result = verify(live_entries, sum_file)
    if result.is_error:
        logger.error("[writer] Refusing to update over an inconsistent directory.")
        raise IntegrityError(result)
    return update(sum_file, live_entries[len(sum_file):])


def generate(entries: Sequence[MigrationFile]) -> SumFile:
    """Build a sum file for *entries* from scratch."""
    return update(SumFile.empty(), entries)
