"""
Sum file codec: the persisted integrity artifact of a migration directory.

Layout (UTF-8, ``\\n`` line endings, trailing newline)::

    h1:<whole-directory digest>
    0001_init.sql h1:<checkpoint 1>
    0002_add.sql h1:<checkpoint 2>

Each checkpoint is the chain digest after folding that file (see
:mod:`migsum.src.chain`), so a line cannot be moved without changing its
value.  The first line is the chain folded over the listed lines and is
re-derived on every decode: a sum file whose header does not match its own
lines is corrupt and is rejected before any comparison happens.

Encoding is byte-stable.  Appending files only adds lines at the end and
rewrites the header, so two branches that append concurrently always
conflict in version control.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from migsum.src.chain import SEAL_INITIAL_DIGEST, fold, seal
from migsum.src.hasher import decode_digest, encode_digest
from migsum.src.versions import (
    InvalidMigrationNameError,
    OrderingViolationError,
    check_order,
    validate_name,
)

logger = logging.getLogger(__name__)


class CorruptSumFileError(Exception):
    """The sum file itself is damaged: its header does not match its lines."""


class MalformedSumFileError(CorruptSumFileError):
    """The sum file cannot be parsed at all."""


# ── data model ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SumEntry:
    """One recorded migration: its file name and chain checkpoint."""
    name: str
    digest: bytes

    def to_line(self) -> str:
        return f"{self.name} {encode_digest(self.digest)}"


@dataclass(frozen=True)
class SumFile:
    """Whole-directory digest plus the ordered per-file checkpoints."""
    digest: bytes = SEAL_INITIAL_DIGEST
    entries: tuple[SumEntry, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "SumFile":
        return cls()

    @property
    def names(self) -> list[str]:
        return [e.name for e in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def is_self_consistent(self) -> bool:
        """Whether :attr:`digest` equals the fold over :attr:`entries`."""
        return self.digest == seal((e.name, e.digest) for e in self.entries)

    def extend(self, new_entries: list[SumEntry]) -> "SumFile":
        """Return a copy with *new_entries* appended and the header re-folded.

        Only the new lines are folded onto the existing header; earlier
        entries are not touched.
        """
        digest = self.digest
        for entry in new_entries:
            digest = fold(digest, entry.name, entry.digest)
        return SumFile(digest=digest, entries=self.entries + tuple(new_entries))


# ── codec ─────────────────────────────────────────────────────────────────

def encode(sum_file: SumFile) -> str:
    """Serialise *sum_file* to its canonical text form."""
    lines = [encode_digest(sum_file.digest)]
    lines.extend(e.to_line() for e in sum_file.entries)
    return "\n".join(lines) + "\n"


def decode(text: str) -> SumFile:
    """Parse and self-check a sum file.

    Raises
    ------
    MalformedSumFileError
        Empty input, blank or malformed lines, invalid names, duplicate or
        out-of-order versions.
    CorruptSumFileError
        The header digest is not the fold of the listed lines.
    """
    lines = [ln[:-1] if ln.endswith("\r") else ln for ln in text.split("\n")]
    # trailing newline plus at most one blank line
    for _ in range(2):
        if lines and lines[-1] == "":
            lines.pop()
    if not lines:
        raise MalformedSumFileError("Sum file is empty")

    try:
        header = decode_digest(lines[0])
    except ValueError as exc:
        raise MalformedSumFileError(f"line 1: {exc}") from exc

    entries: list[SumEntry] = []
    for lineno, line in enumerate(lines[1:], start=2):
        parts = line.split(" ")
        if len(parts) != 2:
            raise MalformedSumFileError(
                f"line {lineno}: expected '<filename> <digest>', got {line!r}"
            )
        name, digest_text = parts
        try:
            validate_name(name)
            digest = decode_digest(digest_text)
        except (InvalidMigrationNameError, ValueError) as exc:
            raise MalformedSumFileError(f"line {lineno}: {exc}") from exc
        entries.append(SumEntry(name=name, digest=digest))

    try:
        check_order(e.name for e in entries)
    except (OrderingViolationError, InvalidMigrationNameError) as exc:
        raise MalformedSumFileError(f"entries out of order: {exc}") from exc

    sum_file = SumFile(digest=header, entries=tuple(entries))
    if not sum_file.is_self_consistent():
        raise CorruptSumFileError(
            "Sum file header does not match its entries "
            f"({len(entries)} line(s)); the artifact was edited by hand or is damaged"
        )
    logger.debug("[sumfile] Decoded %d entries, header %s", len(entries), lines[0])
    return sum_file


# ── persistence ───────────────────────────────────────────────────────────

def load_sum_file(path: str | Path, missing_ok: bool = False) -> SumFile:
    """Read and decode the sum file at *path*.

    With ``missing_ok=True`` a non-existent file yields the empty sum file
    (a directory with no recorded history yet).
    """
    p = Path(path)
    if not p.exists():
        if missing_ok:
            logger.info("[sumfile] %s does not exist yet, starting empty", p)
            return SumFile.empty()
        raise FileNotFoundError(f"Sum file not found: {p}")
    raw = p.read_bytes()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedSumFileError(f"{p}: not valid UTF-8 ({exc})") from exc
    return decode(text)


def save_sum_file(sum_file: SumFile, path: str | Path) -> None:
    """Write *sum_file* to *path* atomically (temp file + ``os.replace``)."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=p.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(encode(sum_file))
        os.replace(tmp, p)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    logger.info("[sumfile] Sum file saved → %s (%d entries)", p, len(sum_file))
