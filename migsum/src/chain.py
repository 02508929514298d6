"""
Hash chain over an ordered sequence of migration files.

A one-branch hash tree: each node commits to the node before it, the
file's name and the file's leaf hash::

    d0 = INITIAL_DIGEST
    di = SHA-256(d(i-1) || name_i || leaf_i)

Both fixed-width fields bracket the name, so the concatenation is
unambiguous.  Appending after an unchanged prefix leaves every earlier
``di`` untouched; extending a chain only needs its last digest.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from migsum.src.hasher import DIGEST_SIZE, leaf_hash, new_hash

INITIAL_DIGEST = leaf_hash(b"migsum chain h1")

# Starting point for the whole-directory digest folded over recorded lines.
SEAL_INITIAL_DIGEST = leaf_hash(b"migsum sum h1")


def fold(prior: bytes, name: str, leaf: bytes) -> bytes:
    """One chain step: bind *name* and *leaf* to everything before it."""
    if len(prior) != DIGEST_SIZE or len(leaf) != DIGEST_SIZE:
        raise ValueError("fold() expects raw SHA-256 digests")
    h = new_hash()
    h.update(prior)
    h.update(name.encode("utf-8"))
    h.update(leaf)
    return h.digest()


def checkpoints(
    entries: Iterable[tuple[str, bytes]],
    start: bytes = INITIAL_DIGEST,
) -> Iterator[bytes]:
    """Yield the running digest after each ``(name, leaf)`` pair."""
    digest = start
    for name, leaf in entries:
        digest = fold(digest, name, leaf)
        yield digest


def fold_all(
    entries: Iterable[tuple[str, bytes]],
    start: bytes = INITIAL_DIGEST,
) -> bytes:
    """Fold every ``(name, leaf)`` pair onto *start* and return the result."""
    digest = start
    for digest in checkpoints(entries, start):
        pass
    return digest


def seal(records: Iterable[tuple[str, bytes]], start: bytes = SEAL_INITIAL_DIGEST) -> bytes:
    """Whole-directory digest: the chain folded over recorded ``(name, checkpoint)`` lines."""
    return fold_all(records, start)
