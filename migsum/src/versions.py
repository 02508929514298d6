"""
Version tokens and ordering rules for migration file names.

A migration file name embeds a monotonically increasing version token as
the prefix of its stem, up to the first underscore::

    20240101120000_create_users.sql   →  20240101120000
    0002_add_index.sql                →  0002

Numeric tokens compare as integers (so ``0002`` and ``2`` collide), and
sort before any non-numeric token.  Two files with the same version are a
collision and are rejected rather than ordered arbitrarily.
"""

from __future__ import annotations

import logging
from typing import Iterable

logger = logging.getLogger(__name__)

_FORBIDDEN_CHARS = ("/", "\\")


class InvalidMigrationNameError(ValueError):
    """Raised when a file name cannot be recorded in a sum file."""


class OrderingViolationError(Exception):
    """Raised when migration names are not in strictly increasing version order."""


def validate_name(name: str) -> str:
    """Return *name* unchanged, or raise :class:`InvalidMigrationNameError`."""
    if not name:
        raise InvalidMigrationNameError("Migration file name is empty")
    if any(ch.isspace() or not ch.isprintable() for ch in name):
        raise InvalidMigrationNameError(
            f"Migration file name contains whitespace or control characters: {name!r}"
        )
    if any(sep in name for sep in _FORBIDDEN_CHARS):
        raise InvalidMigrationNameError(
            f"Migration file name must not contain a path separator: {name!r}"
        )
    return name


def version_of(name: str) -> str:
    """Extract the version token from a migration file name."""
    validate_name(name)
    stem = name.rsplit(".", 1)[0] if "." in name[1:] else name
    token = stem.split("_", 1)[0]
    if not token:
        raise InvalidMigrationNameError(f"No version token in file name: {name!r}")
    return token


def version_key(name: str) -> tuple[int, int, str]:
    """Sort key for a migration file name."""
    token = version_of(name)
    # ASCII only: str.isdigit also accepts superscripts that int() rejects
    if token.isascii() and token.isdigit():
        return (0, int(token), "")
    return (1, 0, token)


def check_order(names: Iterable[str], after: str | None = None) -> None:
    """Ensure *names* are strictly increasing by version.

    Parameters
    ----------
    names : Iterable[str]
        File names in the order they will be recorded.
    after : str | None
        Last already-recorded name; every name must sort after it.

    Raises
    ------
    OrderingViolationError
        On a tie (duplicate version token) or an out-of-order name.
    """
    prev_name = after
    prev_key = version_key(after) if after is not None else None
    for name in names:
        key = version_key(name)
        if prev_key is not None and key <= prev_key:
            if key == prev_key:
                msg = (
                    f"Duplicate version token '{version_of(name)}': "
                    f"{prev_name} and {name}"
                )
            else:
                msg = f"Migration {name} sorts before {prev_name}"
            logger.error("[versions] %s", msg)
            raise OrderingViolationError(msg)
        prev_name, prev_key = name, key


def sort_names(names: Iterable[str]) -> list[str]:
    """Return *names* sorted by version, rejecting ties."""
    ordered = sorted(names, key=version_key)
    check_order(ordered)
    return ordered
