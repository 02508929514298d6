"""
Content hashing and digest text encoding.

Every digest in a sum file is a SHA-256 value written as ``h1:<base64>``.
The ``h1`` label names the hash function *and* the chain construction in
:mod:`migsum.src.chain`; a future format change gets a new label so old
artifacts stay recognisable.
"""

from __future__ import annotations

import base64
import binascii
import hashlib

DIGEST_LABEL = "h1"
DIGEST_SIZE = hashlib.sha256().digest_size  # 32 bytes

_PREFIX = DIGEST_LABEL + ":"


def new_hash():
    """Return a fresh hash object for the current format."""
    return hashlib.sha256()


def leaf_hash(content: bytes) -> bytes:
    """Return the raw SHA-256 digest of one migration file's bytes."""
    h = new_hash()
    h.update(content)
    return h.digest()


def encode_digest(digest: bytes) -> str:
    """Render a raw digest as labeled, fixed-width base64 text."""
    if len(digest) != DIGEST_SIZE:
        raise ValueError(f"Digest must be {DIGEST_SIZE} bytes, got {len(digest)}")
    return _PREFIX + base64.b64encode(digest).decode("ascii")


def decode_digest(text: str) -> bytes:
    """Parse labeled digest text back into raw bytes.

    Raises
    ------
    ValueError
        If the label is unknown, the payload is not canonical base64, or
        the decoded length is wrong.
    """
    if not text.startswith(_PREFIX):
        raise ValueError(f"Expected '{_PREFIX}' digest label in {text!r}")
    payload = text[len(_PREFIX):]
    try:
        digest = base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 digest {payload!r}: {exc}") from exc
    if len(digest) != DIGEST_SIZE:
        raise ValueError(
            f"Digest {payload!r} decodes to {len(digest)} bytes, expected {DIGEST_SIZE}"
        )
    if base64.b64encode(digest).decode("ascii") != payload:
        raise ValueError(f"Non-canonical base64 digest {payload!r}")
    return digest
