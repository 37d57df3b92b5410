"""Identity hashing: opaque fixed-length identifiers for new records.

Every minted identifier digests the current unix timestamp, the caller's
context strings and a random nonce, so two calls with the same context never
hash the same input. Uniqueness is probabilistic; the digest obscures
application credentials but is not a cryptographic secret boundary.
"""

from __future__ import annotations

import hashlib
import uuid
from collections.abc import Sequence

from layerstore.util import unix_timestamp

DIGEST_LENGTH = 32
_SEPARATOR = "|"


def derive(parts: Sequence[str]) -> str:
    """Digest *parts* (joined in order) into 32 lowercase hex characters. Pure."""
    seed = _SEPARATOR.join(str(p) for p in parts)
    return hashlib.md5(seed.encode("utf-8")).hexdigest()


def mint(*context: str) -> str:
    """Mint a new record hash from the timestamp, *context* and a fresh nonce."""
    return derive([str(unix_timestamp()), *context, uuid.uuid4().hex])


def mint_secret(*context: str) -> str:
    """Mint a secret: two independent nonces around a minted seed."""
    timestamp = str(unix_timestamp())
    seed = mint(*context)
    return derive([seed, timestamp, *context, uuid.uuid4().hex])
