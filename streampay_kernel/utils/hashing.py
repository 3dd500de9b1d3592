"""
Hashes for the ledger's audit trail and for client pre-sign digests.

Every ledger event stores ``payload_hash`` (SHA-256 of its canonical JSON
payload) and ``hash``, which also covers the vault, the event's sequence
number and the previous event's hash.  Rewriting any event in a vault's
history therefore breaks every later link.
"""

import hashlib
import json
from datetime import datetime
from typing import Any
from uuid import UUID

GENESIS = "GENESIS"


def _sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _encode_extra(obj: Any) -> str:
    # Event payloads carry ints and strings, plus vault ids and timestamps
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    raise TypeError(f"Cannot hash a {type(obj).__name__} in an event payload")


def canonicalize_json(data: Any) -> str:
    """Sorted keys, no whitespace: equal payloads always give equal text."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_encode_extra)


def hash_payload(payload: dict) -> str:
    return _sha256_hex(canonicalize_json(payload))


def hash_ledger_event(
    vault_id: str,
    seq: int,
    action: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Chain hash for one event.  The first event of a vault links to
    ``GENESIS`` instead of a previous hash.
    """
    return _sha256_hex("|".join((str(vault_id), str(seq), action, payload_hash, prev_hash or GENESIS)))


def presign_digest(identity: str, nonce: int, salt: str = "withdrawal") -> str:
    """
    The ``0x``-prefixed digest the bundled scripts and tests pre-sign with.

    The ledger stores whatever hash a client submits for a nonce and never
    recomputes it, so any client scheme works; this one is only a default.
    """
    return "0x" + _sha256_hex(f"{salt}-{nonce}-{identity}")
