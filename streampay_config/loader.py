"""
Configuration loader (``streampay_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a ``LedgerSettings``
frozen dataclass.  Runtime callers go through
``streampay_config.get_active_config()`` instead of calling this directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Bad values  -> ``ValueError`` from ``LedgerSettings``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from streampay_config.schema import LedgerSettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """
    Parse ``LedgerSettings`` from a loaded YAML document.

    Expected layout::

        config_id: default
        version: 1
        database:
          url: sqlite:///streampay.db
        ledger:
          max_nonce_batch: 256
        token:
          symbol: PYUSD
          decimals: 6
        logging:
          level: INFO
    """
    database = data["database"]
    ledger = data.get("ledger", {})
    token = data.get("token", {})
    logging_section = data.get("logging", {})

    return LedgerSettings(
        config_id=data["config_id"],
        version=int(data["version"]),
        database_url=database["url"],
        echo=bool(database.get("echo", False)),
        pool_size=int(database.get("pool_size", 20)),
        log_level=str(logging_section.get("level", "INFO")),
        max_nonce_batch=int(ledger.get("max_nonce_batch", 256)),
        token_symbol=str(token.get("symbol", "PYUSD")),
        token_decimals=int(token.get("decimals", 6)),
        checksum=compute_checksum(data),
    )


def load_settings(path: Path) -> LedgerSettings:
    return parse_settings(load_yaml_file(path))
