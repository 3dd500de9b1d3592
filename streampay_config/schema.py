"""
Configuration schema (``streampay_config.schema``).

Responsibility
--------------
Frozen dataclass describing one ledger deployment's settings.  Values
come from YAML via ``streampay_config.loader``; nothing here reads files.

Invariants enforced
-------------------
* Every instance is validated on construction; a bad value raises
  ``ValueError`` naming the offending field.
* ``max_nonce_batch`` >= 1, ``pool_size`` >= 1, ``token_decimals`` in 0..18.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class LedgerSettings:
    """Runtime settings for one StreamPay ledger deployment."""

    config_id: str
    version: int
    database_url: str
    echo: bool = False
    pool_size: int = 20
    log_level: str = "INFO"
    max_nonce_batch: int = 256
    token_symbol: str = "PYUSD"
    token_decimals: int = 6
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.config_id:
            raise ValueError("config_id must be non-empty")
        if self.version < 1:
            raise ValueError(f"version must be >= 1, got {self.version}")
        if not self.database_url:
            raise ValueError("database_url must be non-empty")
        if self.pool_size < 1:
            raise ValueError(f"pool_size must be >= 1, got {self.pool_size}")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {self.log_level!r}"
            )
        if self.max_nonce_batch < 1:
            raise ValueError(f"max_nonce_batch must be >= 1, got {self.max_nonce_batch}")
        if not self.token_symbol:
            raise ValueError("token_symbol must be non-empty")
        if not 0 <= self.token_decimals <= 18:
            raise ValueError(f"token_decimals must be within 0..18, got {self.token_decimals}")

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    @property
    def unit(self) -> int:
        """Smallest units per whole token (10 ** token_decimals)."""
        return 10 ** self.token_decimals

    def format_amount(self, amount: int) -> str:
        """Render smallest units as a decimal token amount, e.g. ``'12.500000 PYUSD'``."""
        whole, frac = divmod(amount, self.unit)
        if self.token_decimals == 0:
            return f"{whole} {self.token_symbol}"
        return f"{whole}.{frac:0{self.token_decimals}d} {self.token_symbol}"
