"""
Config-to-kernel bridges (``streampay_config.bridges``).

Responsibility
--------------
Translates ``LedgerSettings`` into the plain arguments the kernel accepts.
The kernel never imports this package; the dependency only points inward.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from streampay_config.schema import LedgerSettings
from streampay_kernel.db.engine import init_engine_from_url
from streampay_kernel.logging_config import configure_logging


def init_ledger_engine(settings: LedgerSettings) -> Engine:
    """Configure kernel logging at the configured level, then the engine."""
    configure_logging(level=settings.log_level_number)
    return init_engine_from_url(
        settings.database_url,
        echo=settings.echo,
        pool_size=settings.pool_size,
    )


def ledger_options(settings: LedgerSettings) -> dict[str, int]:
    """Keyword arguments for ``StreamingVault.deploy`` / ``LedgerContext``."""
    return {"max_nonce_batch": settings.max_nonce_batch}
