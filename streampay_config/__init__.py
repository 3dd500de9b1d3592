"""
streampay_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_config()``.  No other component reads configuration
    files directly.

Architecture position:
    Configuration sits above ``streampay_kernel``.  The kernel MUST NEVER
    import from ``streampay_config``; ``bridges`` translates settings into
    kernel arguments.

Failure modes:
    - ``FileNotFoundError`` -- the requested settings file does not exist.
    - ``ValueError`` -- a setting fails validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``STREAMPAY_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from streampay_config.loader import load_settings
from streampay_config.schema import LedgerSettings

_logger = logging.getLogger("streampay_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
_DEFAULT_CONFIG_NAME = "default"


def get_active_config(
    path: Path | str | None = None,
    config_dir: Path | None = None,
    name: str = _DEFAULT_CONFIG_NAME,
) -> LedgerSettings:
    """
    Load and validate the active ledger settings.

    Args:
        path: Explicit YAML file.  Takes precedence over ``config_dir``/``name``.
        config_dir: Directory of settings files.  Defaults to streampay_config/sets/.
        name: Settings file stem inside ``config_dir``.

    Raises:
        FileNotFoundError: If the settings file does not exist.
        ValueError: If validation fails.
    """
    if path is None:
        path = (config_dir or _DEFAULT_CONFIG_DIR) / f"{name}.yaml"
    settings = load_settings(Path(path))

    _logger.info(
        "STREAMPAY_CONFIG_TRACE",
        extra={
            "trace_type": "STREAMPAY_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
        },
    )
    return settings


__all__ = [
    "LedgerSettings",
    "get_active_config",
]
