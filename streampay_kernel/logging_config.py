"""
Structured JSON logging for the ledger kernel.

Each ledger call on StreamingVault opens an operation scope with
``LogContext.operation``.  Every line logged inside it carries:

    operation_id  fresh per call; ties the rejection or success line
                  to the service lines that led up to it
    operation     ledger operation name (``withdraw_with_nonce``, ...)
    vault_id      vault the call was made against
    actor         identity of the caller
    identity      employee the call is about, when there is one
    nonce         withdrawal nonce, for nonce-protected withdrawals

Fields passed through ``extra=`` override the scope's fields on that line;
batch escrow approval uses this to tag each employee it visits.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from streampay_kernel.exceptions import StreamPayError

LOGGER_NAMESPACE = "streampay_kernel"


class LogContext:
    """Operation-scoped log fields, isolated per thread and per task."""

    FIELDS = ("operation_id", "operation", "vault_id", "actor", "identity", "nonce")

    _fields: ContextVar[dict[str, Any]] = ContextVar("streampay_log_fields", default={})

    @classmethod
    def _merged(cls, fields: dict[str, Any]) -> dict[str, Any]:
        unknown = set(fields) - set(cls.FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")
        merged = dict(cls._fields.get())
        merged.update((k, v) for k, v in fields.items() if v is not None)
        return merged

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set fields for the rest of the current context. None leaves a field as is."""
        cls._fields.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, Any]:
        return dict(cls._fields.get())

    @classmethod
    def clear(cls) -> None:
        cls._fields.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[None]:
        token = cls._fields.set(cls._merged(fields))
        try:
            yield
        finally:
            cls._fields.reset(token)

    @classmethod
    @contextmanager
    def operation(
        cls,
        name: str,
        *,
        vault_id: UUID | str,
        actor: str,
        identity: str | None = None,
        nonce: int | None = None,
    ) -> Iterator[str]:
        """Scope one ledger call; yields its operation id."""
        operation_id = uuid4().hex
        with cls.bind(
            operation_id=operation_id,
            operation=name,
            vault_id=str(vault_id),
            actor=actor,
            identity=identity,
            nonce=nonce,
        ):
            yield operation_id


_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _encode(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    # UUIDs, enum members and anything else a service passes in extra=
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {"exc_type": type(exc).__name__, "exc_message": str(exc)}
    if isinstance(exc, StreamPayError):
        # Error detail (identity, nonce, requested amount...) goes out as exc_<name>
        fields["exc_code"] = exc.code
        fields.update(
            (f"exc_{k}", v) for k, v in vars(exc).items() if not k.startswith("_") and k != "code"
        )
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per line: envelope, operation scope, extras, error."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        line.update(LogContext.get_all())
        line.update((k, v) for k, v in vars(record).items() if k not in _RECORD_ATTRS)

        if record.exc_info and record.exc_info[1] is not None:
            line.update(_exception_fields(record.exc_info[1]))
            line["traceback"] = self.formatException(record.exc_info)

        return json.dumps(line, default=_encode)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the kernel's logger namespace.

    Only the first call has any effect, so the engine and the config
    bridge can both call it.  Records do not propagate to the root logger.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    handler = handler or logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    kernel_logger = logging.getLogger(LOGGER_NAMESPACE)
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False
    kernel_logger.addHandler(handler)


def reset_logging() -> None:
    """Drop the handler and allow configure_logging() again. Tests only."""
    global _configured
    with _lock:
        _configured = False
    kernel_logger = logging.getLogger(LOGGER_NAMESPACE)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)
