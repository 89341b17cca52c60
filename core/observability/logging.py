"""
Structured Logging with Correlation IDs

Every log line emitted inside a with_correlation() block carries the IDs set
on that block:
- run_id: one validation run
- transaction_id: the transaction being validated
- entitlement_id: every transaction of one license
- stage: the engine component that produced the line

Usage:
    from core.observability.logging import get_logger, with_correlation

    logger = get_logger("validation.job")

    with with_correlation(transaction_id="AT-123", entitlement_id="E-456"):
        logger.info("Validating", extra_fields={"sale_type": "Renewal"})
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional


# =============================================================================
# Correlation Context
# =============================================================================

@dataclass(frozen=True)
class CorrelationContext:
    """IDs attached to every log line of the current block."""
    run_id: Optional[str] = None
    transaction_id: Optional[str] = None
    entitlement_id: Optional[str] = None
    stage: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Set IDs only."""
        return {k: v for k, v in asdict(self).items() if v is not None}


_correlation_context: ContextVar[CorrelationContext] = ContextVar(
    "correlation_context",
    default=CorrelationContext(),
)


def get_correlation_context() -> CorrelationContext:
    return _correlation_context.get()


@contextmanager
def with_correlation(**ids):
    """
    Add correlation IDs for the duration of the block.

    IDs passed as None leave the enclosing value in place. The enclosing
    context is restored on exit.
    """
    ctx = replace(get_correlation_context(), **{k: v for k, v in ids.items() if v is not None})
    token = _correlation_context.set(ctx)
    try:
        yield ctx
    finally:
        _correlation_context.reset(token)


# =============================================================================
# Formatters
# =============================================================================

class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line: level, logger, message, correlation IDs and
    any `extra_fields` passed to the call.
    """

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **get_correlation_context().to_dict(),
            **getattr(record, "extra_fields", {}),
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Console format, e.g.:
    2025-05-01 12:00:00 [INFO ] validation.job [validation-0/tx:AT-123]: Validating
    """

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"{datetime.utcnow():%Y-%m-%d %H:%M:%S} [{record.levelname:5}] {record.name} "
            f"[{_correlation_label(get_correlation_context())}]: {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _correlation_label(ctx: CorrelationContext) -> str:
    parts = []
    if ctx.run_id:
        parts.append(ctx.run_id[:12])
    if ctx.transaction_id:
        parts.append(f"tx:{ctx.transaction_id}")
    return "/".join(parts) or "-"


# =============================================================================
# Logger
# =============================================================================

class CorrelatedLogger(logging.LoggerAdapter):
    """Logger adapter accepting `extra_fields={...}` on every call.

    The fields land on the record as `record.extra_fields`, where the
    structured formatter merges them into the JSON line.
    """

    def __init__(self, logger: logging.Logger):
        super().__init__(logger, {})

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra["extra_fields"] = kwargs.pop("extra_fields", None) or {}
        kwargs["extra"] = extra
        return msg, kwargs


_loggers: Dict[str, CorrelatedLogger] = {}
_configured = False
_handler: Optional[logging.Handler] = None


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
    force: bool = False,
) -> None:
    """
    Install a stdout handler on the root logger.

    Args:
        level: Logging level for the root logger and the engine's packages
        json_format: Emit JSON lines instead of the console format
        force: Replace a configuration made earlier (e.g. by get_logger)
    """
    global _configured, _handler

    if _configured and not force:
        return

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter() if json_format else HumanReadableFormatter())

    root.setLevel(level)
    root.addHandler(handler)
    _handler = handler

    for package in ("pricing", "validation", "storage", "scripts"):
        logging.getLogger(package).setLevel(level)

    _configured = True


def get_logger(name: str) -> CorrelatedLogger:
    """Cached correlated logger; configures logging with defaults on first use."""
    if name not in _loggers:
        configure_logging()
        _loggers[name] = CorrelatedLogger(logging.getLogger(name))
    return _loggers[name]
