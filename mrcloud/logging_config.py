"""
Logging configuration for MrCloud Core.

structlog on top of the standard library: JSON lines for services, a console
renderer for the command line. Every event logged while a correlation ID is
bound carries it, so the token refresh, chunk PUTs and finalize call of one
upload can be traced together.

Tokens must never reach a log record; pass them through mask_token().
"""

import logging
import sys
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from structlog.contextvars import bind_contextvars, get_contextvars, unbind_contextvars

CORRELATION_KEY = "correlation_id"


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Bind a correlation ID to the current task context.

    Args:
        correlation_id: ID to bind; a new UUID4 when omitted

    Returns:
        The bound ID
    """
    correlation_id = correlation_id or uuid.uuid4().hex
    bind_contextvars(**{CORRELATION_KEY: correlation_id})
    return correlation_id


def clear_correlation_id() -> None:
    unbind_contextvars(CORRELATION_KEY)


def get_correlation_id() -> Optional[str]:
    return get_contextvars().get(CORRELATION_KEY)


def mask_token(token: Optional[str]) -> str:
    """
    Render a token safe for log output.

    Keeps the last four characters so that two tokens can be told apart.
    """
    if not token:
        return "<none>"
    if len(token) <= 8:
        return "***"
    return f"***{token[-4:]}"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    json_format: bool = True,
) -> None:
    """
    Configure structured logging for MrCloud Core.

    Replaces any handlers already installed on the root logger, so it is safe
    to call more than once.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Write to this file instead of stderr
        json_format: Render JSON lines instead of console output
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    if log_file is None:
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
    else:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(numeric_level)

    # httpx logs every request line at INFO, including query strings
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))

    renderer = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger for a module, namespaced under ``mrcloud.``."""
    return structlog.get_logger(f"mrcloud.{name}")


# Event helpers shared by the transport, token and upload layers

def log_request(
    logger: structlog.stdlib.BoundLogger,
    method: str,
    url: str,
    status_code: int,
    duration_ms: float,
    **kwargs: Any,
) -> None:
    """
    Log one completed HTTP exchange.

    Server errors are logged at WARNING, everything else at DEBUG.

    Args:
        logger: Logger instance
        method: HTTP method
        url: Request URL without query string or credentials
        status_code: Response status code
        duration_ms: Time until response headers arrived, in milliseconds
        **kwargs: Additional context
    """
    fields: Dict[str, Any] = dict(
        event_type="http_request",
        method=method,
        url=url,
        status_code=status_code,
        duration_ms=duration_ms,
        **kwargs,
    )
    emit = logger.warning if status_code >= 500 else logger.debug
    emit("http_request", **fields)


def log_token_refresh(
    logger: structlog.stdlib.BoundLogger,
    success: bool,
    expires_in: Optional[int] = None,
    reason: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """
    Log the outcome of an OAuth token refresh.

    Args:
        logger: Logger instance
        success: Whether a new access token was obtained
        expires_in: Lifetime reported by the token endpoint, in seconds
        reason: Why the refresh failed
        **kwargs: Additional context; tokens must already be masked
    """
    fields: Dict[str, Any] = {"event_type": "token_refresh", "success": success}
    if expires_in is not None:
        fields["expires_in"] = expires_in
    if reason is not None:
        fields["reason"] = reason
    fields.update(kwargs)

    if success:
        logger.info("token_refresh", **fields)
    else:
        logger.error("token_refresh_failed", **fields)


def log_chunk_upload(
    logger: structlog.stdlib.BoundLogger,
    path: str,
    offset: int,
    length: int,
    attempt: int,
    success: bool,
    **kwargs: Any,
) -> None:
    """Log one chunk PUT attempt of an upload."""
    fields: Dict[str, Any] = dict(
        event_type="chunk_upload",
        path=path,
        offset=offset,
        length=length,
        attempt=attempt,
        success=success,
        **kwargs,
    )
    if success:
        logger.debug("chunk_upload", **fields)
    else:
        logger.warning("chunk_upload_failed", **fields)
