"""structlog setup for the provisioning API.

Request-scoped fields (``request_id``, ``operation``, ``instance``) live in
structlog's contextvars and are merged into every entry, so handler code only
logs the event and what is specific to it::

    logger = get_logger(__name__)
    logger.info("instance_created", plan="small", team="ops")

Output is JSON outside the local environment; ``LOG_FORMAT`` overrides that
(``json`` or ``console``) and ``LOG_LEVEL`` sets the threshold.
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

SERVICE_NAME = "rpaas-api"

_configured = False


def _service_fields(environment: str):
    def processor(logger, method_name: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("environment", environment)
        return event_dict

    return processor


def configure_logging(*, environment: str = "local") -> None:
    """Route structlog and stdlib logging through one renderer. Idempotent."""
    global _configured
    if _configured:
        return
    _configured = True

    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    log_format = os.environ.get(
        "LOG_FORMAT", "console" if environment == "local" else "json",
    )

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        _service_fields(environment),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.dev.ConsoleRenderer()
        if log_format == "console"
        else structlog.processors.JSONRenderer()
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.INFO))

    # The access middleware logs every request already; the store and ACL
    # clients log their own failures.
    logging.getLogger("uvicorn.access").disabled = True
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
