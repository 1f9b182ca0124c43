"""structlog setup for the notify service.

Stdlib loggers render through structlog, JSON in production and console
output in local mode. Device tokens and signatures never reach the output in
full.
"""

import logging
import sys

import structlog

# Event-dict keys whose values are credentials or device addresses
SENSITIVE_KEYS = frozenset({"push_token", "device_token", "authorization", "signature", "webhook_secret"})

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "hpack")


def mask_value(value: object) -> str:
    text = str(value)
    if len(text) <= 8:
        return "***"
    return f"{text[:4]}...{text[-4:]}"


def redact_sensitive(_logger, _method_name: str, event_dict: dict) -> dict:
    """structlog processor: mask credential-bearing fields."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = mask_value(event_dict[key])
    return event_dict


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_sensitive,
    ]
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=[structlog.stdlib.ExtraAdder(), *shared_processors],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(trace_id: str, event_type: str | None = None, partner_user_ref: str | None = None) -> None:
    """Attach webhook context to every log line for the rest of the request."""
    structlog.contextvars.bind_contextvars(trace_id=trace_id)
    if event_type:
        structlog.contextvars.bind_contextvars(event_type=event_type)
    if partner_user_ref:
        structlog.contextvars.bind_contextvars(partner_user_ref=partner_user_ref)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
