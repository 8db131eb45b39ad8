"""structlog setup for the API process, the notification worker and the cron script.

Every record, including stdlib records from uvicorn, SQLAlchemy, the Stripe
SDK and botocore (SES sends), goes through one ProcessorFormatter. It renders
JSON in production and a console view when DEBUG is on. Webhook requests
carry the X-Request-ID correlation id.
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id

# Third-party loggers that are noisy at INFO
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "stripe", "botocore", "boto3", "urllib3")


def add_correlation_id(logger, method, event_dict):
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Install the processor chain and the stdlib bridge.

    Must run before the first ``structlog.get_logger()`` call is used,
    since loggers cache their chain on first use.
    """
    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "foreign_pre_chain": pre_chain,
                "processors": [structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["stdout"], "level": log_level},
        "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
    })

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.format_exc_info,  # exc_info=True on sweep/webhook failures
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
