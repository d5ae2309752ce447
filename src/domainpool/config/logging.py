"""structlog configuration for domainpool.

structlog and stdlib ``logging.getLogger(__name__)`` records share one
processor chain and one stderr handler. The chain merges the subject
bound by ``@traced`` (``op``, ``uid``, ``actor``, ``domain_id``,
``domain_name``), stamps the pool name, and moves those keys to the front,
so every line names the pool and the allocation it is about::

    assigned uid=42 domain=haze-bio  pool=profiles op=AllocationService.assign uid=42 ...

Output is console-rendered (colored on a tty) or JSON lines with
``--log-json``. ``-v`` opens the ``domainpool`` loggers to DEBUG; ``-q``
narrows them to ERROR.
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Rendered right after the event, in this order, when present.
SUBJECT_KEYS = ("pool", "op", "uid", "actor", "domain_id", "domain_name")

# Library loggers that only speak up when something is wrong.
LIBRARY_LEVELS = {
    "alembic": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "pluggy": logging.WARNING,
}


def pool_level(*, verbose: bool = False, quiet: bool = False) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.ERROR
    return logging.WARNING


def stamp_pool(pool_name: str | None) -> Processor:
    """Processor adding ``pool=<name>`` unless the record already names one."""

    def processor(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
        if pool_name:
            event_dict.setdefault("pool", pool_name)
        return event_dict

    return processor


def subject_first(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """Reorder so the event and its subject keys lead the record."""
    ordered: EventDict = {}
    if "event" in event_dict:
        ordered["event"] = event_dict.pop("event")
    for key in SUBJECT_KEYS:
        if key in event_dict:
            ordered[key] = event_dict.pop(key)
    ordered.update(event_dict)
    return ordered


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_json: bool = False,
    pool_name: str | None = None,
) -> None:
    """Configure structlog processors and output routing.

    Args:
        verbose: DEBUG for ``domainpool`` loggers. Wins over *quiet*.
        quiet: ERROR for ``domainpool`` loggers.
        log_json: Use the JSON renderer instead of the console renderer.
        pool_name: Stamped on every record as ``pool``.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        stamp_pool(pool_name),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        subject_first,
    ]

    renderer: Processor
    if log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        # Key order is chosen by subject_first.
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty(), sort_keys=False)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger("domainpool").setLevel(pool_level(verbose=verbose, quiet=quiet))
    for name, level in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(level)
