"""Structlog configuration for the application.

Every event logged inside a unit of work carries the tenant identifier
once the tenant context has resolved it. Output is colored console text
for development and JSON for production.
"""

import logging
import os
import sys

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from tenancy.application.unit_of_work import current_tenant_context


def add_tenant_id(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the current tenant to the event without triggering resolution.

    Events that already carry ``tenant_id`` keep it. Contexts that have not
    resolved yet are left alone, so logging from inside a resolver cannot
    re-enter it.
    """
    if "tenant_id" in event_dict:
        return event_dict

    context = current_tenant_context()
    if context is not None and context.is_resolved:
        tenant_id = context.get_identifier()
        if tenant_id is not None:
            event_dict["tenant_id"] = tenant_id
    return event_dict


def _use_colors() -> bool:
    force_color = os.environ.get("FORCE_COLOR", "").lower() in ("1", "true", "yes")
    return force_color or sys.stdout.isatty()


def configure_logging(debug: bool = False) -> None:
    """Configure structlog for tenant-aware output.

    Args:
        debug: Emit debug events too (recursion guard hits, auditor
            detection failures). Otherwise the floor is INFO.
    """
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_tenant_id,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if _use_colors():
        renderer: list[Processor] = [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        renderer = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=[*shared, *renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else logging.INFO
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
