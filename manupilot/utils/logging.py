"""
Structured logging for the ManuPilot sourcing API.

structlog sits on top of stdlib logging so uvicorn and SQLAlchemy records
share one output stream. Request-scoped values (request id, user id) are
carried in contextvars and merged into every event logged while the
request is being handled.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from manupilot.config.settings import Settings, settings as default_settings

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access")


def _add_app_context(settings: Settings):
    def processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("app", settings.app_name)
        event_dict.setdefault("environment", settings.environment)
        return event_dict

    return processor


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    ``log_format`` selects the renderer: ``json`` for log shipping,
    anything else for a coloured console.
    """
    settings = settings or default_settings
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_app_context(settings),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if settings.log_format == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class RequestLogger:
    """Per-request access log with a bound request id."""

    def __init__(self):
        self.logger = get_logger("request")

    def bind(self, request_id: str, **context: Any) -> None:
        """Attach request-scoped values to every event until ``clear``."""
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, **context)

    def clear(self) -> None:
        structlog.contextvars.clear_contextvars()

    def log_request(self, method: str, path: str, client_ip: str | None = None) -> None:
        self.logger.info("request_received", method=method, path=path, client_ip=client_ip)

    def log_response(self, method: str, path: str, status_code: int, duration_ms: float) -> None:
        # Client errors are expected traffic; only 5xx is logged as an error
        if status_code >= 500:
            log_method = self.logger.error
        elif status_code >= 400:
            log_method = self.logger.warning
        else:
            log_method = self.logger.info

        log_method(
            "request_completed",
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=round(duration_ms, 2),
        )


class AuditLogger:
    """
    Audit trail for workflow and consent changes.

    Events go to the ``audit`` logger so they can be routed separately
    from application logs.
    """

    def __init__(self):
        self.logger = get_logger("audit")

    def log_status_change(
        self,
        resource_type: str,
        resource_id: str,
        old_status: str | None,
        new_status: str,
        user_id: str | None = None,
    ) -> None:
        """
        Record a workflow status transition.

        Args:
            resource_type: Collection of the affected record (rfq_submission, quote)
            resource_id: ID of the affected record
            old_status: Status before the change
            new_status: Status after the change
            user_id: Acting user, when known
        """
        self.logger.info(
            "status_changed",
            resource_type=resource_type,
            resource_id=resource_id,
            old_status=old_status,
            new_status=new_status,
            user_id=user_id,
        )

    def log_consent(
        self,
        action: str,
        user_id: str,
        document_version: str,
        record_id: str | None = None,
        ip_address: str | None = None,
        **context: Any,
    ) -> None:
        """Record acceptance or withdrawal of a signed document."""
        self.logger.info(
            "consent_recorded",
            action=action,
            user_id=user_id,
            document_version=document_version,
            record_id=record_id,
            ip_address=ip_address,
            **context,
        )


class ServiceLogger:
    """
    Operation lifecycle events for a service.

    Emits ``<operation>_started``, ``<operation>_completed`` and
    ``<operation>_failed`` with the service name bound.
    """

    def __init__(self, service_name: str):
        self.service_name = service_name
        self.logger = get_logger(f"service.{service_name}").bind(service=service_name)

    def log_operation_start(self, operation: str, **kwargs: Any) -> None:
        self.logger.info(f"{operation}_started", **kwargs)

    def log_operation_complete(
        self,
        operation: str,
        duration_ms: float | None = None,
        **kwargs: Any,
    ) -> None:
        if duration_ms is not None:
            kwargs["duration_ms"] = round(duration_ms, 2)
        self.logger.info(f"{operation}_completed", **kwargs)

    def log_operation_failed(self, operation: str, error: Exception, **kwargs: Any) -> None:
        """Failures are warnings; callers decide whether they are fatal."""
        self.logger.warning(
            f"{operation}_failed",
            error_type=type(error).__name__,
            error_message=str(error),
            **kwargs,
        )


request_logger = RequestLogger()
audit_logger = AuditLogger()
