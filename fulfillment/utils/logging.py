"""Structured logging configuration."""

import logging
import sys
from typing import Any

import structlog
from pythonjsonlogger import jsonlogger

from fulfillment.config import get_settings


def setup_logging() -> None:
    """Configure structured logging for the application."""
    settings = get_settings()

    # Configure standard library logging
    log_level = getattr(logging, settings.log_level)

    if settings.log_format == "json":
        # JSON logging for production
        handler = logging.StreamHandler(sys.stdout)
        formatter = jsonlogger.JsonFormatter(
            fmt="%(timestamp)s %(level)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        )
        handler.setFormatter(formatter)
    else:
        # Human-readable logging for development
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer() if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class TransitionLogger:
    """Specialized logger for order lifecycle events."""

    def __init__(self, component: str):
        self.component = component
        self.logger = get_logger(component)

    def log_transition(
        self,
        order_id: str,
        event: str,
        from_status: str | None,
        to_status: str,
        actor_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Log an applied order transition."""
        self.logger.info(
            "order_transition",
            component=self.component,
            order_id=order_id,
            order_event=event,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
            **kwargs,
        )

    def log_rejected(
        self,
        order_id: str | None,
        event: str,
        error: str,
        reason: str,
        **kwargs: Any,
    ) -> None:
        """Log a transition whose guard did not hold."""
        self.logger.warning(
            "transition_rejected",
            component=self.component,
            order_id=order_id,
            order_event=event,
            error=error,
            reason=reason,
            **kwargs,
        )

    def log_dispatch(
        self,
        order_id: str,
        rider_id: str | None,
        candidates: int,
        **kwargs: Any,
    ) -> None:
        """Log a dispatch decision."""
        self.logger.info(
            "rider_dispatched" if rider_id else "no_rider_available",
            component=self.component,
            order_id=order_id,
            rider_id=rider_id,
            candidates=candidates,
            **kwargs,
        )
