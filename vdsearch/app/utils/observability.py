from __future__ import annotations

import json
import logging
from typing import Iterable

from prometheus_client import Counter  # type: ignore[import]
from prometheus_fastapi_instrumentator import Instrumentator, metrics  # type: ignore[import]

from vdsearch.app import config

try:  # pragma: no cover - optional dependency
    import google.cloud.logging  # type: ignore[import]
    from google.cloud.logging_v2.handlers import CloudLoggingHandler  # type: ignore[attr-defined]
except ImportError:  # pragma: no cover - optional dependency
    google = None  # type: ignore[assignment]
    CloudLoggingHandler = None  # type: ignore[assignment]
else:  # pragma: no cover - optional dependency
    google = google  # type: ignore[misc]


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter for console logging."""

    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - simple serialization
        payload = {
            "message": record.getMessage(),
            "severity": record.levelname,
            "logger": record.name,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
        }
        if record.exc_info:
            payload["trace"] = self.formatException(record.exc_info)
        json_fields = getattr(record, "json_fields", None)
        if isinstance(json_fields, dict):
            payload.update(json_fields)
        return json.dumps(payload, default=str, separators=(",", ":"))


def _sanitize_excluded_loggers(raw: Iterable[str]) -> list[str]:
    return [name for name in raw if name]


def configure_logging() -> None:
    """Configure application logging for Cloud Logging or JSON console output."""

    root_logger = logging.getLogger()
    log_level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)

    if config.ENABLE_CLOUD_LOGGING and google is not None and CloudLoggingHandler is not None:
        try:  # pragma: no cover - network interactions exercised via integration tests
            client = google.cloud.logging.Client()
            handler = CloudLoggingHandler(client=client, name=config.CLOUD_LOGGING_LOG_NAME)
            root_logger.handlers.clear()
            root_logger.addHandler(handler)
            root_logger.setLevel(log_level)
            excluded = _sanitize_excluded_loggers(config.CLOUD_LOGGING_EXCLUDED_LOGGERS)
            for logger_name in excluded:
                logging.getLogger(logger_name).propagate = False
            logging.getLogger(__name__).info(
                "Cloud Logging handler configured",
                extra={
                    "json_fields": {
                        "logName": config.CLOUD_LOGGING_LOG_NAME,
                        "excluded": excluded,
                    }
                },
            )
            return
        except Exception as exc:  # pragma: no cover - fallback path
            logging.getLogger(__name__).warning(
                "Failed to initialize Cloud Logging; falling back to JSON console",
                extra={"json_fields": {"error": str(exc)}},
            )

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)
    logging.getLogger(__name__).info(
        "JSON console logging configured",
        extra={"json_fields": {"logLevel": logging.getLevelName(log_level)}},
    )


_search_outcome_counter = Counter(
    "searches_total",
    "Number of executed searches by outcome",
    labelnames=("outcome", "tab"),
    namespace=config.PROMETHEUS_METRICS_NAMESPACE,
    subsystem=config.PROMETHEUS_METRICS_SUBSYSTEM,
)

_promotion_match_counter = Counter(
    "promotion_matches_total",
    "Number of searches that matched a promotion",
    namespace=config.PROMETHEUS_METRICS_NAMESPACE,
    subsystem=config.PROMETHEUS_METRICS_SUBSYSTEM,
)

_history_write_failure_counter = Counter(
    "search_history_write_failures_total",
    "Number of search history writes that failed",
    namespace=config.PROMETHEUS_METRICS_NAMESPACE,
    subsystem=config.PROMETHEUS_METRICS_SUBSYSTEM,
)

_promotion_save_counter = Counter(
    "promotion_saves_total",
    "Number of promotion save operations by status",
    labelnames=("status",),
    namespace=config.PROMETHEUS_METRICS_NAMESPACE,
    subsystem=config.PROMETHEUS_METRICS_SUBSYSTEM,
)

_admin_login_counter = Counter(
    "admin_logins_total",
    "Number of admin password submissions by status",
    labelnames=("status",),
    namespace=config.PROMETHEUS_METRICS_NAMESPACE,
    subsystem=config.PROMETHEUS_METRICS_SUBSYSTEM,
)


def configure_metrics(app) -> None:
    """Attach Prometheus instrumentation to the FastAPI app when enabled."""

    if not config.ENABLE_PROMETHEUS_METRICS:
        logging.getLogger(__name__).info("Prometheus metrics disabled via configuration")
        return

    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=[".*metrics"],
    )
    instrumentator.add(
        metrics.default(
            metric_namespace=config.PROMETHEUS_METRICS_NAMESPACE,
            metric_subsystem=config.PROMETHEUS_METRICS_SUBSYSTEM,
        )
    )
    instrumentator.instrument(
        app,
        metric_namespace=config.PROMETHEUS_METRICS_NAMESPACE,
        metric_subsystem=config.PROMETHEUS_METRICS_SUBSYSTEM,
    ).expose(app, include_in_schema=False, should_gzip=True)
    logging.getLogger(__name__).info(
        "Prometheus metrics endpoint exposed",
        extra={
            "json_fields": {
                "namespace": config.PROMETHEUS_METRICS_NAMESPACE,
                "subsystem": config.PROMETHEUS_METRICS_SUBSYSTEM,
            }
        },
    )


def record_search_outcome(outcome: str, tab: str) -> None:
    _search_outcome_counter.labels(outcome=outcome, tab=tab).inc()


def record_promotion_match() -> None:
    _promotion_match_counter.inc()


def record_history_write_failure() -> None:
    _history_write_failure_counter.inc()


def record_promotion_save(status: str) -> None:
    _promotion_save_counter.labels(status=status).inc()


def record_admin_login(status: str) -> None:
    _admin_login_counter.labels(status=status).inc()


__all__ = [
    "configure_logging",
    "configure_metrics",
    "record_search_outcome",
    "record_promotion_match",
    "record_history_write_failure",
    "record_promotion_save",
    "record_admin_login",
]
