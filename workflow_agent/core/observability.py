"""
Observability Infrastructure

Provides structured logging, tracing, and metrics collection for the workflow agent.
Integrates with OpenTelemetry for cloud-native observability.
"""

import asyncio
import contextlib
import functools
import json
import sys
import time
import traceback
from enum import Enum
from typing import Any, Callable, Dict, Optional, TypeVar, Union

from loguru import logger
from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

F = TypeVar("F", bound=Callable[..., Any])


class LogLevel(str, Enum):
    """Log level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ObservabilityConfig:
    """Configuration for observability."""

    def __init__(
        self,
        service_name: str = "workflow-agent",
        log_level: Union[str, LogLevel] = LogLevel.INFO,
        json_logs: bool = False,
        enable_tracing: bool = True,
        console_spans: bool = False,
        enable_metrics: bool = True,
    ):
        """Initialize observability configuration."""
        self.service_name = service_name
        self.log_level = log_level if isinstance(log_level, str) else log_level.value
        self.json_logs = json_logs
        self.enable_tracing = enable_tracing
        self.console_spans = console_spans
        self.enable_metrics = enable_metrics


class JSONFormatter:
    """Serializes loguru records as one JSON object per line."""

    def __call__(self, record: Dict[str, Any]) -> str:
        log_data = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name,
            "logger": record["name"],
            "function": record["function"],
            "line": record["line"],
            "message": record["message"],
        }

        if record["extra"]:
            log_data["extra"] = record["extra"]

        if record["exception"]:
            log_data["exception"] = {
                "type": record["exception"].type.__name__,
                "value": str(record["exception"].value),
                "traceback": "".join(
                    traceback.format_exception(
                        record["exception"].type,
                        record["exception"].value,
                        record["exception"].traceback,
                    )
                ),
            }

        # Braces are escaped because loguru treats the return value as a format string
        serialized = json.dumps(log_data, default=str)
        return serialized.replace("{", "{{").replace("}", "}}") + "\n"


class ObservabilityManager:
    """Centralized observability management."""

    _instance: Optional["ObservabilityManager"] = None

    def __init__(self, config: ObservabilityConfig):
        """Initialize observability manager."""
        self.config = config
        self._setup_logging()

        if config.enable_tracing:
            self._setup_tracing()

        if config.enable_metrics:
            self._setup_metrics()

        logger.info(
            f"Observability initialized: service={config.service_name}, "
            f"log_level={config.log_level}"
        )

    def _setup_logging(self) -> None:
        """Set up structured logging with loguru."""
        logger.remove()

        if self.config.json_logs:
            logger.add(
                sys.stderr,
                format=JSONFormatter(),
                level=self.config.log_level,
                colorize=False,
            )
        else:
            log_format = (
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                "<level>{message}</level>"
            )
            logger.add(
                sys.stderr,
                format=log_format,
                level=self.config.log_level,
                colorize=True,
                backtrace=True,
                diagnose=False,
            )

    def _setup_tracing(self) -> None:
        """Set up OpenTelemetry tracing."""
        resource = Resource(attributes={SERVICE_NAME: self.config.service_name})
        self.tracer_provider = TracerProvider(resource=resource)

        if self.config.console_spans:
            self.tracer_provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(self.tracer_provider)
        self.tracer = self.tracer_provider.get_tracer(__name__)
        logger.debug("OpenTelemetry tracing initialized")

    def _setup_metrics(self) -> None:
        """Set up OpenTelemetry metrics."""
        self.metric_reader = InMemoryMetricReader()
        resource = Resource(attributes={SERVICE_NAME: self.config.service_name})

        meter_provider = MeterProvider(resource=resource, metric_readers=[self.metric_reader])
        metrics.set_meter_provider(meter_provider)
        self.meter = meter_provider.get_meter(__name__)

        self._instruments: Dict[str, Any] = {}

        logger.debug("OpenTelemetry metrics initialized")

    def instrument(self, metric_name: str, value: Union[int, float]) -> Any:
        """Return the instrument for ``metric_name``, creating it on first use.

        Names ending in ``_total`` and integer values become counters; other
        values become histograms. The kind is fixed by the first recording.
        """
        instrument = self._instruments.get(metric_name)
        if instrument is None:
            if metric_name.endswith("_total") or isinstance(value, int):
                instrument = self.meter.create_counter(metric_name, unit="1")
            else:
                unit = "ms" if metric_name.endswith("_ms") else "1"
                instrument = self.meter.create_histogram(metric_name, unit=unit)
            self._instruments[metric_name] = instrument
        return instrument

    @classmethod
    def initialize(cls, config: Optional[ObservabilityConfig] = None) -> "ObservabilityManager":
        """Initialize or get singleton instance."""
        if cls._instance is None:
            if config is None:
                config = ObservabilityConfig()
            cls._instance = cls(config)
        return cls._instance

    @classmethod
    def get_instance(cls) -> Optional["ObservabilityManager"]:
        """Get singleton instance, or None when observability was never initialized."""
        return cls._instance


@contextlib.contextmanager
def span(name: str, attributes: Optional[Dict[str, Any]] = None):
    """Context manager for creating spans."""
    manager = ObservabilityManager.get_instance()

    if manager is not None and hasattr(manager, "tracer"):
        with manager.tracer.start_as_current_span(name) as span_obj:
            if attributes:
                for key, value in attributes.items():
                    span_obj.set_attribute(key, value)
            yield span_obj
    else:
        yield None


def log_execution(
    level: Union[str, LogLevel] = LogLevel.DEBUG,
    include_args: bool = True,
    include_result: bool = True,
    include_duration: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for logging function execution.

    Works with both sync and async functions.

    Args:
        level: Logging level
        include_args: Whether to log function arguments
        include_result: Whether to log function result
        include_duration: Whether to log execution duration
    """
    def decorator(func: F) -> F:
        func_name = f"{func.__module__}.{func.__qualname__}"
        log_level = level if isinstance(level, str) else level.value

        def _start(args: tuple, kwargs: dict) -> Dict[str, Any]:
            log_data: Dict[str, Any] = {"function": func_name}
            if include_args:
                arg_names = func.__code__.co_varnames[: func.__code__.co_argcount]
                log_data["args"] = {k: str(v)[:100] for k, v in zip(arg_names, args)}
                log_data["kwargs"] = {k: str(v)[:100] for k, v in kwargs.items()}
            return log_data

        def _finish(log_data: Dict[str, Any], start_time: float, result: Any) -> None:
            if include_result:
                log_data["result"] = str(result)[:200]
            if include_duration:
                duration_ms = (time.perf_counter() - start_time) * 1000
                log_data["duration_ms"] = duration_ms
                record_metric(f"{func.__name__}_duration", duration_ms)
            logger.bind(**log_data).log(log_level, f"Function executed: {func_name}")

        def _fail(log_data: Dict[str, Any], start_time: float, error: Exception) -> None:
            if include_duration:
                log_data["duration_ms"] = (time.perf_counter() - start_time) * 1000
            log_data["error"] = str(error)
            logger.opt(exception=error).bind(**log_data).error(f"Function failed: {func_name}")

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            log_data = _start(args, kwargs)
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _fail(log_data, start_time, e)
                raise
            _finish(log_data, start_time, result)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            log_data = _start(args, kwargs)
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _fail(log_data, start_time, e)
                raise
            _finish(log_data, start_time, result)
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator


def record_metric(
    metric_name: str,
    value: Union[int, float],
    attributes: Optional[Dict[str, str]] = None,
) -> None:
    """
    Record a metric value with OpenTelemetry.

    Each metric name maps to its own instrument. Only trace-level logging
    happens when metrics were never initialized.
    """
    manager = ObservabilityManager.get_instance()

    if manager is not None and hasattr(manager, "meter"):
        instrument = manager.instrument(metric_name, value)
        if hasattr(instrument, "add"):
            instrument.add(value, attributes=attributes)
        else:
            instrument.record(value, attributes=attributes)

    logger.bind(metric=metric_name, value=value, attributes=attributes).trace(
        f"Metric recorded: {metric_name}={value}"
    )


__all__ = [
    "LogLevel",
    "ObservabilityConfig",
    "ObservabilityManager",
    "span",
    "log_execution",
    "record_metric",
]
