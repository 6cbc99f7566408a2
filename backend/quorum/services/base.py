# backend/quorum/services/base.py
"""
Base Service Pattern for the quorum availability core

Provides common functionality for all service classes including:
- Logging
- Operation timing, with failures counted by domain error code
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import wraps
import logging
import time
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, cast

from ..core.config import settings

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass
class OperationStats:
    """Running timings for one service operation."""

    count: int = 0
    total_time: float = 0.0
    max_time: float = 0.0
    # DomainException.code (or exception class name) -> occurrences
    errors: Dict[str, int] = field(default_factory=dict)

    @property
    def failure_count(self) -> int:
        return sum(self.errors.values())

    def record(self, elapsed: float, error_code: Optional[str] = None) -> None:
        self.count += 1
        self.total_time += elapsed
        self.max_time = max(self.max_time, elapsed)
        if error_code is not None:
            self.errors[error_code] = self.errors.get(error_code, 0) + 1

    def summary(self) -> Dict[str, Any]:
        failures = self.failure_count
        return {
            "count": self.count,
            "success_count": self.count - failures,
            "failure_count": failures,
            "success_rate": (self.count - failures) / self.count,
            "avg_time": self.total_time / self.count,
            "max_time": self.max_time,
            "errors": dict(self.errors),
        }


def _error_code(exc: BaseException) -> str:
    return str(getattr(exc, "code", None) or type(exc).__name__)


class BaseService:
    """
    Base class for all service layer components.

    Services wrap the pure availability functions; this class supplies the
    per-class logger and operation timing shared by all of them.
    """

    # service class name -> operation name -> stats
    _class_metrics: Dict[str, Dict[str, OperationStats]] = {}

    def __init__(self) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("compute_heatmap")
            def compute_heatmap(self, participant_rules, date_range):
                # Method implementation
        """

        def decorator(func: F) -> F:
            func._operation_name = operation_name  # type: ignore[attr-defined]
            func._is_measured = True  # type: ignore[attr-defined]

            @wraps(func)
            def wrapper(self, *args, **kwargs):
                with self.measure_operation_context(operation_name):
                    return func(self, *args, **kwargs)

            return cast(F, wrapper)

        return decorator

    @contextmanager
    def measure_operation_context(self, operation_name: str) -> Iterator[None]:
        """
        Time the enclosed block under ``operation_name``.

        Exceptions are recorded by code and re-raised.
        """
        start_time = time.perf_counter()
        error_code = None
        try:
            yield
        except Exception as exc:
            error_code = _error_code(exc)
            raise
        finally:
            elapsed = time.perf_counter() - start_time
            stats = BaseService._class_metrics.setdefault(self.__class__.__name__, {})
            stats.setdefault(operation_name, OperationStats()).record(elapsed, error_code)
            if elapsed > settings.slow_operation_threshold_seconds:
                self.logger.warning(f"Slow operation detected: {operation_name} took {elapsed:.2f}s")

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log an operation with its context as record attributes."""
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Per-operation summaries for this service class."""
        metrics = BaseService._class_metrics.get(self.__class__.__name__, {})
        return {operation: stats.summary() for operation, stats in metrics.items()}
