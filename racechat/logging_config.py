"""Logging setup, latency tracking and per-engine chat counters."""

import inspect
import logging
import time
from functools import wraps
from typing import Callable


def setup_logging(level: int = logging.INFO):
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # pymongo's heartbeat chatter drowns out request logs at INFO
    logging.getLogger("pymongo").setLevel(logging.WARNING)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def log_latency(operation_name: str):
    def decorator(func: Callable):
        logger = logging.getLogger(func.__module__)

        def report(start: float, error: Exception = None):
            if error is None:
                logger.info(f"{operation_name} | latency_ms={_elapsed_ms(start):.2f} | status=success")
            else:
                logger.error(
                    f"{operation_name} | latency_ms={_elapsed_ms(start):.2f} | status=error | error={error}"
                )

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                report(start, e)
                raise
            report(start)
            return result

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                report(start, e)
                raise
            report(start)
            return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


class ChatMetrics:
    def __init__(self):
        self.total_requests = 0
        self.answered_requests = 0
        self.failed_requests = 0
        self.requests_with_database_context = 0
        self.requests_with_file_context = 0
        self.total_latency_ms = 0.0

    def record_request(self, success: bool, latency_ms: float, used_database: bool, used_file: bool):
        self.total_requests += 1
        self.total_latency_ms += latency_ms

        if success:
            self.answered_requests += 1
        else:
            self.failed_requests += 1

        if used_database:
            self.requests_with_database_context += 1
        if used_file:
            self.requests_with_file_context += 1

    def get_stats(self) -> dict:
        avg_latency = self.total_latency_ms / self.total_requests if self.total_requests > 0 else 0
        return {
            "total_requests": self.total_requests,
            "answered_requests": self.answered_requests,
            "failed_requests": self.failed_requests,
            "requests_with_database_context": self.requests_with_database_context,
            "requests_with_file_context": self.requests_with_file_context,
            "avg_latency_ms": round(avg_latency, 2),
        }
