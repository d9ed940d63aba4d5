"""
Monitoring & Observability
Structured logging and timing of listing queries.
"""

import time
from typing import Callable, Any
from functools import wraps
import logging
import json
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

# Listing searches slower than this are logged at WARNING
SLOW_QUERY_MS = 500

# LogRecord attributes copied into the JSON line when a caller passes them via ``extra``
EXTRA_FIELDS = ("duration_ms", "operation", "total", "path", "status_code")


# ============================================================================
# STRUCTURED LOGGING
# ============================================================================

class JSONFormatter(logging.Formatter):
    """One JSON object per line (LOG_FORMAT=json)."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
        }
        for name in EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


# ============================================================================
# LISTING TIMINGS
# ============================================================================

def track_performance(operation_name: str, slow_ms: float = SLOW_QUERY_MS):
    """
    Time a listing search. Logs the result size (``total`` of a
    ListingResult) with the duration; slow searches are raised to WARNING.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                logger.error(f"{operation_name} failed after {elapsed:.0f}ms: {e}")
                raise

            elapsed = (time.perf_counter() - start) * 1000
            total = getattr(result, "total", None)
            extra = {"operation": operation_name, "duration_ms": round(elapsed, 1), "total": total}
            if elapsed >= slow_ms:
                logger.warning(f"Slow {operation_name}: {elapsed:.0f}ms for {total} results", extra=extra)
            else:
                logger.debug(f"{operation_name}: {total} results in {elapsed:.0f}ms", extra=extra)
            return result

        return wrapper

    return decorator
