"""
Observability helpers.

Adds correlation IDs, timing and structured logging context to store operations.
"""

import time
import uuid
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from tracker.app.core.exceptions import AppException, StorageError

# Configure structured logger
logger = logging.getLogger("tracker")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Attach a stream handler to the `tracker` logger (entry points only)."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.handlers = [handler]
    logger.setLevel(level.upper())
    logger.propagate = False


@asynccontextmanager
async def track_operation(operation: str, **fields: Any) -> AsyncIterator[Dict[str, Any]]:
    """
    Time a single store operation and log its outcome.
    
    The yielded dict is the structured log context; callers may add fields
    to it (e.g. the number assigned by an insert). Exceptions always propagate.
    
    Log level based on outcome:
        success -> INFO
        domain rule rejection -> WARNING
        StorageError -> ERROR
    """
    # 1. Generate Correlation ID
    log_data: Dict[str, Any] = {
        "correlation_id": str(uuid.uuid4()),
        "operation": operation,
        **fields,
    }
    
    # 2. Start Timer
    start_time = time.time()
    
    try:
        yield log_data
    except StorageError as exc:
        log_data["duration_ms"] = round((time.time() - start_time) * 1000, 2)
        log_data["error_code"] = exc.error_code
        logger.error("Operation Failed", extra=log_data)
        raise
    except AppException as exc:
        log_data["duration_ms"] = round((time.time() - start_time) * 1000, 2)
        log_data["error_code"] = exc.error_code
        logger.warning("Operation Rejected", extra=log_data)
        raise
    
    log_data["duration_ms"] = round((time.time() - start_time) * 1000, 2)
    logger.info("Operation Completed", extra=log_data)
