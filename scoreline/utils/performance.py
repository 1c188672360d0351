"""
Performance monitoring utilities for the Scoreline application
"""

import functools
import time

from flask import current_app

from scoreline.utils.logging_config import get_logger

logger = get_logger(__name__)


def timer(func):
    """
    Decorator to time function execution

    Args:
        func: Function to time

    Returns:
        Wrapped function with timing
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        try:
            result = func(*args, **kwargs)
            execution_time = time.time() - start_time

            # Log slow functions
            threshold = current_app.config.get("SLOW_FUNCTION_THRESHOLD", 1.0)
            if execution_time > threshold:
                logger.warning(
                    f"Slow function {func.__name__} took {execution_time:.2f}s "
                    f"(threshold: {threshold}s)"
                )
            else:
                logger.debug(
                    f"Function {func.__name__} executed in {execution_time:.2f}s"
                )

            return result

        except Exception as e:
            execution_time = time.time() - start_time
            logger.error(
                f"Function {func.__name__} failed after {execution_time:.2f}s: {str(e)}"
            )
            raise

    return wrapper
