import functools
import sys
import time
from typing import Callable
from typing import Optional

from loguru import logger


def timer(func: Callable) -> Callable:
    """Decorator that logs how long the wrapped function took to run."""

    @functools.wraps(func)
    def wrapper_timer(*args, **kwargs):
        start_time = time.perf_counter()
        value = func(*args, **kwargs)
        run_time = time.perf_counter() - start_time
        logger.debug(f"Finished {func.__qualname__} in {run_time:.4f} secs")
        return value

    return wrapper_timer


def configure_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> list[int]:
    """Replace the default loguru sink with a stdout sink (and optionally a file sink).

    Args:
        log_level: Any loguru level name, e.g. DEBUG, INFO, WARNING.
        log_file: Optional path of a log file that receives DEBUG-level messages.

    Returns:
        Handler ids of the sinks that were added, so callers can `logger.remove()` them again.
    """
    logger.remove()
    handler_ids = [logger.add(sys.__stdout__, level=log_level)]
    if log_file is not None:
        handler_ids.append(logger.add(log_file, level="DEBUG"))

    return handler_ids
