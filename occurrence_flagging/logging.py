import logging
import sys
import time
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

T = TypeVar("T")


def configure_logging(log_file: Optional[str] = None, level: int = logging.INFO) -> None:
    """Log to the console, and to log_file as well when given."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    # Disable polars logger to reduce noise
    logging.getLogger("polars").setLevel(logging.WARNING)


def log_action(action: str, func: Callable[[], T]) -> T:
    logger.info(f"Running {action}")
    start_time = time.time()
    result = func()
    elapsed = time.time() - start_time
    logger.info(f"{action} completed in {elapsed:.4f}s")
    return result
