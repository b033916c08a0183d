# ternary_cache/utils/decorators.py
import time
from functools import wraps
from typing import Callable
from ternary_cache.logging import get_logger

logger = get_logger("utils.decorators")

def timing(func: Callable) -> Callable:
    """Log the execution time of a function."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.time()
        result = func(*args, **kwargs)
        logger.debug(f"{func.__qualname__} took {time.time() - start:.2f}s")
        return result
    return wrapper
