# ternary_cache/logging.py
from pathlib import Path
import logging
import sys
from ternary_cache.config import CONFIG

FILE_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONSOLE_LOG_FORMAT = "[%(levelname)s] %(message)s"

def setup_logger(
    name: str,
    log_dir: str = str(CONFIG.log_dir),
    level: str = CONFIG.log_level,
    console: bool = True,
    filename: str = CONFIG.log_filename,
    to_file: bool = CONFIG.log_to_file,
) -> logging.Logger:
    """Set up and return a logger, reusing handlers if it was configured before."""
    logger = logging.getLogger(f"ternary_cache.{name}")
    if logger.handlers:
        return logger

    LEVELS = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }
    logger.setLevel(LEVELS.get(level.lower(), logging.INFO))

    if to_file:
        Path(log_dir).mkdir(exist_ok=True, parents=True)
        file_handler = logging.FileHandler(Path(log_dir) / filename, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(CONSOLE_LOG_FORMAT))
        logger.addHandler(console_handler)

    return logger

class LogTemplates:
    """Log message templates"""
    BUILD_START = "Building tree from {count} keys (caching={caching})"
    BUILD_DONE = "Built tree: {keys} keys, {nodes} nodes"
    KEY_REJECTED = "Rejected key {key!r}: {reason}"
    CACHE_EVICT = "Evicting cached tree at {key}"
    CACHE_MISS = "Cache entry {key} missing"
    ERROR = "Error: {msg}"

def get_logger(name: str, **kwargs) -> logging.Logger:
    return setup_logger(name, **kwargs)

def set_level(level: str) -> None:
    """Change the level of every ternary_cache logger already created."""
    logging.getLogger("ternary_cache").setLevel(level)
    for name, logger in logging.root.manager.loggerDict.items():
        if name.startswith("ternary_cache.") and isinstance(logger, logging.Logger):
            logger.setLevel(level)
