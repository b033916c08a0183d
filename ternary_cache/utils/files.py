# ternary_cache/utils/files.py
from pathlib import Path
import json
from typing import Union, Callable, Iterator, Dict, List
from functools import wraps
from ternary_cache.logging import get_logger, LogTemplates

logger = get_logger("utils.files")

# Custom exceptions
class FileOperationError(Exception):
    pass

class FileNotFoundError(FileOperationError):
    pass

class FilePermissionError(FileOperationError):
    pass

# Decorators
def sync_file_op(func: Callable) -> Callable:
    @wraps(func)
    def wrapper(filepath: Union[str, Path], *args, **kwargs):
        path = Path(filepath)
        if not path.exists():
            logger.error(LogTemplates.ERROR.format(msg=f"File not found: {filepath}"))
            raise FileNotFoundError(f"File not found: {filepath}")
        if not path.is_file():
            raise FileOperationError(f"{filepath} is not a file")
        try:
            return func(path, *args, **kwargs)
        except PermissionError as e:
            logger.error(LogTemplates.ERROR.format(msg=f"Permission denied: {filepath}"))
            raise FilePermissionError(f"Permission denied: {filepath}") from e
        except Exception as e:
            logger.error(LogTemplates.ERROR.format(msg=f"{func.__name__} failed: {e}"))
            raise FileOperationError(f"Failed to execute {func.__name__}: {e}") from e
    return wrapper

def sync_write_op(func: Callable) -> Callable:
    @wraps(func)
    def wrapper(filepath: Union[str, Path], *args, **kwargs):
        path = Path(filepath)
        try:
            return func(path, *args, **kwargs)
        except PermissionError as e:
            logger.error(LogTemplates.ERROR.format(msg=f"Permission denied: {filepath}"))
            raise FilePermissionError(f"Permission denied: {filepath}") from e
        except Exception as e:
            logger.error(LogTemplates.ERROR.format(msg=f"{func.__name__} failed: {e}"))
            raise FileOperationError(f"Failed to execute {func.__name__}: {e}") from e
    return wrapper

# Directory management
def ensure_dir(directory: Union[str, Path]) -> Path:
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    return path

@sync_file_op
def read_json(filepath: Path, encoding: str = "utf-8") -> Union[Dict, List]:
    return json.loads(filepath.read_text(encoding))

@sync_file_op
def read_lines(filepath: Path, encoding: str = "utf-8") -> Iterator[str]:
    """Yield the stripped, non-empty lines of a file."""
    with filepath.open("r", encoding=encoding, errors="replace") as f:
        lines = [line.strip() for line in f]
    return (line for line in lines if line)

@sync_write_op
def write_json(filepath: Path, data: Union[Dict, List], encoding: str = "utf-8") -> None:
    ensure_dir(filepath.parent)
    filepath.write_text(json.dumps(data, ensure_ascii=False), encoding)
    logger.debug(f"Wrote to {filepath}")
