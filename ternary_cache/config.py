# ternary_cache/config.py
from pathlib import Path
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Optional

class Config(BaseSettings):
    # workspace
    workspace_root: Path = Path.cwd() / ".ternary"

    # logs, default under workspace_root
    log_level: str = "INFO"
    log_dir: Optional[Path] = None
    log_filename: str = "ternary_cache.log"
    log_to_file: bool = True

    # dictionary
    words_file: Path = Path("/usr/share/dict/words")

    # cache backend; json survives between CLI runs, memory does not
    cache_backend: Literal["memory", "json", "redis"] = "json"
    cache_file: Optional[Path] = None
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: Optional[int] = None  # seconds, redis only

    # model config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TERNARY_",
        extra="ignore",
    )

    @model_validator(mode="after")
    def derive_workspace_paths(self) -> "Config":
        if self.log_dir is None:
            self.log_dir = self.workspace_root / "logs"
        if self.cache_file is None:
            self.cache_file = self.workspace_root / "cache.json"
        return self

    @property
    def log_path(self) -> Path:
        return self.log_dir / self.log_filename

    def ensure_exists(self) -> None:
        try:
            if self.log_to_file:
                self.log_dir.mkdir(parents=True, exist_ok=True)
            if self.cache_backend == "json":
                self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        except (OSError, IOError) as e:
            raise RuntimeError(f"Failed to initialize workspace: {e}")

CONFIG = Config()
CONFIG.ensure_exists()
