from __future__ import annotations

import math
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DIMENSIONS = 20
LOG_LEVELS = {"TRACE": "DEBUG", "DEBUG": "DEBUG", "INFO": "INFO", "WARN": "WARNING", "WARNING": "WARNING", "ERROR": "ERROR"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="MIXER_", extra="ignore")

    environment: str = "production"
    log_level: str = "WARNING"
    db_path: Path = Path("bliss.db")
    host: str = "0.0.0.0"
    port: int = 12000
    weights: Annotated[List[float], NoDecode] = [1.0] * DIMENSIONS
    music_root: str = ""
    list_neighbours: int = 5000
    forest_trees: int = 1000
    forest_max_sample_size: int = 256
    forest_extension_level: int = 10
    forest_min_seeds: int = 4
    forest_workers: int = 4
    forest_random_seed: int = 0
    upload_chunk_size: int = 5 * 1024 * 1024

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("log_level", mode="before")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = LOG_LEVELS.get(str(v).strip().upper())
        if level is None:
            raise ValueError(f"invalid log level ({v})")
        return level

    @field_validator("weights", mode="before")
    @classmethod
    def _parse_weights(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [item.strip() for item in v.strip().strip("[]").split(",") if item.strip()]
        return v

    @field_validator("weights")
    @classmethod
    def _check_weights(cls, v: List[float]) -> List[float]:
        if len(v) != DIMENSIONS:
            raise ValueError(f"expected {DIMENSIONS} weights, got {len(v)}")
        if not all(math.isfinite(w) for w in v):
            raise ValueError("weights must be finite numbers")
        return v

    @property
    def sql_echo(self) -> bool:
        return self.environment == "development"

    @field_validator("forest_extension_level")
    @classmethod
    def _check_extension_level(cls, v: int) -> int:
        if not 0 <= v < DIMENSIONS:
            raise ValueError(f"extension level must be in [0, {DIMENSIONS - 1}]")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
