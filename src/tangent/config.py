"""
Configuration loading and validation for tangent.

Loads tangent.toml files and validates settings using Pydantic.
"""

import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .trail.models import ALL_BUCKETS, Bucket, Provider, SearchParams


class SearchConfig(BaseModel):
    """Default search settings for new sessions."""

    model_config = ConfigDict(populate_by_name=True)

    provider: Provider = "parallel"
    lambda_: float = Field(default=0.6, ge=0.0, le=1.0, alias="lambda")  # MMR lambda
    sigma: float = Field(default=0.5, ge=0.0, le=1.0)  # Serendipity
    k: int = Field(default=8, ge=1, le=50)
    buckets: list[Bucket] = Field(default_factory=lambda: list(ALL_BUCKETS))
    contrarian: bool = False
    mock: bool = True  # Use fixture cards instead of calling the API

    @field_validator("buckets")
    @classmethod
    def validate_buckets(cls, v: list[Bucket]) -> list[Bucket]:
        """Ensure at least one bucket is enabled and drop duplicates."""
        if not v:
            raise ValueError("At least one source bucket must be enabled")
        return list(dict.fromkeys(v))

    def to_params(self) -> SearchParams:
        return SearchParams(
            k=self.k,
            lambda_=self.lambda_,
            sigma=self.sigma,
            provider=self.provider,
            buckets=list(self.buckets),
            contrarian=self.contrarian,
        )


class StorageConfig(BaseModel):
    """Storage configuration."""

    db_path: Path = Path(".tangent/trails.db")
    state_path: Path = Path(".tangent/state.json")  # Settings + current trail


class ApiConfig(BaseModel):
    """Remote trail API settings."""

    enabled: bool = False  # Persist to the remote API instead of the local store
    base_url: str = "http://localhost:8000/api"
    timeout_seconds: float = Field(default=10.0, gt=0.0)
    max_retries: int = Field(default=3, ge=1)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Path | None = None


class TangentConfig(BaseModel):
    """Complete tangent configuration."""

    search: SearchConfig = Field(default_factory=SearchConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: Path) -> TangentConfig:
    """
    Load configuration from TOML file.

    Args:
        config_path: Path to tangent.toml

    Returns:
        Validated TangentConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "rb") as f:
        try:
            config_data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

    try:
        config = TangentConfig(**config_data)
    except Exception as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    return config


def load_config_or_default(config_path: Path) -> TangentConfig:
    """Load configuration, falling back to defaults when the file is absent."""
    if not config_path.exists():
        return TangentConfig()
    return load_config(config_path)


def create_default_config(output_path: Path) -> None:
    """
    Write a tangent.toml with default settings.

    Args:
        output_path: Where to write tangent.toml
    """
    buckets = ", ".join(f'"{b}"' for b in ALL_BUCKETS)

    template = f'''[search]
provider = "parallel"  # parallel, sonar or brave
lambda = 0.6  # MMR relevance/diversity trade-off
sigma = 0.5  # Serendipity
k = 8  # Cards per search
buckets = [{buckets}]
contrarian = false
mock = true  # Use fixture cards

[storage]
db_path = ".tangent/trails.db"
state_path = ".tangent/state.json"

[api]
enabled = false  # Persist trails to the remote API instead of the local store
base_url = "http://localhost:8000/api"
timeout_seconds = 10.0
max_retries = 3

[logging]
level = "INFO"
'''

    output_path.write_text(template, encoding="utf-8")
