"""Configuration loading and validation using Pydantic."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class PathsConfig(BaseModel):
    """Filesystem locations."""

    data_dir: str = Field("data", description="Directory holding per-channel JSON stores")
    logs_dir: str = Field("logs", description="Directory for system.log and the batch log")
    product_catalog: Optional[str] = Field(
        None, description="Product catalog YAML; the packaged catalog is used when empty"
    )
    master_pricing: Optional[str] = Field(
        None, description="Master pricing workbook; built-in defaults are used when empty"
    )


class RetentionConfig(BaseModel):
    """Size-bounded history retention."""

    windows_months: List[int] = Field(
        [24, 12], description="Trailing windows tried in order until the data fits"
    )
    max_bytes: int = Field(9216, gt=0, description="Maximum serialized size of one channel")

    @field_validator('windows_months')
    @classmethod
    def validate_windows(cls, v):
        """Windows must be positive and strictly shrinking."""
        if not v:
            raise ValueError("windows_months must list at least one window")
        if any(w <= 0 for w in v):
            raise ValueError("windows_months entries must be positive")
        if any(b >= a for a, b in zip(v, v[1:])):
            raise ValueError("windows_months must be strictly decreasing")
        return v


class MergeConfig(BaseModel):
    include_account_in_key: bool = Field(
        True, description="Whether account name is part of the merge identity"
    )


class SinkConfig(BaseModel):
    """Optional outbound HTTP sink for uploaded rows."""

    enabled: bool = Field(False, description="Post uploaded rows to the sink")
    url: Optional[str] = Field(None, description="Sink endpoint URL")
    token: Optional[str] = Field(None, description="Shared token sent with each payload")
    timeout_seconds: float = Field(10.0, gt=0, description="HTTP timeout per request")

    @model_validator(mode='after')
    def validate_endpoint(self):
        """An enabled sink needs somewhere to post."""
        if self.enabled and not self.url:
            raise ValueError("sink.url is required when sink.enabled is true")
        return self


class AppConfig(BaseModel):
    """Complete application configuration."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)
    sink: SinkConfig = Field(default_factory=SinkConfig)

    def as_dict(self) -> Dict:
        return self.model_dump()


def load_config(path: str | Path) -> Dict:
    """Load a YAML configuration file."""

    with open(path, "r", encoding="utf-8") as stream:
        return yaml.safe_load(stream) or {}


def load_and_validate_config(config_dict: Optional[dict]) -> AppConfig:
    """
    Validate a raw configuration mapping.

    Args:
        config_dict: Dictionary parsed from YAML (may be empty)

    Returns:
        Validated AppConfig object

    Raises:
        ValidationError: If configuration is invalid
    """
    return AppConfig(**(config_dict or {}))


def ensure_directory(directory: str | Path) -> Path:
    """Ensure that the directory exists."""

    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    return path
