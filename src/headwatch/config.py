"""Configuration management for headwatch."""

import json
import logging
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class WatchConfig(BaseModel):
    """Configuration for HEAD file watching and ref resolution."""

    read_retries: int = Field(
        default=5, description="Attempts at reading a git file while git rewrites it"
    )
    read_retry_delay: float = Field(
        default=0.01, description="Delay between read attempts in seconds"
    )
    health_check_interval: float = Field(
        default=1.0,
        description="How often the worker verifies the filesystem observer is alive",
    )
    observer_stop_timeout: float = Field(
        default=5.0, description="Time to wait for the observer thread on shutdown"
    )

    @field_validator("read_retries")
    @classmethod
    def validate_read_retries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("read_retries must be at least 1")
        return v

    @field_validator(
        "read_retry_delay", "health_check_interval", "observer_stop_timeout"
    )
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("delays and timeouts must not be negative")
        return v


class TitleConfig(BaseModel):
    """Configuration for how the branch name is spliced into a title."""

    placement: Literal["front", "back"] = Field(
        default="front", description="Put the branch name before or after the title"
    )
    separator: Literal["dash", "pipe"] = Field(
        default="dash", description="Character between branch name and title"
    )


class Config(BaseModel):
    """Main configuration for headwatch."""

    watch: WatchConfig = Field(default_factory=WatchConfig)
    title: TitleConfig = Field(default_factory=TitleConfig)


class ConfigManager:
    """Manages configuration loading and saving."""

    DEFAULT_CONFIG_PATH = Path(".headwatch/config.json")

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """Load configuration from file or create default."""
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = json.load(f)
                self._config = Config(**data)
            except Exception as e:
                raise ValueError(f"Failed to load config from {self.config_path}: {e}")
        else:
            logger.debug(f"No config at {self.config_path}, using defaults")
            self._config = Config()

        return self._config

    def save(self, config: Optional[Config] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self._config

        if config is None:
            raise ValueError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w") as f:
            json.dump(config.model_dump(), f, indent=2)
