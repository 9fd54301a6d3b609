"""Core configuration for the orchestrator."""

import logging
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from deferred_orchestrator.logging import configure_logging


class LoopConfig(BaseSettings):
    """Configuration for the event loop."""

    virtual_time: bool = Field(
        default=False,
        description="Fire timers instantly in deadline order instead of sleeping",
    )
    max_workers: int | None = Field(
        default=None,
        gt=0,
        description="Thread pool size for out-of-band work (None = executor default)",
    )
    unhandled_rejections: Literal["warn", "strict", "ignore"] = Field(
        default="warn",
        description="What to do with a rejection no observer picked up",
    )

    model_config = SettingsConfigDict(
        env_prefix="DEFERRED_LOOP_",
        env_file=".env",
        extra="ignore",
    )


class ResourceConfig(BaseSettings):
    """Configuration for read-by-name resources."""

    base_dir: Path = Field(
        default=Path("."),
        description="Directory resource names are resolved against",
    )
    encoding: str = Field(
        default="utf-8",
        description="Text encoding used when reading resources",
    )

    model_config = SettingsConfigDict(
        env_prefix="DEFERRED_RESOURCE_",
        env_file=".env",
        extra="ignore",
    )


class OrchestratorConfig(BaseSettings):
    """Main configuration for the orchestrator."""

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    json_logs: bool = Field(
        default=False,
        description="Emit structured JSON log lines",
    )

    loop: LoopConfig = Field(
        default_factory=LoopConfig,
        description="Event loop configuration",
    )
    resources: ResourceConfig = Field(
        default_factory=ResourceConfig,
        description="Resource configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="DEFERRED_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(self.log_level, json_output=self.json_logs)

        if self.debug:
            logging.getLogger("deferred_orchestrator").setLevel(logging.DEBUG)
