"""Application configuration."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Optimizer settings loaded from environment variables."""

    reg_weight: float = Field(default=0.01, ge=0.0)
    max_iterations: int = Field(default=200, ge=0)
    initial_step: float = Field(default=1.0, gt=0.0)
    step_decay: float = Field(default=0.95, gt=0.0, le=1.0)
    step_shrink: float = Field(default=0.5, gt=0.0, le=1.0)
    convergence_window: int = Field(default=5, ge=1)
    relative_tolerance: float = Field(default=1e-4, ge=0.0)
    target_tolerance: float = Field(default=0.05, ge=0.0)
    divergence_patience: int = Field(default=10, ge=1)
    max_relative_change: float | None = Field(default=None, ge=0.0)
    derive_kcal_target: bool = False
    parallel_evaluation: bool = False
    agent_enabled: bool = False
    agent_api_key: str | None = None
    agent_base_url: str = "https://openrouter.ai/api/v1"
    agent_model: str = "qwen/qwen3-32b"
    agent_temperature: float = 0.2
    agent_max_tokens: int = 2048
    agent_timeout_seconds: float = Field(default=30.0, gt=0.0)
    agent_augment_numeric: bool = True
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def agent_configured(self) -> bool:
        """Return True when the external agent can be used."""
        return self.agent_enabled and bool(self.agent_api_key)
