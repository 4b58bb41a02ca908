"""Tests for container wiring."""

import asyncio

from recipe_optimizer.config import Settings
from recipe_optimizer.containers import build_container
from recipe_optimizer.services.agent import AgentCandidateGenerator
from recipe_optimizer.services.candidates import NumericPerturbation


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)

    assert container.agent_client is None
    assert isinstance(container.optimizer.generator, NumericPerturbation)
    assert container.optimizer.generator is container.optimizer.fallback
    assert container.optimizer.generator_timeout_seconds is None
    assert container.document_service.optimizer is container.optimizer
    asyncio.run(container.close_resources())


def test_build_container_passes_settings_through() -> None:
    settings = Settings(
        _env_file=None,
        reg_weight=0.05,
        max_iterations=50,
        convergence_window=3,
        divergence_patience=4,
        max_relative_change=0.25,
    )

    optimizer = build_container(settings).optimizer

    assert optimizer.reg_weight == 0.05
    assert optimizer.max_iterations == 50
    assert optimizer.monitor.window == 3
    assert optimizer.monitor.patience == 4
    assert optimizer.max_relative_change == 0.25


def test_build_container_wires_agent_when_configured() -> None:
    settings = Settings(
        _env_file=None,
        agent_enabled=True,
        agent_api_key="key",
        agent_timeout_seconds=12.0,
    )

    container = build_container(settings)

    assert container.agent_client is not None
    assert isinstance(container.optimizer.generator, AgentCandidateGenerator)
    assert container.optimizer.generator.model == settings.agent_model
    assert isinstance(container.optimizer.fallback, NumericPerturbation)
    assert container.optimizer.generator_timeout_seconds == 12.0
    assert container.optimizer.augment_with_fallback
    asyncio.run(container.close_resources())
