"""Dependency container wiring for the optimizer."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from recipe_optimizer.adapters.openai_agent_client import OpenAIAgentClient
from recipe_optimizer.app_logging import configure_logging
from recipe_optimizer.config import Settings
from recipe_optimizer.services.agent import AgentCandidateGenerator
from recipe_optimizer.services.candidates import CandidateGenerator, NumericPerturbation
from recipe_optimizer.services.convergence import ConvergenceMonitor
from recipe_optimizer.services.documents import RecipeDocumentService
from recipe_optimizer.services.optimizer import RecipeOptimizer


@dataclass
class AppContainer:
    """Holds optimizer dependencies."""

    settings: Settings
    optimizer: RecipeOptimizer
    document_service: RecipeDocumentService
    agent_client: OpenAIAgentClient | None
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    configure_logging(resolved_settings.log_level)
    numeric = NumericPerturbation()
    generator: CandidateGenerator = numeric
    agent_client: OpenAIAgentClient | None = None
    if resolved_settings.agent_configured:
        agent_client = OpenAIAgentClient.create(
            api_key=resolved_settings.agent_api_key or "",
            base_url=resolved_settings.agent_base_url,
            timeout_seconds=resolved_settings.agent_timeout_seconds,
        )
        generator = AgentCandidateGenerator(
            client=agent_client,
            model=resolved_settings.agent_model,
            temperature=resolved_settings.agent_temperature,
            max_tokens=resolved_settings.agent_max_tokens,
        )

    optimizer = RecipeOptimizer(
        generator=generator,
        fallback=numeric,
        monitor=ConvergenceMonitor(
            window=resolved_settings.convergence_window,
            relative_tolerance=resolved_settings.relative_tolerance,
            patience=resolved_settings.divergence_patience,
        ),
        reg_weight=resolved_settings.reg_weight,
        max_iterations=resolved_settings.max_iterations,
        initial_step=resolved_settings.initial_step,
        step_decay=resolved_settings.step_decay,
        step_shrink=resolved_settings.step_shrink,
        target_tolerance=resolved_settings.target_tolerance,
        max_relative_change=resolved_settings.max_relative_change,
        derive_kcal_target=resolved_settings.derive_kcal_target,
        parallel_evaluation=resolved_settings.parallel_evaluation,
        generator_timeout_seconds=(
            resolved_settings.agent_timeout_seconds if agent_client else None
        ),
        augment_with_fallback=resolved_settings.agent_augment_numeric,
    )

    async def close_resources() -> None:
        if agent_client is not None:
            await agent_client.close()

    return AppContainer(
        settings=resolved_settings,
        optimizer=optimizer,
        document_service=RecipeDocumentService(optimizer),
        agent_client=agent_client,
        close_resources=close_resources,
    )
