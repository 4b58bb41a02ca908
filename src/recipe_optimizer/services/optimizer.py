"""Iterative optimizer adjusting ingredient quantities toward nutrient targets."""

import asyncio
import logging
from dataclasses import dataclass, field

import numpy as np

from recipe_optimizer.domain.optimization import (
    Candidate,
    NutrientOutcome,
    OptimizationReport,
    OptimizationResult,
    OptimizationState,
    OptimizationStatus,
    ScoredCandidate,
    Verdict,
)
from recipe_optimizer.domain.recipe import NutritionalProfile, Recipe
from recipe_optimizer.domain.targets import ResolvedTargets, TargetSpec
from recipe_optimizer.errors import EmptyRecipeError
from recipe_optimizer.services.aggregator import (
    aggregate,
    aggregate_array,
    density_matrix,
)
from recipe_optimizer.services.candidates import (
    CandidateGenerator,
    NumericPerturbation,
    SearchContext,
)
from recipe_optimizer.services.convergence import ConvergenceMonitor
from recipe_optimizer.services.loss import DEFAULT_REG_WEIGHT, LossFunction
from recipe_optimizer.services.targets import resolve

_TOLERANCE_FLOOR = 1e-9

_logger = logging.getLogger(__name__)


@dataclass
class RecipeOptimizer:
    """Runs the INIT -> ITERATING -> terminal state machine on one recipe.

    ``generator`` proposes candidates each iteration and defaults to the
    numeric ``fallback``. A different generator is awaited under
    ``generator_timeout_seconds``; on timeout, error or an empty proposal
    the fallback supplies that iteration's candidates instead.
    """

    generator: CandidateGenerator | None = None
    fallback: CandidateGenerator = field(default_factory=NumericPerturbation)
    monitor: ConvergenceMonitor = field(default_factory=ConvergenceMonitor)
    reg_weight: float = DEFAULT_REG_WEIGHT
    max_iterations: int = 200
    initial_step: float = 1.0
    step_decay: float = 0.95
    step_shrink: float = 0.5
    target_tolerance: float = 0.05
    max_relative_change: float | None = None
    derive_kcal_target: bool = False
    parallel_evaluation: bool = False
    generator_timeout_seconds: float | None = None
    augment_with_fallback: bool = False

    def __post_init__(self) -> None:
        if self.generator is None:
            self.generator = self.fallback

    async def optimize(
        self,
        recipe: Recipe,
        target_spec: TargetSpec,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> OptimizationResult:
        """Optimize ``recipe`` in place and return the result with its report."""
        if not recipe.ingredients:
            raise EmptyRecipeError(f"Recipe '{recipe.title}' has no ingredients")
        baseline = aggregate(recipe)
        targets = resolve(target_spec, baseline, derive_kcal=self.derive_kcal_target)
        original = tuple(recipe.quantities())
        context = self._build_context(recipe, targets, original)
        initial_loss = context.loss(
            aggregate_array(context.densities, np.asarray(original)),
            np.asarray(original),
        )
        state = OptimizationState(
            original_quantities=original,
            quantities=original,
            loss=initial_loss,
            step_size=self.initial_step,
        )
        _logger.info(
            "Optimizing '%s': %s ingredients, targets=%s, initial loss=%.6f",
            recipe.title,
            len(recipe.ingredients),
            {name: round(targets.target(name), 4) for name in targets.ordered()},
            initial_loss,
        )

        if not targets.constrained:
            status = OptimizationStatus.CONVERGED
        else:
            status = await self._iterate(state, context, cancel_event)

        recipe.apply_quantities(state.best_quantities)
        profile = aggregate(recipe)
        report = self._build_report(status, state, targets, profile, initial_loss)
        _logger.info(
            "Finished '%s': status=%s iterations=%s loss=%.6f",
            recipe.title,
            status.value,
            state.iteration,
            state.best_loss,
        )
        return OptimizationResult(recipe=recipe, profile=profile, report=report)

    async def _iterate(
        self,
        state: OptimizationState,
        context: SearchContext,
        cancel_event: asyncio.Event | None,
    ) -> OptimizationStatus:
        while state.iteration < self.max_iterations:
            if cancel_event is not None and cancel_event.is_set():
                _logger.info("Optimization cancelled at iteration %s", state.iteration)
                return OptimizationStatus.CANCELLED
            state.iteration += 1

            candidates = await self._propose(state, context)
            scored = await self._evaluate(candidates, context)
            best = min(scored, key=lambda item: item.loss) if scored else None

            if best is not None and best.loss < state.best_loss:
                _logger.debug(
                    "Iteration %s accepted %s candidate: loss %.6f -> %.6f",
                    state.iteration,
                    best.candidate.source,
                    state.best_loss,
                    best.loss,
                )
                state.accept(best)
            else:
                state.rejected += 1
                state.step_size *= self.step_shrink
                _logger.debug(
                    "Iteration %s rejected %s candidates, step=%.5f",
                    state.iteration,
                    len(scored),
                    state.step_size,
                )
            state.step_size *= self.step_decay
            state.record(best.loss if best is not None else state.loss)

            verdict = self.monitor.observe(
                state.loss_history,
                within_tolerance=self._within_tolerance(state.best_quantities, context),
            )
            if verdict is Verdict.CONVERGED:
                return OptimizationStatus.CONVERGED
            if verdict is Verdict.DIVERGED:
                _logger.warning(
                    "No improvement for %s iterations; targets look infeasible",
                    self.monitor.patience,
                )
                return OptimizationStatus.DIVERGED
        return OptimizationStatus.MAX_ITER

    async def _propose(
        self, state: OptimizationState, context: SearchContext
    ) -> list[Candidate]:
        if self.generator is self.fallback:
            return await self.fallback.propose(state, context)
        try:
            proposal = self.generator.propose(state, context)
            if self.generator_timeout_seconds is not None:
                candidates = await asyncio.wait_for(
                    proposal, timeout=self.generator_timeout_seconds
                )
            else:
                candidates = await proposal
        except TimeoutError:
            state.agent_fallbacks += 1
            _logger.warning(
                "Candidate generator timed out after %.1fs at iteration %s; "
                "using fallback",
                self.generator_timeout_seconds,
                state.iteration,
            )
            return await self.fallback.propose(state, context)
        except Exception as exc:
            state.agent_fallbacks += 1
            _logger.warning(
                "Candidate generator failed at iteration %s (%s); using fallback",
                state.iteration,
                exc,
            )
            return await self.fallback.propose(state, context)

        if not candidates:
            return await self.fallback.propose(state, context)
        if self.augment_with_fallback:
            candidates = candidates + await self.fallback.propose(state, context)
        return candidates

    async def _evaluate(
        self, candidates: list[Candidate], context: SearchContext
    ) -> list[ScoredCandidate]:
        if self.parallel_evaluation and len(candidates) > 1:
            results = await asyncio.gather(
                *(
                    asyncio.to_thread(_score_candidate, candidate, context)
                    for candidate in candidates
                )
            )
        else:
            results = [_score_candidate(candidate, context) for candidate in candidates]
        return [result for result in results if result is not None]

    def _build_context(
        self,
        recipe: Recipe,
        targets: ResolvedTargets,
        original: tuple[float, ...],
    ) -> SearchContext:
        lower: list[float] = []
        upper: list[float] = []
        for ingredient in recipe.ingredients:
            low = ingredient.lower_bound
            high = ingredient.upper_bound
            if (
                self.max_relative_change is not None
                and ingredient.adjustable
                and ingredient.min_g is None
                and ingredient.max_g is None
            ):
                low = ingredient.quantity_g * (1 - self.max_relative_change)
                high = ingredient.quantity_g * (1 + self.max_relative_change)
            lower.append(max(low, 0.0))
            upper.append(high)
        return SearchContext(
            title=recipe.title,
            names=tuple(ingredient.name for ingredient in recipe.ingredients),
            densities=density_matrix(recipe.ingredients),
            lower=np.array(lower, dtype=float),
            upper=np.array(upper, dtype=float),
            targets=targets,
            loss=LossFunction.build(targets, original, self.reg_weight),
        )

    def _within_tolerance(
        self, quantities: tuple[float, ...], context: SearchContext
    ) -> bool:
        aggregated = aggregate_array(context.densities, np.asarray(quantities))
        achieved = aggregated[context.loss.target_indices]
        allowed = self.target_tolerance * np.abs(context.loss.target_values)
        return bool(
            np.all(
                np.abs(achieved - context.loss.target_values)
                <= allowed + _TOLERANCE_FLOOR
            )
        )

    def _build_report(
        self,
        status: OptimizationStatus,
        state: OptimizationState,
        targets: ResolvedTargets,
        profile: NutritionalProfile,
        initial_loss: float,
    ) -> OptimizationReport:
        outcomes = []
        for name in targets.ordered():
            target = targets.target(name)
            achieved = profile.aggregated.get(name)
            outcomes.append(
                NutrientOutcome(
                    nutrient=name,
                    baseline=targets.baseline.get(name),
                    target=target,
                    achieved=achieved,
                    within_tolerance=abs(achieved - target)
                    <= self.target_tolerance * abs(target) + _TOLERANCE_FLOOR,
                )
            )
        return OptimizationReport(
            status=status,
            iterations_run=state.iteration,
            initial_loss=initial_loss,
            final_loss=state.best_loss,
            outcomes=outcomes,
            loss_history=list(state.best_loss_history),
            candidate_loss_history=list(state.loss_history),
            accepted=state.accepted,
            rejected=state.rejected,
            agent_fallbacks=state.agent_fallbacks,
        )


def _score_candidate(
    candidate: Candidate, context: SearchContext
) -> ScoredCandidate | None:
    """Clamp and score one candidate; zero-mass candidates are rejected."""
    quantities = context.clamp(candidate.quantities)
    values = np.asarray(quantities, dtype=float)
    if np.sum(values) <= 0:
        _logger.debug("Rejected %s candidate with zero total mass", candidate.source)
        return None
    aggregated = aggregate_array(context.densities, values)
    return ScoredCandidate(
        candidate=candidate,
        quantities=quantities,
        loss=context.loss(aggregated, values),
    )
