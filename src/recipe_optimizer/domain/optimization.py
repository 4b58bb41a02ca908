"""Optimization state and result models."""

from dataclasses import dataclass, field
from enum import Enum

from recipe_optimizer.domain.recipe import NutritionalProfile, Recipe
from recipe_optimizer.errors import InfeasibleTargetsError


class OptimizationStatus(str, Enum):
    """Terminal status of an optimization run."""

    CONVERGED = "converged"
    MAX_ITER = "max_iter"
    DIVERGED = "diverged"
    CANCELLED = "cancelled"


class Verdict(str, Enum):
    """Decision returned by the convergence monitor."""

    CONTINUE = "continue"
    CONVERGED = "converged"
    DIVERGED = "diverged"


@dataclass(frozen=True)
class Candidate:
    """Proposed full quantity vector."""

    quantities: tuple[float, ...]
    source: str = "numeric"
    note: str | None = None


@dataclass(frozen=True)
class ScoredCandidate:
    """Candidate with its evaluated loss."""

    candidate: Candidate
    quantities: tuple[float, ...]
    loss: float


@dataclass
class OptimizationState:
    """Mutable loop state; created per run and discarded afterwards.

    ``loss_history`` records the loss of the best candidate seen at each
    iteration (index 0 is the baseline). ``best_loss_history`` records the
    accepted best-so-far loss and never increases.
    """

    original_quantities: tuple[float, ...]
    quantities: tuple[float, ...]
    loss: float
    step_size: float
    iteration: int = 0
    best_quantities: tuple[float, ...] = ()
    best_loss: float = float("inf")
    loss_history: list[float] = field(default_factory=list)
    best_loss_history: list[float] = field(default_factory=list)
    accepted: int = 0
    rejected: int = 0
    agent_fallbacks: int = 0

    def __post_init__(self) -> None:
        if not self.best_quantities:
            self.best_quantities = self.quantities
            self.best_loss = self.loss
        if not self.loss_history:
            self.loss_history.append(self.loss)
            self.best_loss_history.append(self.loss)

    def record(self, iteration_loss: float) -> None:
        self.loss_history.append(iteration_loss)
        self.best_loss_history.append(self.best_loss)

    def accept(self, scored: ScoredCandidate) -> None:
        self.quantities = scored.quantities
        self.loss = scored.loss
        if scored.loss < self.best_loss:
            self.best_loss = scored.loss
            self.best_quantities = scored.quantities
        self.accepted += 1


@dataclass(frozen=True)
class NutrientOutcome:
    """Achieved value compared with the target for one nutrient."""

    nutrient: str
    baseline: float
    target: float
    achieved: float
    within_tolerance: bool

    @property
    def residual(self) -> float:
        return self.achieved - self.target

    @property
    def relative_error(self) -> float:
        if self.target == 0:
            return abs(self.achieved)
        return abs(self.residual) / abs(self.target)


@dataclass(frozen=True)
class OptimizationReport:
    """Summary of how a run ended."""

    status: OptimizationStatus
    iterations_run: int
    initial_loss: float
    final_loss: float
    outcomes: list[NutrientOutcome]
    loss_history: list[float]
    candidate_loss_history: list[float] = field(default_factory=list)
    accepted: int = 0
    rejected: int = 0
    agent_fallbacks: int = 0

    @property
    def all_within_tolerance(self) -> bool:
        return all(outcome.within_tolerance for outcome in self.outcomes)

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status.value,
            "iterations_run": self.iterations_run,
            "initial_loss": self.initial_loss,
            "final_loss": self.final_loss,
            "achieved_vs_target": {
                outcome.nutrient: {
                    "baseline": outcome.baseline,
                    "target": outcome.target,
                    "achieved": outcome.achieved,
                    "within_tolerance": outcome.within_tolerance,
                }
                for outcome in self.outcomes
            },
            "accepted": self.accepted,
            "rejected": self.rejected,
            "agent_fallbacks": self.agent_fallbacks,
        }


@dataclass(frozen=True)
class OptimizationResult:
    """Optimized recipe with its recomputed profile and run report."""

    recipe: Recipe
    profile: NutritionalProfile
    report: OptimizationReport

    @property
    def status(self) -> OptimizationStatus:
        return self.report.status

    def raise_for_status(self) -> None:
        """Raise InfeasibleTargetsError when the run diverged."""
        if self.report.status is OptimizationStatus.DIVERGED:
            missed = [
                outcome.nutrient
                for outcome in self.report.outcomes
                if not outcome.within_tolerance
            ]
            raise InfeasibleTargetsError(
                f"Targets not reachable within bounds: {', '.join(missed) or 'n/a'}"
            )
