"""Candidate generation for the optimization loop."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from recipe_optimizer.domain.optimization import Candidate, OptimizationState
from recipe_optimizer.domain.targets import ResolvedTargets
from recipe_optimizer.services.aggregator import aggregate_array
from recipe_optimizer.services.loss import EPSILON, LossFunction


@dataclass(frozen=True)
class SearchContext:
    """Read-only snapshot shared by generators and candidate evaluation."""

    title: str
    names: tuple[str, ...]
    densities: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    targets: ResolvedTargets
    loss: LossFunction

    def clamp(self, quantities: Sequence[float]) -> tuple[float, ...]:
        """Clip a quantity vector to the ingredient bounds."""
        values = np.asarray(quantities, dtype=float)
        if values.shape != self.lower.shape:
            raise ValueError(
                f"Expected {self.lower.size} quantities, got {values.size}"
            )
        clipped = np.clip(np.nan_to_num(values, nan=0.0), self.lower, self.upper)
        return tuple(float(value) for value in np.maximum(clipped, 0.0))

    def index_of(self, name: str) -> int | None:
        """Find an ingredient by exact name, then case-insensitively."""
        if name in self.names:
            return self.names.index(name)
        lowered = name.strip().lower()
        for index, candidate in enumerate(self.names):
            if candidate.lower() == lowered:
                return index
        return None

    def adjustable_mask(self) -> np.ndarray:
        return self.upper > self.lower


class CandidateGenerator(Protocol):
    """Interface for anything that proposes quantity vectors."""

    async def propose(
        self, state: OptimizationState, context: SearchContext
    ) -> list[Candidate]:
        """Return candidates derived from the current state."""


@dataclass
class NumericPerturbation(CandidateGenerator):
    """Deterministic coordinate search along the residual direction.

    Every ingredient gets a relative move of ``-step * sum(rr_n * share_in)``
    where ``rr_n`` is the relative residual of constrained nutrient ``n``
    and ``share_in`` is the fraction of that nutrient supplied by the
    ingredient. One candidate applies all moves jointly, the others move a
    single coordinate. A decrease that hits the move cap or would cross the
    lower bound also yields a candidate with that ingredient at its bound,
    so quantities can reach zero.
    """

    max_relative_move: float = 0.5
    include_coordinates: bool = True

    async def propose(
        self, state: OptimizationState, context: SearchContext
    ) -> list[Candidate]:
        return self.generate(state, context)

    def generate(
        self, state: OptimizationState, context: SearchContext
    ) -> list[Candidate]:
        moves = self.relative_moves(state, context)
        if not np.any(moves):
            return []
        current = np.asarray(state.quantities, dtype=float)
        candidates: list[Candidate] = []

        joint = current * (1.0 + moves)
        if np.sum(joint) > 0:
            candidates.append(Candidate(tuple(joint.tolist()), note="joint"))

        if self.include_coordinates and np.count_nonzero(moves) > 1:
            for index in np.flatnonzero(moves):
                single = current.copy()
                single[index] = current[index] * (1.0 + moves[index])
                if np.sum(single) > 0:
                    candidates.append(
                        Candidate(
                            tuple(single.tolist()),
                            note=f"coordinate:{context.names[index]}",
                        )
                    )
        candidates.extend(self._bound_candidates(current, moves, context))
        return candidates

    def _bound_candidates(
        self, current: np.ndarray, moves: np.ndarray, context: SearchContext
    ) -> list[Candidate]:
        candidates: list[Candidate] = []
        for index in np.flatnonzero(moves < 0):
            lower = context.lower[index]
            if current[index] <= lower:
                continue
            stepped = current[index] * (1.0 + moves[index])
            if stepped > lower and moves[index] > -self.max_relative_move:
                continue
            snapped = current.copy()
            snapped[index] = lower
            if np.sum(snapped) > 0:
                candidates.append(
                    Candidate(
                        tuple(snapped.tolist()),
                        note=f"bound:{context.names[index]}",
                    )
                )
        return candidates

    def relative_moves(
        self, state: OptimizationState, context: SearchContext
    ) -> np.ndarray:
        """Return the signed relative change proposed for each ingredient."""
        indices = context.loss.target_indices
        quantities = np.asarray(state.quantities, dtype=float)
        if indices.size == 0 or quantities.size == 0:
            return np.zeros_like(quantities)

        aggregated = aggregate_array(context.densities, quantities)[indices]
        targets = context.loss.target_values
        relative_residual = (aggregated - targets) / (np.abs(targets) + EPSILON)

        contributions = quantities[:, None] * context.densities[:, indices]
        safe_totals = np.where(aggregated > 0, aggregated, 1.0)
        shares = np.where(aggregated > 0, contributions / safe_totals, 0.0)

        direction = -(shares @ relative_residual)
        moves = np.clip(
            state.step_size * direction, -self.max_relative_move, self.max_relative_move
        )
        moves[~context.adjustable_mask()] = 0.0
        return moves
