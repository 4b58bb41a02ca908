"""Loss function scoring a quantity vector against resolved targets."""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from recipe_optimizer.domain.nutrients import NUTRIENT_FIELDS, NutrientVector
from recipe_optimizer.domain.targets import ResolvedTargets

EPSILON = 1e-6
DEFAULT_REG_WEIGHT = 0.01


@dataclass(frozen=True)
class LossBreakdown:
    """Loss split into its target and regularization parts."""

    target_error: float
    regularization: float

    @property
    def total(self) -> float:
        return self.target_error + self.regularization


@dataclass(frozen=True)
class LossFunction:
    """Scale-invariant MSE over constrained nutrients plus an L2 penalty.

    Each squared residual is divided by ``target**2 + EPSILON``. The penalty
    is the mean squared relative change of each ingredient from its
    original quantity, weighted by ``reg_weight``. Ingredients whose
    original quantity is zero contribute nothing to the penalty.
    """

    target_indices: np.ndarray
    target_values: np.ndarray
    original_quantities: np.ndarray
    reg_weight: float = DEFAULT_REG_WEIGHT

    @classmethod
    def build(
        cls,
        targets: ResolvedTargets,
        original_quantities: Sequence[float],
        reg_weight: float = DEFAULT_REG_WEIGHT,
    ) -> "LossFunction":
        names = targets.ordered()
        return cls(
            target_indices=np.array(
                [NUTRIENT_FIELDS.index(name) for name in names], dtype=int
            ),
            target_values=np.array(
                [targets.values.get(name) for name in names], dtype=float
            ),
            original_quantities=np.asarray(original_quantities, dtype=float),
            reg_weight=reg_weight,
        )

    def breakdown(
        self, aggregated: np.ndarray, quantities: np.ndarray
    ) -> LossBreakdown:
        if self.target_indices.size:
            residuals = aggregated[self.target_indices] - self.target_values
            scaled = residuals**2 / (self.target_values**2 + EPSILON)
            target_error = float(np.mean(scaled))
        else:
            target_error = 0.0

        regularization = 0.0
        if self.reg_weight and self.original_quantities.size:
            base = self.original_quantities
            safe_base = np.where(base > 0, base, 1.0)
            relative = np.where(base > 0, (quantities - base) / safe_base, 0.0)
            regularization = self.reg_weight * float(np.mean(relative**2))
        return LossBreakdown(target_error=target_error, regularization=regularization)

    def __call__(self, aggregated: np.ndarray, quantities: np.ndarray) -> float:
        return self.breakdown(aggregated, quantities).total


def loss(
    current: NutrientVector,
    targets: ResolvedTargets,
    quantities: Sequence[float],
    original_quantities: Sequence[float],
    reg_weight: float = DEFAULT_REG_WEIGHT,
) -> float:
    """Score an aggregated nutrient vector; zero when nothing is constrained."""
    function = LossFunction.build(targets, original_quantities, reg_weight)
    return function(
        np.array(list(current), dtype=float),
        np.asarray(quantities, dtype=float),
    )
