"""Nutrient target models."""

from dataclasses import dataclass, field
from enum import Enum

from recipe_optimizer.domain.nutrients import NUTRIENT_FIELDS, NutrientVector


class GoalKind(str, Enum):
    """How a goal value is interpreted."""

    RELATIVE = "relative"
    ABSOLUTE = "absolute"


@dataclass(frozen=True)
class NutrientGoal:
    """Signed goal for a single nutrient.

    A relative goal is a percent change of the baseline aggregated value;
    an absolute goal is the literal target amount.
    """

    nutrient: str
    value: float
    kind: GoalKind = GoalKind.RELATIVE


@dataclass(frozen=True)
class TargetSpec:
    """Collection of nutrient goals for one optimization run."""

    goals: tuple[NutrientGoal, ...] = ()

    @classmethod
    def relative(cls, **percentages: float) -> "TargetSpec":
        return cls(
            tuple(
                NutrientGoal(name, value, GoalKind.RELATIVE)
                for name, value in percentages.items()
            )
        )

    @classmethod
    def absolute(cls, **amounts: float) -> "TargetSpec":
        return cls(
            tuple(
                NutrientGoal(name, value, GoalKind.ABSOLUTE)
                for name, value in amounts.items()
            )
        )

    def is_empty(self) -> bool:
        return not self.goals


@dataclass(frozen=True)
class ResolvedTargets:
    """Absolute targets for the constrained nutrients only."""

    values: NutrientVector
    constrained: frozenset[str] = field(default_factory=frozenset)
    baseline: NutrientVector = field(default_factory=NutrientVector)

    def target(self, nutrient: str) -> float:
        if nutrient not in self.constrained:
            raise KeyError(f"{nutrient} is not constrained")
        return self.values.get(nutrient)

    def ordered(self) -> list[str]:
        """Constrained nutrient names in schema order."""
        return [name for name in NUTRIENT_FIELDS if name in self.constrained]
