"""Target directive parsing and resolution."""

import logging
import re
from collections.abc import Iterable

from recipe_optimizer.domain.nutrients import NutrientVector, canonical_nutrient
from recipe_optimizer.domain.recipe import NutritionalProfile
from recipe_optimizer.domain.targets import (
    GoalKind,
    NutrientGoal,
    ResolvedTargets,
    TargetSpec,
)
from recipe_optimizer.errors import InvalidTargetError

_ATWATER_KCAL_PER_G = {
    "protein_g": 4.0,
    "carbohydrate_g": 4.0,
    "fat_g": 9.0,
}

_RELATIVE_PATTERN = re.compile(
    r"^(?P<name>[\w\- ]+?)\s*:\s*(?P<value>[-+]?\d+(?:\.\d+)?)\s*%?$"
)
_ABSOLUTE_PATTERN = re.compile(
    r"^(?P<name>[\w\- ]+?)\s*=\s*(?P<value>[-+]?\d+(?:\.\d+)?)\s*(?:g|kcal)?$"
)

_logger = logging.getLogger(__name__)


def parse_directive(directive: str | Iterable[str]) -> TargetSpec:
    """Parse ``nutrient:percent`` and ``nutrient=grams`` pairs.

    ``"carb:-10, fat:-20"`` reduces carbohydrate by 10% and fat by 20%;
    ``"protein=40"`` asks for 40 g of protein in the whole recipe.
    """
    if isinstance(directive, str):
        chunks = re.split(r"[,;]", directive)
    else:
        chunks = list(directive)
    goals: list[NutrientGoal] = []
    for chunk in chunks:
        token = chunk.strip()
        if not token:
            continue
        goals.append(_parse_token(token))
    return TargetSpec(tuple(goals))


def _parse_token(token: str) -> NutrientGoal:
    relative = _RELATIVE_PATTERN.match(token)
    if relative:
        return NutrientGoal(
            nutrient=relative.group("name").strip(),
            value=float(relative.group("value")),
            kind=GoalKind.RELATIVE,
        )
    absolute = _ABSOLUTE_PATTERN.match(token)
    if absolute:
        return NutrientGoal(
            nutrient=absolute.group("name").strip(),
            value=float(absolute.group("value")),
            kind=GoalKind.ABSOLUTE,
        )
    raise InvalidTargetError(f"Cannot parse target '{token}'")


def resolve(
    target_spec: TargetSpec,
    baseline: NutritionalProfile,
    *,
    derive_kcal: bool = False,
) -> ResolvedTargets:
    """Turn goals into absolute targets on the aggregated profile."""
    values = NutrientVector.zero()
    constrained: set[str] = set()
    for goal in target_spec.goals:
        name = canonical_nutrient(goal.nutrient)
        if name is None:
            raise InvalidTargetError(f"Unknown nutrient '{goal.nutrient}'")
        if name in constrained:
            raise InvalidTargetError(f"Nutrient '{name}' has more than one goal")
        values = values.with_value(name, _target_value(goal, name, baseline))
        constrained.add(name)

    if derive_kcal and "kcal" not in constrained:
        macros = [name for name in _ATWATER_KCAL_PER_G if name in constrained]
        if macros:
            delta = sum(
                (values.get(name) - baseline.aggregated.get(name))
                * _ATWATER_KCAL_PER_G[name]
                for name in macros
            )
            kcal_target = max(baseline.aggregated.kcal + delta, 0.0)
            values = values.with_value("kcal", kcal_target)
            constrained.add("kcal")
            _logger.debug("Derived kcal target %.2f from %s", kcal_target, macros)

    return ResolvedTargets(
        values=values,
        constrained=frozenset(constrained),
        baseline=baseline.aggregated,
    )


def _target_value(goal: NutrientGoal, name: str, baseline: NutritionalProfile) -> float:
    if goal.kind is GoalKind.ABSOLUTE:
        if goal.value < 0:
            raise InvalidTargetError(f"Absolute target for '{name}' is negative")
        return goal.value
    if goal.value <= -100:
        raise InvalidTargetError(
            f"Relative target {goal.value}% for '{name}' would remove all of it"
        )
    return baseline.aggregated.get(name) * (1 + goal.value / 100)
