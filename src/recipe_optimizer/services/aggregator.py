"""Recipe nutrient aggregation."""

from collections.abc import Sequence

import numpy as np

from recipe_optimizer.domain.nutrients import NUTRIENT_FIELDS, NutrientVector
from recipe_optimizer.domain.recipe import Ingredient, NutritionalProfile, Recipe
from recipe_optimizer.errors import DivisionByZeroError


def aggregate(recipe: Recipe) -> NutritionalProfile:
    """Sum quantity-scaled densities and normalize to 100 g."""
    total = NutrientVector.zero()
    total_mass_g = 0.0
    for ingredient in recipe.ingredients:
        total = total + ingredient.contribution()
        total_mass_g += ingredient.quantity_g
    return build_profile(total_mass_g, total)


def build_profile(
    total_mass_g: float, aggregated: NutrientVector
) -> NutritionalProfile:
    """Attach the per-100g view to an aggregated vector."""
    if total_mass_g <= 0:
        raise DivisionByZeroError("Recipe total mass is zero")
    return NutritionalProfile(
        total_mass_g=total_mass_g,
        aggregated=aggregated,
        per_100g=aggregated * (100.0 / total_mass_g),
    )


def density_matrix(ingredients: Sequence[Ingredient]) -> np.ndarray:
    """Return an (ingredients x nutrients) matrix of per-gram densities."""
    if not ingredients:
        return np.zeros((0, len(NUTRIENT_FIELDS)))
    return np.array(
        [list(ingredient.density) for ingredient in ingredients], dtype=float
    )


def aggregate_array(densities: np.ndarray, quantities: np.ndarray) -> np.ndarray:
    """Aggregate nutrients for a quantity vector."""
    return quantities @ densities
