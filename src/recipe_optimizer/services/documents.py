"""Conversion between recipe documents and the optimizer domain."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from recipe_optimizer.domain.documents import (
    IngredientDocument,
    NutrientOutcomeDocument,
    NutrientSummary,
    NutritionalProfileDocument,
    OptimizationReportDocument,
    OptimizedRecipeDocument,
    RecipeDocument,
)
from recipe_optimizer.domain.nutrients import NutrientVector
from recipe_optimizer.domain.optimization import OptimizationResult
from recipe_optimizer.domain.recipe import Ingredient, NutritionalProfile, Recipe
from recipe_optimizer.domain.targets import TargetSpec
from recipe_optimizer.services.optimizer import RecipeOptimizer
from recipe_optimizer.services.targets import parse_directive

_logger = logging.getLogger(__name__)


def recipe_from_document(document: RecipeDocument) -> Recipe:
    """Build a recipe, deriving per-gram densities from absolute nutrients.

    Ingredients without a gram quantity or nutritional info are kept at
    their quantity with zero density and are never adjusted.
    """
    ingredients = [_ingredient_from_document(item) for item in document.ingredients]
    return Recipe(
        title=document.recipe_title,
        ingredients=ingredients,
        instructions=list(document.instructions),
    )


def _ingredient_from_document(item: IngredientDocument) -> Ingredient:
    grams = item.quantity_grams or 0.0
    info = item.nutritional_info
    if grams > 0 and info is not None:
        totals = NutrientVector.from_mapping(info.model_dump())
        for problem in totals.validate():
            _logger.warning("Ingredient '%s': %s", item.ingredient_name, problem)
        density = totals * (1.0 / grams)
        adjustable = True
    else:
        _logger.warning(
            "Ingredient '%s' lacks grams or nutrition; holding it fixed",
            item.ingredient_name,
        )
        density = NutrientVector.zero()
        adjustable = False
    return Ingredient(
        name=item.ingredient_name,
        quantity_g=grams,
        density=density,
        raw_text=item.raw_text,
        preparation_notes=item.preparation_notes,
        min_g=item.min_grams,
        max_g=item.max_grams,
        adjustable=adjustable,
    )


def document_from_result(
    source: RecipeDocument, result: OptimizationResult
) -> OptimizedRecipeDocument:
    """Write optimized quantities back onto the source document."""
    ingredients = []
    pairs = zip(source.ingredients, result.recipe.ingredients, strict=True)
    for item, ingredient in pairs:
        update: dict[str, object] = {}
        if ingredient.adjustable:
            update["quantity_grams"] = ingredient.quantity_g
            if item.nutritional_info is not None:
                update["nutritional_info"] = item.nutritional_info.model_copy(
                    update=ingredient.contribution().to_dict()
                )
        ingredients.append(item.model_copy(update=update))

    report = result.report
    payload = source.model_dump(
        exclude={"ingredients", "nutritional_profile", "optimization_report"}
    )
    return OptimizedRecipeDocument(
        **payload,
        ingredients=ingredients,
        nutritional_profile=profile_document(result.profile),
        optimization_report=OptimizationReportDocument(
            status=report.status.value,
            iterations_run=report.iterations_run,
            initial_loss=report.initial_loss,
            final_loss=report.final_loss,
            achieved_vs_target={
                outcome.nutrient: NutrientOutcomeDocument(
                    baseline=outcome.baseline,
                    target=outcome.target,
                    achieved=outcome.achieved,
                    within_tolerance=outcome.within_tolerance,
                )
                for outcome in report.outcomes
            },
            accepted=report.accepted,
            rejected=report.rejected,
            agent_fallbacks=report.agent_fallbacks,
        ),
    )


def profile_document(profile: NutritionalProfile) -> NutritionalProfileDocument:
    return NutritionalProfileDocument(
        total_mass_g=profile.total_mass_g,
        aggregated=NutrientSummary(**profile.aggregated.to_dict()),
        per_100g=NutrientSummary(**profile.per_100g.to_dict()),
    )


@dataclass
class RecipeDocumentService:
    """Optimizes recipe documents end to end."""

    optimizer: RecipeOptimizer

    async def optimize(
        self,
        document: RecipeDocument,
        directive: str | Iterable[str] | TargetSpec,
    ) -> OptimizedRecipeDocument:
        """Optimize a document for a directive such as ``"carb:-10"``."""
        spec = (
            directive
            if isinstance(directive, TargetSpec)
            else parse_directive(directive)
        )
        recipe = recipe_from_document(document)
        result = await self.optimizer.optimize(recipe, spec)
        return document_from_result(document, result)
