"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import pytest

from recipe_optimizer.config import Settings
from recipe_optimizer.domain.documents import RecipeDocument
from recipe_optimizer.domain.nutrients import NutrientVector
from recipe_optimizer.domain.optimization import Candidate, OptimizationState
from recipe_optimizer.domain.recipe import Ingredient, Recipe
from recipe_optimizer.errors import AgentResponseError
from recipe_optimizer.services.agent import AgentClient
from recipe_optimizer.services.aggregator import aggregate, density_matrix
from recipe_optimizer.services.candidates import CandidateGenerator, SearchContext
from recipe_optimizer.services.documents import recipe_from_document
from recipe_optimizer.services.loss import LossFunction
from recipe_optimizer.services.targets import parse_directive, resolve

FIXTURES = Path(__file__).parent / "fixtures"


def make_ingredient(name: str, grams: float, **totals: float) -> Ingredient:
    """Build an ingredient from absolute nutrients at ``grams``."""
    density = NutrientVector(**totals) * (1.0 / grams)
    return Ingredient(name=name, quantity_g=grams, density=density)


def search_context(
    recipe: Recipe, directive: str, reg_weight: float = 0.01
) -> SearchContext:
    """Build the context the optimizer would use, with the recipe's own bounds."""
    targets = resolve(parse_directive(directive), aggregate(recipe))
    return SearchContext(
        title=recipe.title,
        names=tuple(ingredient.name for ingredient in recipe.ingredients),
        densities=density_matrix(recipe.ingredients),
        lower=np.array([ingredient.lower_bound for ingredient in recipe.ingredients]),
        upper=np.array([ingredient.upper_bound for ingredient in recipe.ingredients]),
        targets=targets,
        loss=LossFunction.build(targets, recipe.quantities(), reg_weight),
    )


def initial_state(recipe: Recipe, step_size: float = 1.0) -> OptimizationState:
    quantities = tuple(recipe.quantities())
    return OptimizationState(
        original_quantities=quantities,
        quantities=quantities,
        loss=0.0,
        step_size=step_size,
    )


def adjust_flour_payload(grams: float = 100.0) -> dict[str, object]:
    return {
        "modifications": [
            {
                "operation": "adjust_quantity",
                "original_ingredient_name": "plain flour",
                "quantity_g": grams,
                "reasoning": "Less flour lowers carbohydrate.",
            }
        ],
        "overall_reasoning": "Trim the flour.",
    }


@dataclass
class FakeAgentClient(AgentClient):
    """Fake agent client returning a fixed payload."""

    payload: dict[str, object] = field(default_factory=adjust_flour_payload)
    calls: list[dict[str, object]] = field(default_factory=list)

    async def suggest(  # noqa: PLR0913
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        schema: dict[str, object],
        temperature: float,
        max_tokens: int,
    ) -> dict[str, object]:
        self.calls.append(
            {
                "model": model,
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
            }
        )
        return self.payload


@dataclass
class SlowAgentClient(AgentClient):
    """Agent client that never answers in time."""

    delay_seconds: float = 5.0

    async def suggest(self, **kwargs: object) -> dict[str, object]:
        await asyncio.sleep(self.delay_seconds)
        return adjust_flour_payload()


@dataclass
class FailingAgentClient(AgentClient):
    """Agent client that always fails."""

    calls: int = 0

    async def suggest(self, **kwargs: object) -> dict[str, object]:
        self.calls += 1
        raise AgentResponseError("malformed output")


@dataclass
class StubGenerator(CandidateGenerator):
    """Deterministic generator proposing a scaled copy of the current vector."""

    factor: float = 2.0
    calls: int = 0

    async def propose(
        self, state: OptimizationState, context: SearchContext
    ) -> list[Candidate]:
        self.calls += 1
        return [
            Candidate(
                tuple(quantity * self.factor for quantity in state.quantities),
                source="stub",
            )
        ]


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def pancake_document() -> RecipeDocument:
    return RecipeDocument.model_validate_json(
        (FIXTURES / "pancakes.json").read_text(encoding="utf-8")
    )


@pytest.fixture
def pancake_recipe(pancake_document: RecipeDocument) -> Recipe:
    return recipe_from_document(pancake_document)


@pytest.fixture
def simple_recipe() -> Recipe:
    return Recipe(
        title="Toast",
        ingredients=[
            make_ingredient("bread", 100.0, kcal=250.0, carbohydrate_g=50.0, fat_g=3.0),
            make_ingredient("butter", 10.0, kcal=72.0, fat_g=8.0, fa_saturated_g=5.0),
        ],
        instructions=["Toast the bread.", "Spread the butter."],
    )
