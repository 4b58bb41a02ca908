"""Tests for numeric candidate generation."""

import asyncio
import math

import pytest

from recipe_optimizer.domain.recipe import Recipe
from recipe_optimizer.services.candidates import NumericPerturbation
from tests.conftest import initial_state, search_context


def test_single_nutrient_moves_only_its_source(simple_recipe: Recipe) -> None:
    context = search_context(simple_recipe, "carb:-10")
    generator = NumericPerturbation()

    moves = generator.relative_moves(initial_state(simple_recipe), context)
    candidates = asyncio.run(generator.propose(initial_state(simple_recipe), context))

    assert moves[0] == pytest.approx(-5.0 / 45.0, rel=1e-4)
    assert moves[1] == 0.0
    assert len(candidates) == 1
    assert candidates[0].quantities[0] < 100.0
    assert candidates[0].quantities[1] == 10.0
    assert candidates[0].source == "numeric"


def test_shared_nutrient_adds_coordinate_candidates(simple_recipe: Recipe) -> None:
    context = search_context(simple_recipe, "fat:-20")

    candidates = NumericPerturbation().generate(initial_state(simple_recipe), context)

    assert [candidate.note for candidate in candidates] == [
        "joint",
        "coordinate:bread",
        "coordinate:butter",
    ]
    joint = candidates[0].quantities
    assert joint[0] < 100.0
    assert joint[1] < 10.0


def test_increase_goal_moves_upward(simple_recipe: Recipe) -> None:
    context = search_context(simple_recipe, "carb:+20")

    moves = NumericPerturbation().relative_moves(initial_state(simple_recipe), context)

    assert moves[0] > 0


def test_moves_are_clipped(simple_recipe: Recipe) -> None:
    context = search_context(simple_recipe, "carb:-10")
    generator = NumericPerturbation(max_relative_move=0.5)
    state = initial_state(simple_recipe, step_size=100.0)

    moves = generator.relative_moves(state, context)

    assert moves[0] == pytest.approx(-0.5)


def test_fixed_ingredients_never_move(
    simple_recipe: Recipe, pancake_recipe: Recipe
) -> None:
    simple_recipe.ingredients[1].adjustable = False
    context = search_context(simple_recipe, "fat:-20")
    moves = NumericPerturbation().relative_moves(initial_state(simple_recipe), context)

    pancake_context = search_context(pancake_recipe, "carb:-10")
    pancake_moves = NumericPerturbation().relative_moves(
        initial_state(pancake_recipe), pancake_context
    )

    assert moves[0] < 0
    assert moves[1] == 0.0
    assert pancake_moves[-1] == 0.0


def test_no_candidates_when_on_target(simple_recipe: Recipe) -> None:
    context = search_context(simple_recipe, "carb:0")

    assert NumericPerturbation().generate(initial_state(simple_recipe), context) == []


def test_clamp_respects_bounds(simple_recipe: Recipe) -> None:
    simple_recipe.ingredients[0].min_g = 80.0
    simple_recipe.ingredients[1].max_g = 12.0
    context = search_context(simple_recipe, "carb:-10")

    assert context.clamp([-5.0, 50.0]) == (80.0, 12.0)
    assert context.clamp([math.nan, 11.0]) == (80.0, 11.0)
    with pytest.raises(ValueError):
        context.clamp([1.0])


def test_clamp_never_returns_negative_quantities(simple_recipe: Recipe) -> None:
    context = search_context(simple_recipe, "carb:-10")

    assert context.clamp([-5.0, -1.0]) == (0.0, 0.0)


def test_index_of_matches_case_insensitively(simple_recipe: Recipe) -> None:
    context = search_context(simple_recipe, "carb:-10")

    assert context.index_of("butter") == 1
    assert context.index_of(" BREAD ") == 0
    assert context.index_of("jam") is None


def test_capped_decrease_offers_the_lower_bound(simple_recipe: Recipe) -> None:
    context = search_context(simple_recipe, "sat_fat=0")

    candidates = NumericPerturbation().generate(initial_state(simple_recipe), context)

    assert [candidate.note for candidate in candidates] == ["joint", "bound:butter"]
    assert candidates[0].quantities == (100.0, 5.0)
    assert candidates[1].quantities == (100.0, 0.0)


def test_bound_candidate_respects_explicit_minimum(simple_recipe: Recipe) -> None:
    simple_recipe.ingredients[1].min_g = 4.0
    context = search_context(simple_recipe, "sat_fat=0")

    candidates = NumericPerturbation().generate(initial_state(simple_recipe), context)

    assert candidates[-1].note == "bound:butter"
    assert candidates[-1].quantities == (100.0, 4.0)


def test_small_decreases_do_not_jump_to_bound(simple_recipe: Recipe) -> None:
    context = search_context(simple_recipe, "fat:-20")

    candidates = NumericPerturbation().generate(initial_state(simple_recipe), context)

    assert not any(candidate.note.startswith("bound:") for candidate in candidates)
