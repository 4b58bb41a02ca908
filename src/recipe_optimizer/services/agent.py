"""Candidate generation delegated to an external reasoning agent."""

import logging
from dataclasses import dataclass
from typing import Protocol

import numpy as np
from pydantic import ValidationError

from recipe_optimizer.domain.agent import AgentOperation, AgentSuggestion
from recipe_optimizer.domain.nutrients import NUTRIENT_FIELDS
from recipe_optimizer.domain.optimization import Candidate, OptimizationState
from recipe_optimizer.errors import AgentResponseError
from recipe_optimizer.services.aggregator import aggregate_array
from recipe_optimizer.services.candidates import CandidateGenerator, SearchContext

AGENT_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "modifications": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "operation": {
                        "type": "string",
                        "enum": [operation.value for operation in AgentOperation],
                    },
                    "original_ingredient_name": {
                        "anyOf": [{"type": "string"}, {"type": "null"}]
                    },
                    "quantity_g": {
                        "anyOf": [{"type": "number", "minimum": 0}, {"type": "null"}]
                    },
                    "reasoning": {"anyOf": [{"type": "string"}, {"type": "null"}]},
                },
                "required": [
                    "operation",
                    "original_ingredient_name",
                    "quantity_g",
                    "reasoning",
                ],
                "additionalProperties": False,
            },
        },
        "overall_reasoning": {"type": "string"},
    },
    "required": ["modifications", "overall_reasoning"],
    "additionalProperties": False,
}

_WRAPPER_KEY = "recipe_modification_suggestions"

_logger = logging.getLogger(__name__)


class AgentClient(Protocol):
    """Interface for a chat model returning structured JSON."""

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
        """Return the decoded JSON object produced by the model."""


@dataclass
class AgentCandidateGenerator(CandidateGenerator):
    """Asks an agent for quantity edits and turns them into a candidate."""

    client: AgentClient
    model: str
    temperature: float = 0.2
    max_tokens: int = 2048

    async def propose(
        self, state: OptimizationState, context: SearchContext
    ) -> list[Candidate]:
        raw = await self.client.suggest(
            model=self.model,
            system_prompt=build_system_prompt(state.loss),
            user_prompt=build_user_prompt(state, context),
            schema=AGENT_SCHEMA,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        suggestion = parse_suggestion(raw)
        if suggestion.is_no_change():
            _logger.info(
                "Agent proposed no change: %s", suggestion.overall_reasoning or "n/a"
            )
            return []
        return apply_suggestion(suggestion, state, context)


def parse_suggestion(raw: dict[str, object]) -> AgentSuggestion:
    """Validate an agent payload, unwrapping a stray top-level key."""
    payload = raw
    wrapped = raw.get(_WRAPPER_KEY) if isinstance(raw, dict) else None
    if isinstance(wrapped, dict) and "modifications" not in raw:
        payload = wrapped
    try:
        return AgentSuggestion.model_validate(payload)
    except ValidationError as exc:
        raise AgentResponseError(f"Agent response failed validation: {exc}") from exc


def apply_suggestion(
    suggestion: AgentSuggestion, state: OptimizationState, context: SearchContext
) -> list[Candidate]:
    """Apply quantity edits to the current vector; unknown names are skipped."""
    quantities = list(state.quantities)
    applied = 0
    for modification in suggestion.modifications:
        if modification.operation is AgentOperation.NO_CHANGE:
            continue
        name = modification.original_ingredient_name or ""
        index = context.index_of(name)
        if index is None:
            _logger.warning("Agent referenced unknown ingredient '%s'", name)
            continue
        if modification.operation is AgentOperation.REMOVE_INGREDIENT:
            quantities[index] = 0.0
        elif modification.quantity_g is None:
            _logger.warning("Agent adjusted '%s' without a quantity", name)
            continue
        else:
            quantities[index] = modification.quantity_g
        applied += 1
    if not applied:
        return []
    return [
        Candidate(
            quantities=tuple(quantities),
            source="agent",
            note=suggestion.overall_reasoning or None,
        )
    ]


def build_system_prompt(current_loss: float) -> str:
    """Instructions sent with every agent request."""
    return (
        "You are a recipe optimization assistant. Adjust ingredient quantities "
        "so the recipe's total nutrients move toward the targets while keeping "
        "the dish recognizable. Do not add or replace ingredients.\n"
        "Respond with a JSON object only, with a top-level 'modifications' "
        "array and an 'overall_reasoning' string.\n"
        "Allowed operations:\n"
        "- 'adjust_quantity': set 'quantity_g' for 'original_ingredient_name'.\n"
        "- 'remove_ingredient': drop 'original_ingredient_name'.\n"
        "- 'no_change': the recipe cannot be improved further.\n"
        "'original_ingredient_name' must exactly match a listed ingredient.\n"
        f"Current loss (lower is better): {current_loss:.6f}."
    )


def build_user_prompt(state: OptimizationState, context: SearchContext) -> str:
    """Describe the current recipe and targets for the agent."""
    quantities = np.asarray(state.quantities, dtype=float)
    aggregated = aggregate_array(context.densities, quantities)
    lines = [f"Recipe: {context.title}", "", "Ingredients (grams):"]
    for index, name in enumerate(context.names):
        bounds = _format_bounds(context.lower[index], context.upper[index])
        lines.append(f"- {name}: {quantities[index]:.1f} g{bounds}")
    lines.extend(["", "Current totals vs targets:"])
    for name in context.targets.ordered():
        current = aggregated[NUTRIENT_FIELDS.index(name)]
        target = context.targets.target(name)
        lines.append(f"- {name}: {current:.2f} (target {target:.2f})")
    return "\n".join(lines)


def _format_bounds(lower: float, upper: float) -> str:
    if lower == upper:
        return " (fixed)"
    if lower <= 0 and np.isinf(upper):
        return ""
    upper_text = "inf" if np.isinf(upper) else f"{upper:.1f}"
    return f" (allowed {lower:.1f}-{upper_text} g)"
