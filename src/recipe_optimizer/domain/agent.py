"""Models for external agent suggestions."""

from enum import Enum

from pydantic import BaseModel, Field


class AgentOperation(str, Enum):
    """Edits an agent may propose."""

    ADJUST_QUANTITY = "adjust_quantity"
    REMOVE_INGREDIENT = "remove_ingredient"
    NO_CHANGE = "no_change"


class AgentModification(BaseModel):
    """Single edit proposed by the agent."""

    operation: AgentOperation
    original_ingredient_name: str | None = None
    quantity_g: float | None = Field(default=None, ge=0.0)
    reasoning: str | None = None


class AgentSuggestion(BaseModel):
    """Structured output of one agent call."""

    modifications: list[AgentModification]
    overall_reasoning: str = ""

    def is_no_change(self) -> bool:
        return all(
            modification.operation is AgentOperation.NO_CHANGE
            for modification in self.modifications
        )
