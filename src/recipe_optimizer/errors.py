"""Error types raised by the optimizer."""


class RecipeOptimizerError(Exception):
    """Base class for optimizer errors."""


class EmptyRecipeError(RecipeOptimizerError):
    """Raised when a recipe has no ingredients."""


class DivisionByZeroError(RecipeOptimizerError, ZeroDivisionError):
    """Raised when a recipe's total mass is zero."""


class InvalidTargetError(RecipeOptimizerError, ValueError):
    """Raised for unknown nutrients or infeasible percentage goals."""


class InfeasibleTargetsError(RecipeOptimizerError):
    """Raised on request when a run diverged away from its targets."""


class AgentResponseError(RecipeOptimizerError):
    """Raised when the external agent returns unusable output."""
