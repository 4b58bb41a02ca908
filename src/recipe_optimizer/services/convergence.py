"""Stopping rules for the optimization loop."""

from collections.abc import Sequence
from dataclasses import dataclass

from recipe_optimizer.domain.optimization import Verdict

LOSS_FLOOR = 1e-12


@dataclass(frozen=True)
class ConvergenceMonitor:
    """Decides whether the loop continues, converged or diverged.

    ``loss_history`` holds the loss of the best candidate evaluated at each
    iteration, with the baseline loss first. The running minimum of that
    history is the accepted best-so-far loss.
    """

    window: int = 5
    relative_tolerance: float = 1e-4
    patience: int = 10

    def observe(
        self, loss_history: Sequence[float], within_tolerance: bool = True
    ) -> Verdict:
        """Return the verdict for the trailing window of ``loss_history``."""
        if not loss_history:
            return Verdict.CONTINUE
        best = _running_min(loss_history)
        if best[-1] <= LOSS_FLOOR and within_tolerance:
            return Verdict.CONVERGED
        if within_tolerance and self.plateaued(loss_history):
            return Verdict.CONVERGED
        if len(loss_history) > self.patience:
            reference = best[-1 - self.patience]
            recent = loss_history[-self.patience :]
            if all(value >= reference for value in recent):
                return Verdict.DIVERGED
        return Verdict.CONTINUE

    def plateaued(self, loss_history: Sequence[float]) -> bool:
        """Return True when the best loss stopped improving over the window."""
        best = _running_min(loss_history)
        if len(best) <= self.window:
            return False
        previous = best[-1 - self.window]
        return previous - best[-1] <= self.relative_tolerance * max(
            previous, LOSS_FLOOR
        )


def _running_min(values: Sequence[float]) -> list[float]:
    result: list[float] = []
    current = float("inf")
    for value in values:
        current = min(current, value)
        result.append(current)
    return result
