"""Type definitions for the solver protocol and result contract."""

from typing import Any, Protocol, TypedDict

from roadmap_allocation.models import AllocationPolicy, Category, SelectedAction


class SolverResult(TypedDict):
    """Common output contract all decision rules must satisfy.

    Parameters
    ----------
    status : str
        Termination status (e.g. ``"Complete"`` or ``"Optimal"``).
    immediate : list[SelectedAction]
        Actions chosen for the next 30 days, in admission order.
    total_effort : int
        Effort points consumed by ``immediate``.
    overflow_used : int
        Effort points admitted beyond the base budget.
    override_applied : bool
        Whether the critical category override fired.
    rationale : list[str]
        Decision trail lines, in the order they were recorded.
    rule : str
        Identifier for the decision rule (e.g. ``"greedy"``).
    detail : dict[str, Any]
        Rule-specific diagnostics, opaque to the adapter.
    """

    status: str
    immediate: list[SelectedAction]
    total_effort: int
    overflow_used: int
    override_applied: bool
    rationale: list[str]
    rule: str
    detail: dict[str, Any]


class AllocationSolver(Protocol):
    """Protocol for decision-rule solvers.

    Implementations receive preprocessed categories (sorted by score, actions
    sorted by effort) and return a :class:`SolverResult`.
    """

    def __call__(
        self,
        categories: list[Category],
        policy: AllocationPolicy,
    ) -> SolverResult: ...
