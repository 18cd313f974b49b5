"""Timed action solvers.

Provides decision-rule implementations for choosing next-30-day actions, the
shared preprocessing and post-processing helpers, and the
``AllocationSolver`` protocol that all rules satisfy.

Convenience function ``allocate`` wraps preprocessing, a solver and result
assembly in a single call.
"""

from roadmap_allocation.models import AllocationPolicy, AllocationResult, Category
from roadmap_allocation.solver._common import (
    REASON_BALANCED_FILL,
    REASON_MIN_COUNT_RELAX,
    REASON_OVERRIDE,
    AllocationState,
    assemble_result,
    build_rationale,
    empty_solver_result,
    partition_remaining,
    preprocess,
)
from roadmap_allocation.solver._types import AllocationSolver, SolverResult
from roadmap_allocation.solver.exact import ExactTimedActionSolver
from roadmap_allocation.solver.greedy import GreedyTimedActionSolver

__all__ = [
    "REASON_BALANCED_FILL",
    "REASON_MIN_COUNT_RELAX",
    "REASON_OVERRIDE",
    "AllocationSolver",
    "AllocationState",
    "ExactTimedActionSolver",
    "GreedyTimedActionSolver",
    "SolverResult",
    "allocate",
    "assemble_result",
    "build_rationale",
    "empty_solver_result",
    "partition_remaining",
    "preprocess",
]


def allocate(
    categories: list[Category],
    policy: AllocationPolicy | None = None,
    solver: AllocationSolver | None = None,
) -> AllocationResult:
    """Build the timed action plan for one assessment in one call.

    Parameters
    ----------
    categories : list[Category]
        Scored categories in input order. May be empty.
    policy : AllocationPolicy, optional
        Budget and override configuration. Defaults to :class:`AllocationPolicy`.
    solver : AllocationSolver, optional
        Decision rule. Defaults to :class:`GreedyTimedActionSolver`.

    Returns
    -------
    AllocationResult
    """
    policy = policy or AllocationPolicy()
    solver = solver or GreedyTimedActionSolver()
    processed = preprocess(categories)
    return assemble_result(processed, solver(processed, policy), policy)
