"""Shared utilities for timed action solvers.

Contains preprocessing (score and effort ordering), the per-call admission
state, partitioning of unselected actions, rationale assembly and the empty
result.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field, replace

from roadmap_allocation.models import Action, AllocationPolicy, AllocationResult, Category, SelectedAction
from roadmap_allocation.scoring import effort_points
from roadmap_allocation.solver._types import SolverResult

logger = logging.getLogger(__name__)

REASON_OVERRIDE = "override"
REASON_BALANCED_FILL = "balanced_fill"
REASON_MIN_COUNT_RELAX = "min_count_relax"


def preprocess(categories: list[Category]) -> list[Category]:
    """Order categories by score and their actions by effort.

    Both sorts are stable, so ties keep input order. Does not mutate input.

    Parameters
    ----------
    categories : list[Category]
        Scored categories in input order.

    Returns
    -------
    list[Category]
        New categories, lowest score first, each with actions cheapest first.

    Raises
    ------
    ValueError
        If two categories share an id.
    """
    counts = Counter(category.id for category in categories)
    duplicated = sorted(category_id for category_id, count in counts.items() if count > 1)
    if duplicated:
        raise ValueError(f"duplicate category ids: {', '.join(duplicated)}")
    return [
        replace(category, actions=sorted(category.actions, key=lambda a: effort_points(a.effort)))
        for category in sorted(categories, key=lambda c: c.score)
    ]


def find_critical_category(categories: list[Category], policy: AllocationPolicy) -> Category | None:
    """Return the override trigger category if it qualifies for the override.

    Parameters
    ----------
    categories : list[Category]
        Preprocessed categories.
    policy : AllocationPolicy
        Supplies the critical category id and threshold.

    Returns
    -------
    Category | None
        The critical category when present, scoring at or below the threshold
        and carrying at least one action.
    """
    for category in categories:
        if category.id == policy.critical_category_id:
            if category.score <= policy.critical_threshold and category.actions:
                return category
            return None
    return None


def to_selected(category: Category, action: Action, reason: str | None = None) -> SelectedAction:
    """Copy an action and its category's display fields into a roadmap entry."""
    return SelectedAction(
        category_id=category.id,
        category_name=category.name,
        score=category.score,
        level=category.level,
        text=action.text,
        effort=action.effort,
        effort_points=effort_points(action.effort),
        action_id=action.action_id,
        reason=reason,
    )


@dataclass
class AllocationState:
    """Working state of one allocation call.

    Every phase admits actions through :meth:`admit`, so the budget and
    overflow accounting is identical whichever phase is running.
    """

    policy: AllocationPolicy
    immediate: list[SelectedAction] = field(default_factory=list)
    effort_used: int = 0
    overflow_used: int = 0
    rationale: list[str] = field(default_factory=list)

    def is_selected(self, category: Category, action: Action) -> bool:
        return any(
            item.category_id == category.id and item.action_id == action.action_id for item in self.immediate
        )

    def available(self, category: Category) -> list[Action]:
        """Actions of ``category`` not yet in the immediate list, in effort order."""
        return [action for action in category.actions if not self.is_selected(category, action)]

    def count_for(self, category: Category) -> int:
        return sum(1 for item in self.immediate if item.category_id == category.id)

    def admit(self, action: Action, category: Category, reason: str, allow_overflow: bool = False) -> bool:
        """Add ``action`` to the immediate list if the effort budget allows it.

        Parameters
        ----------
        action : Action
            Candidate action.
        category : Category
            Category owning the action.
        reason : str
            Tag recorded on the admitted entry.
        allow_overflow : bool
            Whether the action may push effort past the base budget, within
            the remaining overflow allowance.

        Returns
        -------
        bool
            ``True`` if the action was admitted.
        """
        cost = effort_points(action.effort)
        base = self.policy.max_30_day_effort
        will_overflow = self.effort_used + cost > base
        overflow_needed = max(0, self.effort_used + cost - base)

        if will_overflow and (
            not allow_overflow or self.overflow_used + overflow_needed > self.policy.global_overflow_max
        ):
            return False
        if self.effort_used + cost > self.policy.effort_ceiling:
            return False

        self.immediate.append(to_selected(category, action, reason))
        self.effort_used += cost
        if will_overflow:
            self.overflow_used += overflow_needed
        logger.debug("Admitted %s (%s, cost %d, reason %s)", action.action_id, category.id, cost, reason)
        return True


def sort_by_score(items: list[SelectedAction]) -> list[SelectedAction]:
    """Stable ascending sort by owning category score."""
    return sorted(items, key=lambda item: item.score)


def partition_remaining(
    categories: list[Category],
    immediate: list[SelectedAction],
    policy: AllocationPolicy,
) -> tuple[list[SelectedAction], list[SelectedAction]]:
    """Split the actions not chosen for the next 30 days by category strength.

    Parameters
    ----------
    categories : list[Category]
        Preprocessed categories.
    immediate : list[SelectedAction]
        Actions already chosen.
    policy : AllocationPolicy
        Supplies the ongoing threshold.

    Returns
    -------
    tuple[list[SelectedAction], list[SelectedAction]]
        ``(short_term, ongoing)``, each sorted by category score.
    """
    selected = {(item.category_id, item.action_id) for item in immediate}
    short_term: list[SelectedAction] = []
    ongoing: list[SelectedAction] = []
    for category in categories:
        target = ongoing if category.score > policy.ongoing_threshold else short_term
        for action in category.actions:
            if (category.id, action.action_id) not in selected:
                target.append(to_selected(category, action))
    return sort_by_score(short_term), sort_by_score(ongoing)


def build_rationale(
    lines: list[str],
    immediate: list[SelectedAction],
    effort_used: int,
    policy: AllocationPolicy,
) -> str:
    """Join recorded decision lines, or summarise a plain balanced fill."""
    if lines:
        return "; ".join(lines)
    if not immediate:
        return "No actions added to the 30-day plan"
    counts = Counter(item.category_name for item in immediate)
    summary = ", ".join(f"{name} ({count})" for name, count in counts.items())
    return f"Balanced prioritization: {summary}, {effort_used}/{policy.max_30_day_effort} effort points"


def assemble_result(
    categories: list[Category],
    solver_result: SolverResult,
    policy: AllocationPolicy,
) -> AllocationResult:
    """Combine a solver's immediate selection with the partitioned remainder.

    Parameters
    ----------
    categories : list[Category]
        Preprocessed categories the solver ran on.
    solver_result : SolverResult
        Output of any :class:`AllocationSolver`.
    policy : AllocationPolicy
        Policy the solver ran with.

    Returns
    -------
    AllocationResult
    """
    immediate = sort_by_score(solver_result["immediate"])
    short_term, ongoing = partition_remaining(categories, immediate, policy)
    return AllocationResult(
        immediate=immediate,
        short_term=short_term,
        ongoing=ongoing,
        rationale=build_rationale(solver_result["rationale"], immediate, solver_result["total_effort"], policy),
        total_effort=solver_result["total_effort"],
        overflow_used=solver_result["overflow_used"],
        override_applied=solver_result["override_applied"],
    )


def empty_solver_result(status: str, rule: str) -> SolverResult:
    """Build a ``SolverResult`` with no selection.

    Parameters
    ----------
    status : str
        Descriptive status string.
    rule : str
        Decision rule identifier.

    Returns
    -------
    SolverResult
    """
    return {
        "status": status,
        "immediate": [],
        "total_effort": 0,
        "overflow_used": 0,
        "override_applied": False,
        "rationale": [],
        "rule": rule,
        "detail": {},
    }
