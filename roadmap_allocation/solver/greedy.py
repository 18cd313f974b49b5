"""Greedy timed action decision rule.

Fills the next-30-days list in three phases: a forced action from a weak
critical category, a round-robin balanced fill that never touches the
overflow allowance, and a minimum-count relax for the weakest category.
"""

import logging
from dataclasses import dataclass

from roadmap_allocation.models import AllocationPolicy, Category
from roadmap_allocation.solver._common import (
    REASON_BALANCED_FILL,
    REASON_MIN_COUNT_RELAX,
    REASON_OVERRIDE,
    AllocationState,
    empty_solver_result,
    find_critical_category,
)
from roadmap_allocation.solver._types import SolverResult

logger = logging.getLogger(__name__)


@dataclass
class _Candidate:
    category: Category
    added: int


class GreedyTimedActionSolver:
    """Budgeted greedy allocation of immediate actions.

    Categories are visited lowest score first and actions cheapest first.
    This solver receives **preprocessed** categories (see
    :func:`roadmap_allocation.solver._common.preprocess`).
    """

    rule = "greedy"

    def __call__(self, categories: list[Category], policy: AllocationPolicy) -> SolverResult:
        """Select the immediate actions.

        Parameters
        ----------
        categories : list[Category]
            Preprocessed categories.
        policy : AllocationPolicy
            Budget, caps and override configuration.

        Returns
        -------
        SolverResult
        """
        if not any(category.actions for category in categories):
            return empty_solver_result("No Candidate Actions", self.rule)

        state = AllocationState(policy)
        override_applied = self._apply_override(categories, state)
        self._balanced_fill(categories, state)
        self._relax_minimum_count(categories, state)

        if len(state.immediate) >= policy.min_30_day_count:
            status = "Complete"
        else:
            status = "Below Minimum Count"
        logger.info(
            "Greedy allocation: status=%s, immediate=%d, effort=%d/%d, overflow=%d",
            status,
            len(state.immediate),
            state.effort_used,
            policy.max_30_day_effort,
            state.overflow_used,
        )

        category_counts: dict[str, int] = {}
        for item in state.immediate:
            category_counts[item.category_id] = category_counts.get(item.category_id, 0) + 1

        return {
            "status": status,
            "immediate": state.immediate,
            "total_effort": state.effort_used,
            "overflow_used": state.overflow_used,
            "override_applied": override_applied,
            "rationale": state.rationale,
            "rule": self.rule,
            "detail": {
                "effort_used": state.effort_used,
                "overflow_used": state.overflow_used,
                "override_applied": override_applied,
                "category_counts": category_counts,
            },
        }

    @staticmethod
    def _apply_override(categories: list[Category], state: AllocationState) -> bool:
        critical = find_critical_category(categories, state.policy)
        if critical is None:
            return False
        action = critical.actions[0]
        if not state.admit(action, critical, REASON_OVERRIDE, allow_overflow=True):
            logger.warning("Override action %s does not fit the effort ceiling", action.action_id)
            return False
        state.rationale.append(
            f"Critical override: {critical.id} {critical.score}% -> {action.text} ({action.effort} effort)"
        )
        return True

    @staticmethod
    def _balanced_fill(categories: list[Category], state: AllocationState) -> None:
        policy = state.policy
        candidates = [_Candidate(category, state.count_for(category)) for category in categories]

        changed = True
        while changed and state.effort_used < policy.max_30_day_effort:
            changed = False
            for candidate in candidates:
                if candidate.added >= policy.max_per_category_30:
                    continue
                available = state.available(candidate.category)
                if available and state.admit(available[0], candidate.category, REASON_BALANCED_FILL):
                    candidate.added += 1
                    changed = True

    @staticmethod
    def _relax_minimum_count(categories: list[Category], state: AllocationState) -> None:
        policy = state.policy
        if len(state.immediate) >= policy.min_30_day_count:
            return
        state.rationale.append(
            f"Minimum count enforcement: {len(state.immediate)} < {policy.min_30_day_count}, relaxing constraints"
        )

        # Only the weakest category is relaxed; the next-weakest is never tried.
        weakest = categories[0]
        for action in state.available(weakest):
            if len(state.immediate) >= policy.min_30_day_count:
                break
            if state.admit(action, weakest, REASON_MIN_COUNT_RELAX, allow_overflow=True):
                state.rationale.append(f"Min-count relax: {weakest.name} -> {action.text} ({action.effort})")
