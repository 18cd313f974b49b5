"""Exact timed action decision rule.

Solves the immediate selection as a binary integer program: maximise the
urgency-weighted number of selected actions under the effort budget and the
per-category cap. Uses PuLP with the CBC solver.
"""

import logging

import pulp as lp

from roadmap_allocation.models import Action, AllocationPolicy, Category
from roadmap_allocation.scoring import effort_points
from roadmap_allocation.solver._common import (
    REASON_OVERRIDE,
    empty_solver_result,
    find_critical_category,
    to_selected,
)
from roadmap_allocation.solver._types import SolverResult

logger = logging.getLogger(__name__)

REASON_EXACT_FILL = "exact_fill"


def urgency_weight(score: int) -> float:
    """Weight of one action from a category with the given score, in [1, 2]."""
    return 1 + (100 - score) / 100


class ExactTimedActionSolver:
    """Integer-programming alternative to the greedy rule.

    When the critical category qualifies for the override, at least one of
    its actions is required and the overflow allowance is added to the
    budget. No minimum-count relax is applied.

    Parameters
    ----------
    effort_penalty : float
        Objective penalty per effort point, used to prefer cheaper actions
        among equally urgent ones. Must be non-negative and below 1/3 so a
        selection never scores less than leaving it out.

    Raises
    ------
    ValueError
        If ``effort_penalty`` is outside ``[0, 1/3)``.
    """

    rule = "exact"

    def __init__(self, effort_penalty: float = 0.01) -> None:
        if not (0 <= effort_penalty < 1 / 3):
            raise ValueError("Effort penalty must be between 0 and 1/3.")
        self.effort_penalty = effort_penalty

    def __call__(self, categories: list[Category], policy: AllocationPolicy) -> SolverResult:
        """Solve the exact immediate selection problem.

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
        candidates: list[tuple[Category, Action]] = [
            (category, action) for category in categories for action in category.actions
        ]
        if not candidates:
            return empty_solver_result("No Candidate Actions", self.rule)

        critical = find_critical_category(categories, policy)
        budget = policy.max_30_day_effort
        if critical is not None:
            budget = policy.effort_ceiling
            if min(effort_points(a.effort) for a in critical.actions) > budget:
                logger.warning("No action of %s fits the effort ceiling; override skipped", critical.id)
                critical = None
                budget = policy.max_30_day_effort

        logger.info("Formulating exact timed action problem")
        prob = lp.LpProblem("Timed_Actions_Exact", lp.LpMaximize)
        indices = list(range(len(candidates)))
        x = lp.LpVariable.dicts("Select", indices, 0, 1, lp.LpBinary)

        prob += lp.lpSum(
            x[i] * (urgency_weight(c.score) - self.effort_penalty * effort_points(a.effort))
            for i, (c, a) in enumerate(candidates)
        )
        prob += lp.lpSum(x[i] * effort_points(a.effort) for i, (_, a) in enumerate(candidates)) <= budget
        for category in categories:
            members = [i for i, (c, _) in enumerate(candidates) if c.id == category.id]
            if members:
                prob += lp.lpSum(x[i] for i in members) <= policy.max_per_category_30
        if critical is not None:
            prob += lp.lpSum(x[i] for i, (c, _) in enumerate(candidates) if c.id == critical.id) >= 1

        logger.info("Solving the exact timed action problem")
        try:
            prob.solve(lp.PULP_CBC_CMD(msg=False))
        except Exception:
            logger.exception("Error solving exact timed action problem")
            return empty_solver_result("Error solving main problem", self.rule)

        status = lp.LpStatus[prob.status]
        if prob.status != lp.LpStatusOptimal:
            result = empty_solver_result(status, self.rule)
            result["detail"] = {"budget": budget, "objective_value": None}
            return result

        immediate = []
        override_pending = critical is not None
        for i, (category, action) in enumerate(candidates):
            if x[i].varValue is None or x[i].varValue <= 0.5:
                continue
            reason = REASON_EXACT_FILL
            # Candidates are effort-ordered, so the first critical hit is its cheapest.
            if override_pending and category.id == critical.id:
                reason = REASON_OVERRIDE
                override_pending = False
            immediate.append(to_selected(category, action, reason))

        total_effort = sum(item.effort_points for item in immediate)
        rationale = []
        if critical is not None:
            forced = next(item for item in immediate if item.reason == REASON_OVERRIDE)
            rationale.append(
                f"Critical override: {critical.id} {critical.score}% -> {forced.text} ({forced.effort} effort)"
            )

        return {
            "status": status,
            "immediate": immediate,
            "total_effort": total_effort,
            "overflow_used": max(0, total_effort - policy.max_30_day_effort),
            "override_applied": critical is not None,
            "rationale": rationale,
            "rule": self.rule,
            "detail": {"budget": budget, "objective_value": lp.value(prob.objective)},
        }
