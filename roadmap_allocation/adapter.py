"""ALLOCATE component: timed action planning for assessment reports."""

import logging
import math
import uuid
from collections.abc import Callable, Mapping
from dataclasses import asdict
from functools import partial
from typing import Any, Protocol

from roadmap_allocation.config import Settings, get_settings
from roadmap_allocation.models import AllocationPolicy, AllocationResult, Category
from roadmap_allocation.scoring import normalise_actions, round_half_up
from roadmap_allocation.solver._common import REASON_OVERRIDE, assemble_result, preprocess
from roadmap_allocation.solver._types import AllocationSolver
from roadmap_allocation.solver.greedy import GreedyTimedActionSolver
from roadmap_allocation.telemetry import emit_telemetry

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = ("Complete", "Optimal")


class PipelineComponent(Protocol):
    """Structural interface for pipeline stage components."""

    def execute(self, event: dict) -> dict:
        """Process event and return result."""
        ...


def _coerce_score(raw: Any) -> int:
    if isinstance(raw, bool):
        return 0
    try:
        score = float(raw)
    except (TypeError, ValueError):
        return 0
    if math.isnan(score):
        return 0
    return round_half_up(max(0.0, min(100.0, score)))


def _to_category(raw: Any, position: int) -> Category | None:
    """Map a raw category dict to a :class:`Category`.

    Malformed entries fail closed: a non-mapping is dropped, a bad score
    becomes 0 and a non-list ``actions`` contributes nothing.

    Parameters
    ----------
    raw : Any
        Category dict as received from the scoring collaborator.
    position : int
        Index in the input list, used when ``id`` is missing.

    Returns
    -------
    Category | None
        ``None`` if the entry cannot be read at all.
    """
    if not isinstance(raw, Mapping):
        logger.warning("Skipping malformed category at position %d", position)
        return None

    category_id = str(raw.get("id") or f"category_{position}")
    raw_actions = raw.get("actions")
    if raw_actions is not None and not isinstance(raw_actions, list):
        logger.warning("Category %s has malformed actions; treating as empty", category_id)
        raw_actions = []

    return Category(
        id=category_id,
        name=str(raw.get("name") or category_id),
        score=_coerce_score(raw.get("score")),
        level=str(raw.get("level") or ""),
        actions=normalise_actions(raw_actions),
    )


class TimedActionsComponent(PipelineComponent):
    """Build next-30-day, 30-90-day and ongoing action lists.

    Handles input coercion and preprocessing, delegates the immediate
    selection to the configured solver, partitions the remainder and emits
    telemetry.

    Parameters
    ----------
    solver : AllocationSolver, optional
        Decision rule to use. Defaults to :class:`GreedyTimedActionSolver`.
    policy : AllocationPolicy, optional
        Budget and override configuration. Defaults to one built from ``settings``.
    settings : Settings, optional
        Environment configuration. Defaults to :func:`get_settings`.
    telemetry : Callable[[str, dict], Any], optional
        Event sink called as ``telemetry(event_name, payload)``. Defaults to
        :func:`emit_telemetry` bound to ``settings``.
    """

    def __init__(
        self,
        solver: AllocationSolver | None = None,
        policy: AllocationPolicy | None = None,
        settings: Settings | None = None,
        telemetry: Callable[[str, dict[str, Any]], Any] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._solver = solver or GreedyTimedActionSolver()
        self.policy = policy or AllocationPolicy.from_settings(self._settings)
        self._telemetry = telemetry or partial(emit_telemetry, settings=self._settings)

    def execute(self, event: dict) -> dict:
        """Run allocation and return an ``AllocationResult`` dict with solver detail.

        Parameters
        ----------
        event : dict
            Must contain ``categories`` (list of category dicts with ``id``,
            ``name``, ``score``, ``level`` and ``actions``). May contain
            ``overall`` (the overall score, reported to telemetry).

        Returns
        -------
        dict
            Serialized ``AllocationResult`` with ``submission_id`` and
            ``solver_detail``.
        """
        categories: list[Category] = []
        seen_ids: set[str] = set()
        for position, raw in enumerate(event.get("categories") or []):
            category = _to_category(raw, position)
            if category is None:
                continue
            if category.id in seen_ids:
                logger.warning("Skipping category at position %d: duplicate id %s", position, category.id)
                continue
            seen_ids.add(category.id)
            categories.append(category)
        submission_id = uuid.uuid4().hex[:6]

        processed = preprocess(categories)
        solver_result = self._solver(processed, self.policy)
        allocation = assemble_result(processed, solver_result, self.policy)

        status = solver_result["status"]
        if status not in SUCCESS_STATUSES:
            logger.warning(
                "Solver returned status %s for submission %s: %d immediate actions",
                status,
                submission_id,
                len(allocation.immediate),
            )
        else:
            logger.info(
                "Allocation complete: status=%s, immediate=%d, short_term=%d, ongoing=%d",
                status,
                len(allocation.immediate),
                len(allocation.short_term),
                len(allocation.ongoing),
            )

        self._emit_events(submission_id, event.get("overall"), processed, allocation)

        result = asdict(allocation)
        result["submission_id"] = submission_id
        result["solver_detail"] = {
            "rule": solver_result["rule"],
            "status": status,
            "detail": solver_result["detail"],
        }
        return result

    def _emit_events(
        self,
        submission_id: str,
        overall: Any,
        categories: list[Category],
        allocation: AllocationResult,
    ) -> None:
        if allocation.override_applied:
            item = next(i for i in allocation.immediate if i.reason == REASON_OVERRIDE)
            self._emit(
                "override_applied",
                {
                    "submission_id": submission_id,
                    "category_id": item.category_id,
                    "score": item.score,
                    "item": {"text": item.text, "effort": item.effort},
                },
            )
        self._emit(
            "action_plan_built",
            {
                "submission_id": submission_id,
                "overall": overall,
                "category_scores": {c.id: c.score for c in categories},
                "constants": self.policy.constants(),
                "counts": {
                    "immediate": len(allocation.immediate),
                    "short_term": len(allocation.short_term),
                    "ongoing": len(allocation.ongoing),
                },
                "total_effort": allocation.total_effort,
                "overflow_used": allocation.overflow_used,
                "override_applied": allocation.override_applied,
            },
        )
        self._emit(
            "immediate_list_finalized",
            {
                "submission_id": submission_id,
                "items": [
                    {
                        "category_id": i.category_id,
                        "category_name": i.category_name,
                        "score": i.score,
                        "effort": i.effort,
                        "reason": i.reason,
                    }
                    for i in allocation.immediate
                ],
                "total_effort": allocation.total_effort,
            },
        )

    def _emit(self, event_name: str, payload: dict[str, Any]) -> None:
        try:
            self._telemetry(event_name, payload)
        except Exception:
            logger.exception("Telemetry sink failed for event %s", event_name)
