"""Data models for the timed action allocation stage."""

from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any

from roadmap_allocation.levels import determine_level


@dataclass
class Action:
    """A single improvement recommendation.

    Parameters
    ----------
    text : str
        Human-readable description.
    effort : str
        Effort label as supplied (``"low"``, ``"medium"``, ``"high"``).
        Unrecognized labels are kept verbatim and costed as medium.
    action_id : str
        Stable identifier. Assigned by the owning :class:`Category` when empty.
    """

    text: str
    effort: str = "medium"
    action_id: str = ""


@dataclass
class Category:
    """A scored capability pillar with its candidate actions.

    Parameters
    ----------
    id : str
        Stable identifier, unique across one assessment.
    name : str
        Display label.
    score : int
        Percentage score in ``[0, 100]``.
    level : str
        Maturity label. Derived from ``score`` when empty.
    actions : list[Action]
        Candidate actions in input order.
    """

    id: str
    name: str
    score: int
    level: str = ""
    actions: list[Action] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Derive the level and assign synthetic ids to unnamed actions.

        Raises
        ------
        ValueError
            If two actions of the category end up with the same id.
        """
        if not self.level:
            self.level = determine_level(self.score)
        self.actions = [
            action if action.action_id else replace(action, action_id=f"{self.id}:{position}")
            for position, action in enumerate(self.actions)
        ]
        counts = Counter(action.action_id for action in self.actions)
        duplicated = sorted(action_id for action_id, count in counts.items() if count > 1)
        if duplicated:
            raise ValueError(f"Category {self.id!r} has duplicate action ids: {', '.join(duplicated)}")


@dataclass
class SelectedAction:
    """An action placed on the roadmap, with its category copied for display."""

    category_id: str
    category_name: str
    score: int
    level: str
    text: str
    effort: str
    effort_points: int
    action_id: str
    reason: str | None = None


@dataclass
class AllocationResult:
    """Partitioned action plan for one assessment.

    Parameters
    ----------
    immediate : list[SelectedAction]
        Next 30 days, each tagged with the reason it was admitted.
    short_term : list[SelectedAction]
        30 to 90 days.
    ongoing : list[SelectedAction]
        Ongoing optimisation for strong categories.
    rationale : str
        ``"; "``-joined trail of allocation decisions.
    total_effort : int
        Effort points consumed by ``immediate``.
    overflow_used : int
        Effort points admitted beyond the base budget.
    override_applied : bool
        Whether the critical category override fired.
    """

    immediate: list[SelectedAction]
    short_term: list[SelectedAction]
    ongoing: list[SelectedAction]
    rationale: str
    total_effort: int = 0
    overflow_used: int = 0
    override_applied: bool = False

    def __post_init__(self) -> None:
        """Validate that no action is placed on the roadmap twice."""
        placed = [*self.immediate, *self.short_term, *self.ongoing]
        counts = Counter((item.category_id, item.action_id) for item in placed)
        duplicated = sorted(f"{key[0]}/{key[1]}" for key, count in counts.items() if count > 1)
        if duplicated:
            raise ValueError(f"actions placed more than once: {', '.join(duplicated)}")


@dataclass(frozen=True)
class AllocationPolicy:
    """Tunable constants of the timed action allocator.

    Parameters
    ----------
    max_30_day_effort : int
        Base effort-point budget of the immediate list.
    min_30_day_count : int
        Minimum number of immediate actions, when reachable.
    max_per_category_30 : int
        Per-category cap during balanced fill.
    global_overflow_max : int
        Effort points allowed beyond the base budget across the immediate list.
    critical_category_id : str
        Category whose low score forces an early action.
    critical_threshold : int
        The override fires when the critical category scores at or below this.
    ongoing_threshold : int
        Remaining actions of categories scoring above this are ongoing work.

    Raises
    ------
    ValueError
        If a budget, cap or count is negative, or a threshold is outside [0, 100].
    """

    max_30_day_effort: int = 6
    min_30_day_count: int = 3
    max_per_category_30: int = 2
    global_overflow_max: int = 1
    critical_category_id: str = "SECURITY"
    critical_threshold: int = 40
    ongoing_threshold: int = 65

    def __post_init__(self) -> None:
        for name in ("max_30_day_effort", "min_30_day_count", "max_per_category_30", "global_overflow_max"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative.")
        for name in ("critical_threshold", "ongoing_threshold"):
            if not (0 <= getattr(self, name) <= 100):
                raise ValueError(f"{name} must be between 0 and 100.")

    @property
    def effort_ceiling(self) -> int:
        """Hard cap on immediate effort, base budget plus overflow."""
        return self.max_30_day_effort + self.global_overflow_max

    def constants(self) -> dict[str, int]:
        """Budget constants in the shape reported to telemetry."""
        return {
            "MAX_30_DAY_EFFORT": self.max_30_day_effort,
            "MIN_30_DAY_COUNT": self.min_30_day_count,
            "MAX_PER_CATEGORY_30": self.max_per_category_30,
            "GLOBAL_OVERFLOW_MAX": self.global_overflow_max,
        }

    @classmethod
    def from_settings(cls, settings: Any) -> "AllocationPolicy":
        """Build a policy from a :class:`roadmap_allocation.config.Settings`."""
        return cls(
            max_30_day_effort=settings.max_30_day_effort,
            min_30_day_count=settings.min_30_day_count,
            max_per_category_30=settings.max_per_category_30,
            global_overflow_max=settings.global_overflow_max,
            critical_category_id=settings.critical_category_id,
            critical_threshold=settings.critical_threshold,
            ongoing_threshold=settings.ongoing_threshold,
        )
