"""Timed action planning for maturity assessment reports."""

from roadmap_allocation.adapter import TimedActionsComponent
from roadmap_allocation.models import Action, AllocationPolicy, AllocationResult, Category, SelectedAction
from roadmap_allocation.scoring import (
    build_roadmap,
    calculate_scores,
    determine_frameworks,
    determine_level,
    effort_points,
)
from roadmap_allocation.solver import ExactTimedActionSolver, GreedyTimedActionSolver, allocate

__all__ = [
    "Action",
    "AllocationPolicy",
    "AllocationResult",
    "Category",
    "ExactTimedActionSolver",
    "GreedyTimedActionSolver",
    "SelectedAction",
    "TimedActionsComponent",
    "allocate",
    "build_roadmap",
    "calculate_scores",
    "determine_frameworks",
    "determine_level",
    "effort_points",
]
