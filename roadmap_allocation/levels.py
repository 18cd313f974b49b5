"""Maturity levels and the roadmap phase each level belongs to."""

MATURITY_LEVELS = [
    (1.5, "Foundational"),
    (2.5, "Developing"),
    (3.5, "Established"),
    (4.5, "Advanced"),
]
TOP_LEVEL = "Optimised"

LEVEL_PHASES = {
    "Foundational": 1,
    "Developing": 1,
    "Established": 2,
    "Advanced": 2,
    "Optimised": 3,
}


def maturity_category(score: float) -> str:
    """Map a score on the 0-5 scale to its maturity label."""
    for upper_bound, label in MATURITY_LEVELS:
        if score <= upper_bound:
            return label
    return TOP_LEVEL


def determine_level(score: float) -> str:
    """Map a percentage score to its maturity label."""
    return maturity_category(score / 20)


def roadmap_phase(level: str) -> int:
    """Roadmap phase (1, 2 or 3) for a maturity label.

    Unknown labels fall into phase 1.
    """
    return LEVEL_PHASES.get(level, 1)
