"""Assessment scoring: effort costs, pillar scores, roadmap phases and frameworks.

Turns raw questionnaire answers into the scored :class:`Category` list the
allocator consumes, then derives the phased roadmap and the framework tiers
reported next to the action plan.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from roadmap_allocation.levels import determine_level, maturity_category, roadmap_phase
from roadmap_allocation.models import Action, Category

logger = logging.getLogger(__name__)

EFFORT_POINTS = {"low": 1, "medium": 2, "high": 3}
DEFAULT_EFFORT = "medium"

PHASE_META = {
    1: {
        "title": "Phase 1 - Foundations",
        "description": "Address foundational capability gaps that affect stability, risk, and predictability.",
    },
    2: {
        "title": "Phase 2 - Stabilisation",
        "description": "Tighten processes, improve visibility, and lift consistency across operations.",
    },
    3: {
        "title": "Phase 3 - Optimisation",
        "description": "Increase automation, streamline operations, and enhance efficiency and scalability.",
    },
}

SECURITY_ID = "SECURITY"
GOVERNANCE_ID = "GOVERNANCE"
OPERATIONS_ID = "CORE_IT_OPERATIONS"


@dataclass
class ScoreSummary:
    """Overall score and per-pillar categories for one submission."""

    overall: int
    categories: list[Category]


def effort_points(effort: Any) -> int:
    """Convert an effort label to its cost in effort points.

    Parameters
    ----------
    effort : Any
        ``"low"``, ``"medium"`` or ``"high"``, case-insensitive.

    Returns
    -------
    int
        1, 2 or 3. Missing or unrecognized labels cost as medium.
    """
    if not isinstance(effort, str):
        return EFFORT_POINTS[DEFAULT_EFFORT]
    return EFFORT_POINTS.get(effort.strip().lower(), EFFORT_POINTS[DEFAULT_EFFORT])


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalise_actions(raw_actions: Iterable[Any] | None) -> list[Action]:
    """Coerce configured action templates into :class:`Action` objects.

    Strings become medium-effort actions; mappings contribute ``text`` and
    ``effort``. Any other entry is dropped.

    Parameters
    ----------
    raw_actions : Iterable[Any] | None
        Action templates as found in configuration or request payloads.

    Returns
    -------
    list[Action]
    """
    actions: list[Action] = []
    for raw in raw_actions or []:
        if isinstance(raw, str):
            actions.append(Action(text=raw, effort=DEFAULT_EFFORT))
        elif isinstance(raw, Mapping):
            actions.append(Action(text=str(raw.get("text") or ""), effort=raw.get("effort") or DEFAULT_EFFORT))
        else:
            logger.warning("Dropping malformed action of type %s", type(raw).__name__)
    return actions


def _answer_value(raw: Any) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return max(0.0, min(100.0, value))


def _question_weight(raw: Any) -> float:
    try:
        weight = float(raw)
    except (TypeError, ValueError):
        return 1.0
    # Zero and NaN fall back to the default weight.
    return weight if weight and not math.isnan(weight) else 1.0


def calculate_scores(
    answers: Mapping[str, Any],
    questions: Mapping[str, Mapping[str, Any]],
    pillars: Mapping[str, Mapping[str, Any]],
) -> ScoreSummary:
    """Compute weighted pillar scores and the overall score.

    Each pillar score is the weighted mean of its questions' answers, read from
    ``answers["q<question id>"]`` and clamped to ``[0, 100]``. The pillar's
    actions are the templates configured for its maturity level.

    Parameters
    ----------
    answers : Mapping[str, Any]
        Raw answers keyed ``"q<id>"``.
    questions : Mapping[str, Mapping[str, Any]]
        Question definitions keyed by id, each with an optional ``weight``.
    pillars : Mapping[str, Mapping[str, Any]]
        Pillar definitions with ``id``, ``name``, ``question_ids`` and
        ``level_action_templates``.

    Returns
    -------
    ScoreSummary

    Raises
    ------
    ValueError
        If a pillar references a question that is not defined.
    """
    categories: list[Category] = []
    for pillar in pillars.values():
        total_weighted = 0.0
        total_weight = 0.0
        for question_id in pillar.get("question_ids", []):
            question = questions.get(str(question_id))
            if question is None:
                raise ValueError(f"Pillar {pillar['id']!r} references unknown question {question_id!r}.")
            weight = _question_weight(question.get("weight"))
            total_weighted += _answer_value(answers.get(f"q{question.get('id', question_id)}")) * weight
            total_weight += weight

        score = round_half_up(total_weighted / total_weight) if total_weight > 0 else 0
        level = determine_level(score)
        templates = pillar.get("level_action_templates", {}).get(level, [])
        categories.append(
            Category(
                id=str(pillar["id"]),
                name=str(pillar.get("name", pillar["id"])),
                score=score,
                level=level,
                actions=normalise_actions(templates),
            )
        )

    overall = round_half_up(sum(c.score for c in categories) / len(categories)) if categories else 0
    logger.info("Scored %d pillars: overall=%d", len(categories), overall)
    return ScoreSummary(overall=overall, categories=categories)


@dataclass
class RoadmapEntry:
    """One pillar placed on the phased roadmap."""

    category_id: str
    name: str
    average_score: float
    percentage_score: int
    maturity: str
    phase_id: int
    actions: list[Action] = field(default_factory=list)


@dataclass
class RoadmapPhase:
    """A roadmap phase and the pillars assigned to it."""

    id: int
    title: str
    description: str
    pillars: list[RoadmapEntry] = field(default_factory=list)


@dataclass
class FrameworkRecommendation:
    """A recommended compliance framework tier with the score that chose it."""

    framework: str
    tier: str | None
    guidance: str | None
    timeline: str | None
    next_steps: list[str]
    rationale: str


def build_roadmap(categories: Iterable[Category]) -> dict[int, RoadmapPhase]:
    """Group scored categories into the three roadmap phases.

    The phase follows from the maturity label of the percentage score, so the
    phases always hold every category exactly once, in input order.

    Parameters
    ----------
    categories : Iterable[Category]
        Scored categories.

    Returns
    -------
    dict[int, RoadmapPhase]
        Phases keyed 1, 2 and 3. Phases without pillars are still present.
    """
    phases = {phase_id: RoadmapPhase(id=phase_id, **meta) for phase_id, meta in PHASE_META.items()}
    for category in categories:
        average = category.score / 20
        maturity = maturity_category(average)
        phase_id = roadmap_phase(maturity)
        phases[phase_id].pillars.append(
            RoadmapEntry(
                category_id=category.id,
                name=category.name,
                average_score=average,
                percentage_score=category.score,
                maturity=maturity,
                phase_id=phase_id,
                actions=list(category.actions),
            )
        )
    return phases


def _recommend(framework: str, tier: Mapping[str, Any], rationale: str) -> FrameworkRecommendation:
    return FrameworkRecommendation(
        framework=framework,
        tier=tier.get("posture"),
        guidance=tier.get("guidance"),
        timeline=tier.get("timeline"),
        next_steps=list(tier.get("next_steps") or []),
        rationale=rationale,
    )


def determine_frameworks(
    categories: Iterable[Category],
    frameworks_data: Mapping[str, Mapping[str, Mapping[str, Any]]],
) -> list[FrameworkRecommendation]:
    """Pick a tier of each compliance framework from the pillar scores.

    * Essential 8 follows the security score: below 30 is ``low``, up to and
      including 60 is ``medium``, above is ``high``.
    * SMB1001 follows the rounded mean of operations and governance: below 40
      is ``low``, up to and including 65 is ``medium``, above is ``high``.
    * ISO 27001 follows the rounded mean of security and governance and is
      only recommended from 50: up to and including 70 is ``medium``, above
      is ``high``.

    Missing pillars score 0.

    Parameters
    ----------
    categories : Iterable[Category]
        Scored categories.
    frameworks_data : Mapping
        Tier content keyed by framework (``essential8``, ``smb1001``,
        ``iso27001``) then band (``low``, ``medium``, ``high``). Each tier may
        carry ``posture``, ``guidance``, ``timeline`` and ``next_steps``.

    Returns
    -------
    list[FrameworkRecommendation]
        Essential 8 and SMB1001 always, then ISO 27001 when its gate is met.

    Raises
    ------
    KeyError
        If ``frameworks_data`` lacks a tier that the scores select.
    """
    scores = {category.id: category.score for category in categories}
    security = scores.get(SECURITY_ID, 0)
    governance = scores.get(GOVERNANCE_ID, 0)
    operations = scores.get(OPERATIONS_ID, 0)

    if security < 30:
        band, focus = "low", "Essential 8 Level 1 focus"
    elif security <= 60:
        band, focus = "medium", "Essential 8 Level 1-2 transition"
    else:
        band, focus = "high", "Essential 8 Level 2 progression"
    recommendations = [
        _recommend("Essential 8", frameworks_data["essential8"][band], f"Basis: SECURITY {security}% -> {focus}")
    ]

    ops_gov = round_half_up((operations + governance) / 2)
    if ops_gov < 40:
        band, focus = "low", "Build foundations first"
    elif ops_gov <= 65:
        band, focus = "medium", "Bronze tier feasible"
    else:
        band, focus = "high", "Silver/Gold achievable"
    recommendations.append(
        _recommend(
            "SMB1001",
            frameworks_data["smb1001"][band],
            f"Basis: OPERATIONS+GOVERNANCE avg {ops_gov}% -> {focus}",
        )
    )

    sec_gov = round_half_up((security + governance) / 2)
    if sec_gov >= 50:
        band, focus = ("medium", "Medium-term goal") if sec_gov <= 70 else ("high", "Near-term achievable")
        recommendations.append(
            _recommend(
                "ISO 27001",
                frameworks_data["iso27001"][band],
                f"Basis: SECURITY+GOVERNANCE avg {sec_gov}% -> {focus}",
            )
        )
    else:
        logger.debug("ISO 27001 not recommended: SECURITY+GOVERNANCE avg %d%%", sec_gov)

    return recommendations
