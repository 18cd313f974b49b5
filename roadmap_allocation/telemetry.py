"""Fire-and-forget telemetry for built action plans.

Events are logged in console mode, and ``action_plan_built`` is posted to a
chat webhook when one is configured. Delivery failures never reach callers.
"""

import json
import logging
from typing import Any

import requests

from roadmap_allocation.config import Settings, get_settings

logger = logging.getLogger(__name__)

WEBHOOK_EVENT = "action_plan_built"
WEAK_SCORE = 50


def format_webhook_text(payload: dict[str, Any]) -> str:
    """Render an ``action_plan_built`` payload as a chat message."""
    weak = [f"{cid}({score})" for cid, score in payload.get("category_scores", {}).items() if score <= WEAK_SCORE]
    counts = payload.get("counts", {})
    lines = [
        "Assessment action plan built",
        f"Submission: {payload.get('submission_id')}",
        f"Immediate: {counts.get('immediate', 0)} "
        f"(effort {payload.get('total_effort', 0)}, overflow {payload.get('overflow_used', 0)})",
        f"Critical override: {str(payload.get('override_applied', False)).lower()}",
        f"Weak categories: {', '.join(weak)}" if weak else "All categories performing well",
    ]
    return "\n".join(lines)


def emit_telemetry(event_name: str, payload: dict[str, Any], settings: Settings | None = None) -> bool:
    """Emit one telemetry event.

    Parameters
    ----------
    event_name : str
        Event identifier, e.g. ``"action_plan_built"``.
    payload : dict[str, Any]
        JSON-serializable event body.
    settings : Settings, optional
        Telemetry configuration. Defaults to :func:`get_settings`.

    Returns
    -------
    bool
        ``True`` if the event was logged or delivered, ``False`` if it was
        skipped or delivery failed.
    """
    settings = settings or get_settings()

    if settings.telemetry_console:
        logger.info("Telemetry [%s]: %s", event_name, json.dumps(payload, indent=2, default=str))
        return True

    if not settings.telemetry_webhook_url or event_name != WEBHOOK_EVENT:
        logger.debug("Telemetry [%s] not forwarded", event_name)
        return False

    try:
        response = requests.post(
            settings.telemetry_webhook_url,
            json={"text": format_webhook_text(payload)},
            timeout=settings.telemetry_timeout,
        )
    except requests.RequestException as exc:
        logger.warning("Telemetry webhook failed: %s", exc)
        return False
    except Exception:
        logger.exception("Unexpected error sending telemetry event %s", event_name)
        return False

    if not response.ok:
        logger.warning("Telemetry webhook returned HTTP %s: %s", response.status_code, response.text[:200])
        return False
    return True
