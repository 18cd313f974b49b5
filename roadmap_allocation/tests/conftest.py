"""Shared fixtures for roadmap allocation tests."""

import pytest

from roadmap_allocation.config import Settings
from roadmap_allocation.models import Action, Category


def make_category(category_id, name, score, actions):
    """Category built from ``(text, effort)`` pairs."""
    return Category(
        id=category_id,
        name=name,
        score=score,
        actions=[Action(text=text, effort=effort) for text, effort in actions],
    )


@pytest.fixture()
def low_security_categories():
    """Critical category below the override threshold."""
    return [
        make_category(
            "SECURITY",
            "Security",
            35,
            [("Implement MFA", "low"), ("Update antivirus", "medium"), ("Security audit", "high")],
        ),
        make_category("GOVERNANCE", "Governance", 60, [("Document IT policies", "medium"), ("Risk assessment", "high")]),
        make_category("ITSM", "ITSM", 45, [("Setup service desk", "medium"), ("Define SLAs", "low")]),
        make_category(
            "CORE_IT_OPERATIONS", "Operations", 55, [("Automate backups", "low"), ("Monitoring setup", "medium")]
        ),
    ]


@pytest.fixture()
def balanced_categories():
    """All categories scoring 50-60 with two actions each."""
    return [
        make_category("SECURITY", "Security", 55, [("Implement MFA", "low"), ("Update antivirus", "medium")]),
        make_category("GOVERNANCE", "Governance", 50, [("Document IT policies", "medium"), ("Risk assessment", "high")]),
        make_category("ITSM", "ITSM", 60, [("Setup service desk", "medium"), ("Define SLAs", "low")]),
        make_category(
            "CORE_IT_OPERATIONS", "Operations", 52, [("Automate backups", "low"), ("Monitoring setup", "medium")]
        ),
    ]


@pytest.fixture()
def scarce_categories():
    """Mostly high-effort actions, too costly to reach the minimum count."""
    return [
        make_category("SECURITY", "Security", 60, [("Security audit", "high"), ("Penetration test", "high")]),
        make_category("GOVERNANCE", "Governance", 45, [("Compliance review", "high"), ("Policy overhaul", "high")]),
        make_category("ITSM", "ITSM", 40, [("ITSM platform migration", "high"), ("Process redesign", "medium")]),
        make_category(
            "CORE_IT_OPERATIONS",
            "Operations",
            50,
            [("Infrastructure overhaul", "high"), ("Automation setup", "medium")],
        ),
    ]


@pytest.fixture()
def quiet_settings():
    """Settings with every telemetry channel switched off."""
    return Settings(_env_file=None, telemetry_webhook_url=None, telemetry_console=False)


@pytest.fixture()
def sample_event(low_security_categories):
    """Pipeline event with categories serialized as plain dicts."""
    categories = [
        {
            "id": c.id,
            "name": c.name,
            "score": c.score,
            "level": c.level,
            "actions": [{"text": a.text, "effort": a.effort} for a in c.actions],
        }
        for c in low_security_categories
    ]
    return {"categories": categories, "overall": 49}
