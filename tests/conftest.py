"""Shared fixtures for the exact decision rule tests."""

import pytest

from roadmap_allocation.models import Action, Category


@pytest.fixture()
def sample_categories():
    """Four pillars with the critical one below the override threshold."""
    pillars = [
        ("SECURITY", "Security", 35, [("Implement MFA", "low"), ("Update antivirus", "medium"), ("Security audit", "high")]),
        ("GOVERNANCE", "Governance", 60, [("Document IT policies", "medium"), ("Risk assessment", "high")]),
        ("ITSM", "ITSM", 45, [("Setup service desk", "medium"), ("Define SLAs", "low")]),
        ("CORE_IT_OPERATIONS", "Operations", 55, [("Automate backups", "low"), ("Monitoring setup", "medium")]),
    ]
    return [
        Category(id=cid, name=name, score=score, actions=[Action(text, effort) for text, effort in actions])
        for cid, name, score, actions in pillars
    ]
