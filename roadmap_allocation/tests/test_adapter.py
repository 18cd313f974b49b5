"""Integration tests for the TimedActionsComponent adapter."""

import logging

import pytest

from roadmap_allocation.adapter import TimedActionsComponent
from roadmap_allocation.config import Settings
from roadmap_allocation.models import AllocationPolicy
from roadmap_allocation.solver import ExactTimedActionSolver

ALLOCATION_RESULT_KEYS = {
    "immediate",
    "short_term",
    "ongoing",
    "rationale",
    "total_effort",
    "overflow_used",
    "override_applied",
    "submission_id",
    "solver_detail",
}


class RecordingSink:
    def __init__(self):
        self.events = []

    def __call__(self, event_name, payload):
        self.events.append((event_name, payload))

    def names(self):
        return [name for name, _ in self.events]

    def payload(self, event_name):
        return next(payload for name, payload in self.events if name == event_name)


@pytest.fixture()
def sink():
    return RecordingSink()


@pytest.fixture()
def component(quiet_settings, sink):
    return TimedActionsComponent(settings=quiet_settings, telemetry=sink)


class TestAdapterContract:
    def test_result_keys(self, component, sample_event):
        result = component.execute(sample_event)
        assert set(result.keys()) == ALLOCATION_RESULT_KEYS

    def test_serialized_entries(self, component, sample_event):
        result = component.execute(sample_event)
        first = result["immediate"][0]
        assert first["category_id"] == "SECURITY"
        assert first["reason"] == "override"
        assert first["effort_points"] == 1

    def test_solver_detail_present(self, component, sample_event):
        detail = component.execute(sample_event)["solver_detail"]
        assert detail["rule"] == "greedy"
        assert detail["status"] == "Complete"
        assert detail["detail"]["category_counts"] == {"SECURITY": 2, "ITSM": 1, "CORE_IT_OPERATIONS": 1}

    def test_submission_id_format(self, component, sample_event):
        submission_id = component.execute(sample_event)["submission_id"]
        assert len(submission_id) == 6
        int(submission_id, 16)

    def test_partition_completeness(self, component, sample_event):
        result = component.execute(sample_event)
        placed = [i["action_id"] for key in ("immediate", "short_term", "ongoing") for i in result[key]]
        expected = {f"{c['id']}:{n}" for c in sample_event["categories"] for n in range(len(c["actions"]))}
        assert len(placed) == len(set(placed))
        assert set(placed) == expected


class TestAdapterDeterminism:
    def test_repeated_calls_identical(self, component, sample_event):
        r1 = component.execute(sample_event)
        r2 = component.execute(sample_event)
        r1.pop("submission_id")
        r2.pop("submission_id")
        assert r1 == r2


class TestAdapterEdgeCases:
    def test_no_categories(self, component):
        result = component.execute({"categories": []})
        assert result["immediate"] == []
        assert result["rationale"] == "No actions added to the 30-day plan"
        assert result["solver_detail"]["status"] == "No Candidate Actions"

    def test_missing_categories_key(self, component):
        assert component.execute({})["immediate"] == []

    def test_malformed_category_skipped(self, component, sample_event, caplog):
        sample_event["categories"].append("not a category")
        with caplog.at_level(logging.WARNING, logger="roadmap_allocation.adapter"):
            result = component.execute(sample_event)
        assert "malformed category" in caplog.text
        assert len(result["immediate"]) == 4

    def test_malformed_actions_contribute_nothing(self, component, sample_event):
        sample_event["categories"].append({"id": "BROKEN", "name": "Broken", "score": 5, "actions": "oops"})
        result = component.execute(sample_event)
        placed = {i["category_id"] for key in ("immediate", "short_term", "ongoing") for i in result[key]}
        assert "BROKEN" not in placed

    @pytest.mark.parametrize("raw_score", [None, "n/a", float("nan"), True])
    def test_invalid_score_treated_as_zero(self, component, raw_score):
        event = {"categories": [{"id": "OPS", "name": "Ops", "score": raw_score, "actions": ["Patch servers"]}]}
        result = component.execute(event)
        assert result["immediate"][0]["score"] == 0
        assert result["immediate"][0]["level"] == "Foundational"

    def test_score_clamped(self, component):
        event = {"categories": [{"id": "OPS", "name": "Ops", "score": 250, "actions": ["Tune"]}]}
        assert component.execute(event)["immediate"][0]["score"] == 100

    def test_missing_id_uses_position(self, component):
        event = {"categories": [{"name": "Nameless", "score": 20, "actions": ["Act"]}]}
        assert component.execute(event)["immediate"][0]["category_id"] == "category_0"

    def test_repeated_category_id_skipped(self, component, caplog):
        event = {
            "categories": [
                {"id": "OPS", "name": "Ops", "score": 20, "actions": ["Patch", "Backup"]},
                {"id": "OPS", "name": "Ops again", "score": 30, "actions": ["Monitor", "Audit"]},
            ]
        }
        with caplog.at_level(logging.WARNING, logger="roadmap_allocation.adapter"):
            result = component.execute(event)
        assert "duplicate id OPS" in caplog.text
        placed = [i for key in ("immediate", "short_term", "ongoing") for i in result[key]]
        assert sorted(i["text"] for i in placed) == ["Backup", "Patch"]
        assert {i["category_name"] for i in placed} == {"Ops"}

    def test_fallback_id_colliding_with_explicit_id_skipped(self, component):
        event = {
            "categories": [
                {"id": "category_1", "name": "First", "score": 20, "actions": ["Patch"]},
                {"name": "Nameless", "score": 30, "actions": ["Audit"]},
            ]
        }
        result = component.execute(event)
        placed = [i for key in ("immediate", "short_term", "ongoing") for i in result[key]]
        assert [i["category_name"] for i in placed] == ["First"]

    def test_below_minimum_logs_warning(self, component, caplog):
        event = {"categories": [{"id": "OPS", "name": "Ops", "score": 20, "actions": [{"text": "Big", "effort": "high"}]}]}
        with caplog.at_level(logging.WARNING, logger="roadmap_allocation.adapter"):
            component.execute(event)
        assert "status below minimum count" in caplog.text.lower()


class TestAdapterTelemetry:
    def test_event_sequence_with_override(self, component, sink, sample_event):
        component.execute(sample_event)
        assert sink.names() == ["override_applied", "action_plan_built", "immediate_list_finalized"]

    def test_event_sequence_without_override(self, component, sink, sample_event):
        sample_event["categories"][0]["score"] = 80
        component.execute(sample_event)
        assert sink.names() == ["action_plan_built", "immediate_list_finalized"]

    def test_plan_built_payload(self, component, sink, sample_event):
        result = component.execute(sample_event)
        payload = sink.payload("action_plan_built")
        assert payload["submission_id"] == result["submission_id"]
        assert payload["overall"] == 49
        assert payload["category_scores"]["SECURITY"] == 35
        assert payload["constants"] == {
            "MAX_30_DAY_EFFORT": 6,
            "MIN_30_DAY_COUNT": 3,
            "MAX_PER_CATEGORY_30": 2,
            "GLOBAL_OVERFLOW_MAX": 1,
        }
        assert payload["counts"] == {"immediate": 4, "short_term": 5, "ongoing": 0}
        assert payload["total_effort"] == 5
        assert payload["override_applied"] is True

    def test_override_payload(self, component, sink, sample_event):
        component.execute(sample_event)
        payload = sink.payload("override_applied")
        assert payload["item"] == {"text": "Implement MFA", "effort": "low"}

    def test_sink_failure_swallowed(self, quiet_settings, sample_event, caplog):
        def failing_sink(event_name, payload):
            raise RuntimeError("sink down")

        component = TimedActionsComponent(settings=quiet_settings, telemetry=failing_sink)
        with caplog.at_level(logging.ERROR, logger="roadmap_allocation.adapter"):
            result = component.execute(sample_event)
        assert len(result["immediate"]) == 4
        assert "Telemetry sink failed" in caplog.text


class TestAdapterConfiguration:
    def test_policy_from_settings(self, sink, sample_event):
        settings = Settings(_env_file=None, max_30_day_effort=3, global_overflow_max=0)
        component = TimedActionsComponent(settings=settings, telemetry=sink)
        assert component.policy.max_30_day_effort == 3
        result = component.execute(sample_event)
        assert result["total_effort"] <= 3

    def test_explicit_policy_wins(self, quiet_settings, sink):
        policy = AllocationPolicy(max_per_category_30=1)
        component = TimedActionsComponent(policy=policy, settings=quiet_settings, telemetry=sink)
        assert component.policy is policy

    def test_exact_solver_via_component(self, quiet_settings, sink, sample_event):
        component = TimedActionsComponent(solver=ExactTimedActionSolver(), settings=quiet_settings, telemetry=sink)
        result = component.execute(sample_event)
        assert result["solver_detail"]["rule"] == "exact"
        assert result["solver_detail"]["status"] == "Optimal"
        assert result["total_effort"] <= 7
        assert any(i["reason"] == "override" for i in result["immediate"])
