"""
Tests for the project status rule table (app/services/status_rules.py).

Pure evaluation, no database:
    - each rule fires on its transition and count condition only
    - severity decides can_change
    - unknown statuses are reported, never raised
    - skip_rules cannot bypass mandatory rules
    - identical input gives identical output
"""

import pytest

from app.models.project import PROJECT_STATUSES
from app.services.status_rules import (
    MANDATORY_RULES,
    NON_TERMINAL_STATUSES,
    STATUS_RULES,
    THRESHOLDS,
    Severity,
    evaluate_status_change,
)


def _counts(schedule=None, punchlist=None, critical=None, members=1):
    return {
        "scheduleProjects": schedule or {},
        "punchlistItems": punchlist or {},
        "criticalPunchlistItems": critical or {},
        "teamMembers": {"active": members},
    }


class TestRuleTable:
    def test_rule_ids_unique(self):
        ids = [r.rule_id for r in STATUS_RULES]
        assert len(ids) == len(set(ids))

    def test_every_threshold_referenced_exists(self):
        for rule in STATUS_RULES:
            if rule.entity is not None:
                assert rule.threshold in THRESHOLDS, rule.rule_id

    def test_completed_to_cancelled_is_mandatory(self):
        assert "RULE-PS-05" in MANDATORY_RULES


class TestCompletion:
    def test_open_schedule_projects_warn_but_allow(self):
        result = evaluate_status_change(
            "in_progress", "completed",
            _counts(schedule={"planned": 2, "in_progress": 1}),
        )
        assert result.can_change is True
        assert result.has_rule("RULE-PS-01")
        assert result.warnings == [
            "3 schedule project(s) are not completed and will be marked completed"
        ]
        assert result.blockers == []

    def test_unresolved_critical_punchlist_blocks(self):
        result = evaluate_status_change(
            "in_progress", "completed",
            _counts(critical={"open": 1, "pending_review": 1}),
        )
        assert result.can_change is False
        assert result.blockers == ["2 critical punchlist item(s) must be resolved first"]

    def test_resolved_critical_punchlist_does_not_block(self):
        result = evaluate_status_change(
            "in_progress", "completed",
            _counts(critical={"completed": 4, "rejected": 1}),
        )
        assert result.can_change is True
        assert not result.has_rule("RULE-PS-02")

    def test_all_schedule_projects_done_gives_no_violations(self):
        result = evaluate_status_change(
            "on_track", "completed", _counts(schedule={"completed": 3, "cancelled": 1}),
        )
        assert result.can_change is True
        assert result.violations == []


class TestCancellation:
    def test_cancel_with_in_progress_work_warns(self):
        result = evaluate_status_change(
            "in_progress", "cancelled", _counts(schedule={"in_progress": 2}),
        )
        assert result.can_change is True
        assert result.warnings == [
            "2 schedule project(s) are in progress and will be cancelled"
        ]

    def test_completed_project_cannot_be_cancelled(self):
        result = evaluate_status_change("completed", "cancelled", _counts())
        assert result.can_change is False
        assert result.blockers == ["A completed project cannot be cancelled"]

    def test_mandatory_rule_survives_skip(self):
        all_ids = frozenset(r.rule_id for r in STATUS_RULES)
        result = evaluate_status_change(
            "completed", "cancelled", _counts(), skip_rules=all_ids,
        )
        assert result.can_change is False
        assert result.has_rule("RULE-PS-05")


class TestReopen:
    def test_reactivating_cancelled_with_completed_children_blocks(self):
        result = evaluate_status_change(
            "cancelled", "in_progress", _counts(schedule={"completed": 1, "cancelled": 2}),
        )
        assert result.can_change is False
        assert result.has_rule("RULE-PS-04")

    def test_reactivating_cancelled_without_completed_children_allowed(self):
        result = evaluate_status_change(
            "cancelled", "not_started", _counts(schedule={"cancelled": 2}),
        )
        assert result.can_change is True

    def test_reopening_completed_warns(self):
        result = evaluate_status_change("completed", "in_progress", _counts())
        assert result.can_change is True
        assert result.has_rule("RULE-PS-06")


class TestTeamAndNoop:
    def test_activating_without_active_members_warns(self):
        result = evaluate_status_change("not_started", "in_progress", _counts(members=0))
        assert result.can_change is True
        assert result.warnings == ["Project has no active team members assigned"]

    def test_activating_with_members_is_clean(self):
        result = evaluate_status_change("not_started", "in_progress", _counts(members=2))
        assert result.violations == []

    def test_on_hold_does_not_count_members(self):
        result = evaluate_status_change("in_progress", "on_hold", _counts(members=0))
        assert not result.has_rule("RULE-PS-07")

    def test_same_status_warns(self):
        result = evaluate_status_change("on_hold", "on_hold", _counts())
        assert result.can_change is True
        assert result.warnings == ["Project is already on_hold"]


class TestEdgeCases:
    def test_unknown_new_status_is_blocker_not_exception(self):
        result = evaluate_status_change("in_progress", "demolished", _counts())
        assert result.can_change is False
        assert result.blockers == ["Unknown project status 'demolished'"]
        assert result.violations[0].rule_id == "RULE-PS-00"

    def test_unknown_current_status_is_blocker(self):
        result = evaluate_status_change("archived", "in_progress", _counts())
        assert result.can_change is False

    def test_missing_counts_skip_count_based_rules(self):
        result = evaluate_status_change("in_progress", "completed", None)
        assert result.can_change is True
        assert result.violations == []

    def test_skip_rules_drops_non_mandatory_blockers(self):
        result = evaluate_status_change(
            "in_progress", "completed", _counts(critical={"open": 3}),
            skip_rules={"RULE-PS-02"},
        )
        assert result.can_change is True

    def test_deterministic(self):
        counts = _counts(schedule={"planned": 1}, critical={"open": 1}, members=0)
        first = evaluate_status_change("in_progress", "completed", counts).to_dict()
        second = evaluate_status_change("in_progress", "completed", counts).to_dict()
        assert first == second

    def test_to_dict_shape(self):
        data = evaluate_status_change("in_progress", "completed", _counts()).to_dict()
        assert set(data) == {
            "canChange", "currentStatus", "newStatus", "warnings",
            "blockers", "violations", "childEntityCounts",
        }

    @pytest.mark.parametrize("status", PROJECT_STATUSES)
    def test_can_change_iff_no_block(self, status):
        result = evaluate_status_change(
            "in_progress", status, _counts(schedule={"in_progress": 1}, critical={"open": 1}),
        )
        blocks = [v for v in result.violations if v.severity == Severity.BLOCK]
        assert result.can_change is (not blocks)


class TestNonTerminalPairs:
    @pytest.mark.parametrize("current", sorted(NON_TERMINAL_STATUSES))
    @pytest.mark.parametrize("new", sorted(NON_TERMINAL_STATUSES))
    def test_never_blocked(self, current, new):
        counts = _counts(
            schedule={"planned": 2, "in_progress": 3, "completed": 4, "delayed": 1},
            critical={"open": 5},
            members=0,
        )
        result = evaluate_status_change(current, new, counts)
        assert result.can_change is True
        assert result.blockers == []
