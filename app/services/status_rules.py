"""
Project Status Rules Registry

Central, table-driven rules deciding whether a project may move from one
status to another given the state of its child entities. Pure: no database
access, no side effects, identical input gives identical output.

Usage:
    from app.services.status_rules import evaluate_status_change
    result = evaluate_status_change("in_progress", "completed", counts)
    # -> result.can_change, result.blockers, result.warnings

``counts`` maps entity type → status → count::

    {
        "scheduleProjects": {"planned": 2, "in_progress": 1},
        "punchlistItems": {"open": 4, "completed": 9},
        "criticalPunchlistItems": {"open": 1},
        "teamMembers": {"active": 3},
    }

A rule that counts an entity type absent from ``counts`` is not evaluated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.models.project import (
    PROJECT_ACTIVE_STATUSES,
    PROJECT_STATUSES,
    PROJECT_TERMINAL_STATUSES,
)
from app.models.punchlist import PUNCHLIST_UNRESOLVED_STATUSES

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# Enums & Data Classes
# ═════════════════════════════════════════════════════════════════════════════

class Severity(str, Enum):
    BLOCK = "block"
    WARN = "warn"


ANY = None  # wildcard for StatusRule.from_statuses / to_statuses

NON_TERMINAL_STATUSES = frozenset(PROJECT_STATUSES) - PROJECT_TERMINAL_STATUSES


@dataclass(frozen=True)
class StatusRule:
    """One row of the status rule table.

    A rule fires when the transition matches ``from_statuses``/``to_statuses``
    and its condition holds:
      - ``entity`` set: the summed count of ``count_statuses`` for that entity
        is above (``"gt"``) or below (``"lt"``) ``THRESHOLDS[threshold]``
      - ``unchanged``: the transition keeps the same status
      - otherwise: always
    """
    rule_id: str
    severity: Severity
    message: str
    from_statuses: frozenset[str] | None = ANY
    to_statuses: frozenset[str] | None = ANY
    entity: str | None = None
    count_statuses: frozenset[str] = frozenset()
    threshold: str | None = None
    comparison: str = "gt"
    unchanged: bool = False

    def applies_to(self, current_status: str, new_status: str) -> bool:
        if self.from_statuses is not ANY and current_status not in self.from_statuses:
            return False
        if self.to_statuses is not ANY and new_status not in self.to_statuses:
            return False
        if self.unchanged:
            return current_status == new_status
        return True


@dataclass
class StatusViolation:
    """Single status rule violation."""
    rule_id: str
    severity: Severity
    message: str
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "severity": self.severity.value,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class StatusValidationResult:
    """Outcome of evaluating every rule for one requested transition."""
    current_status: str
    new_status: str
    can_change: bool
    violations: list[StatusViolation] = field(default_factory=list)
    child_entity_counts: dict[str, dict[str, int]] = field(default_factory=dict)

    @property
    def blockers(self) -> list[str]:
        return [v.message for v in self.violations if v.severity == Severity.BLOCK]

    @property
    def warnings(self) -> list[str]:
        return [v.message for v in self.violations if v.severity == Severity.WARN]

    def has_rule(self, rule_id: str) -> bool:
        return any(v.rule_id == rule_id for v in self.violations)

    def to_dict(self) -> dict:
        return {
            "canChange": self.can_change,
            "currentStatus": self.current_status,
            "newStatus": self.new_status,
            "warnings": self.warnings,
            "blockers": self.blockers,
            "violations": [v.to_dict() for v in self.violations],
            "childEntityCounts": self.child_entity_counts,
        }


# ═════════════════════════════════════════════════════════════════════════════
# Threshold Configuration
# ═════════════════════════════════════════════════════════════════════════════

THRESHOLDS: dict[str, Any] = {
    # Transition rules
    "complete_max_open_schedule_projects": 0,       # above → cascade warning
    "complete_max_critical_punchlist_items": 0,     # above → block completion
    "cancel_max_in_progress_schedule_projects": 0,  # above → warning
    "reopen_max_completed_schedule_projects": 0,    # above → block leaving cancelled
    "activate_min_active_team_members": 1,          # below → warning

    # Status summary health indicators
    "health_schedule_on_track_min_pct": 75,
    "health_good_max_critical_items": 0,
    "health_fair_min_pct": 50,
    "health_fair_max_critical_items": 2,
    "punchlist_manageable_max_open_items": 5,
    "punchlist_manageable_max_critical_items": 0,
}


# ═════════════════════════════════════════════════════════════════════════════
# Rule Table
# ═════════════════════════════════════════════════════════════════════════════

STATUS_RULES: tuple[StatusRule, ...] = (
    StatusRule(
        rule_id="RULE-PS-01",
        severity=Severity.WARN,
        to_statuses=frozenset({"completed"}),
        entity="scheduleProjects",
        count_statuses=frozenset({"planned", "in_progress", "delayed"}),
        threshold="complete_max_open_schedule_projects",
        message="{count} schedule project(s) are not completed and will be marked completed",
    ),
    StatusRule(
        rule_id="RULE-PS-02",
        severity=Severity.BLOCK,
        to_statuses=frozenset({"completed"}),
        entity="criticalPunchlistItems",
        count_statuses=PUNCHLIST_UNRESOLVED_STATUSES,
        threshold="complete_max_critical_punchlist_items",
        message="{count} critical punchlist item(s) must be resolved first",
    ),
    StatusRule(
        rule_id="RULE-PS-03",
        severity=Severity.WARN,
        to_statuses=frozenset({"cancelled"}),
        entity="scheduleProjects",
        count_statuses=frozenset({"in_progress"}),
        threshold="cancel_max_in_progress_schedule_projects",
        message="{count} schedule project(s) are in progress and will be cancelled",
    ),
    StatusRule(
        rule_id="RULE-PS-04",
        severity=Severity.BLOCK,
        from_statuses=frozenset({"cancelled"}),
        to_statuses=NON_TERMINAL_STATUSES,
        entity="scheduleProjects",
        count_statuses=frozenset({"completed"}),
        threshold="reopen_max_completed_schedule_projects",
        message="Cannot reactivate a cancelled project with {count} completed schedule project(s)",
    ),
    StatusRule(
        rule_id="RULE-PS-05",
        severity=Severity.BLOCK,
        from_statuses=frozenset({"completed"}),
        to_statuses=frozenset({"cancelled"}),
        message="A completed project cannot be cancelled",
    ),
    StatusRule(
        rule_id="RULE-PS-06",
        severity=Severity.WARN,
        from_statuses=frozenset({"completed"}),
        to_statuses=NON_TERMINAL_STATUSES,
        message="Reopening a completed project; completed schedule projects stay completed",
    ),
    StatusRule(
        rule_id="RULE-PS-07",
        severity=Severity.WARN,
        to_statuses=PROJECT_ACTIVE_STATUSES,
        entity="teamMembers",
        count_statuses=frozenset({"active"}),
        threshold="activate_min_active_team_members",
        comparison="lt",
        message="Project has no active team members assigned",
    ),
    StatusRule(
        rule_id="RULE-PS-08",
        severity=Severity.WARN,
        unchanged=True,
        message="Project is already {new_status}",
    ),
)

# Rules that no override flag may bypass
MANDATORY_RULES = frozenset({"RULE-PS-05"})


# ═════════════════════════════════════════════════════════════════════════════
# Evaluation
# ═════════════════════════════════════════════════════════════════════════════

def _count(counts: dict, entity: str, statuses) -> int:
    by_status = counts.get(entity) or {}
    return sum(int(by_status.get(s, 0) or 0) for s in statuses)


def _check(rule: StatusRule, current_status: str, new_status: str, counts: dict):
    """Return a StatusViolation when *rule* fires, else None."""
    if not rule.applies_to(current_status, new_status):
        return None

    details: dict = {"from": current_status, "to": new_status}
    count = None
    if rule.entity is not None:
        if rule.entity not in counts:
            return None
        count = _count(counts, rule.entity, rule.count_statuses)
        limit = THRESHOLDS[rule.threshold]
        fired = count > limit if rule.comparison == "gt" else count < limit
        if not fired:
            return None
        details.update({"entity": rule.entity, "count": count, "threshold": limit})

    message = rule.message.format(
        count=count, current_status=current_status, new_status=new_status,
    )
    return StatusViolation(rule.rule_id, rule.severity, message, details)


def evaluate_status_change(
    current_status: str,
    new_status: str,
    child_entity_counts: dict | None = None,
    *,
    skip_rules: frozenset[str] | set[str] = frozenset(),
) -> StatusValidationResult:
    """Run the rule table for one requested project transition.

    Args:
        current_status: Status the project has now.
        new_status: Requested status.
        child_entity_counts: entity type → status → count.
        skip_rules: Rule ids to leave out. ``MANDATORY_RULES`` always run.

    Returns:
        StatusValidationResult. ``can_change`` is False iff a BLOCK fired.
        Unknown statuses produce a blocker, never an exception.
    """
    counts = child_entity_counts or {}

    unknown = [s for s in (current_status, new_status) if s not in PROJECT_STATUSES]
    if unknown:
        return StatusValidationResult(
            current_status=current_status,
            new_status=new_status,
            can_change=False,
            violations=[
                StatusViolation(
                    rule_id="RULE-PS-00",
                    severity=Severity.BLOCK,
                    message=f"Unknown project status '{s}'",
                    details={"status": s, "allowed": list(PROJECT_STATUSES)},
                )
                for s in unknown
            ],
            child_entity_counts=counts,
        )

    violations = []
    for rule in STATUS_RULES:
        if rule.rule_id in skip_rules and rule.rule_id not in MANDATORY_RULES:
            continue
        violation = _check(rule, current_status, new_status, counts)
        if violation is not None:
            violations.append(violation)

    can_change = not any(v.severity == Severity.BLOCK for v in violations)
    if not can_change:
        logger.debug(
            "Status change %s -> %s blocked by %s",
            current_status, new_status,
            [v.rule_id for v in violations if v.severity == Severity.BLOCK],
        )

    return StatusValidationResult(
        current_status=current_status,
        new_status=new_status,
        can_change=can_change,
        violations=violations,
        child_entity_counts=counts,
    )

