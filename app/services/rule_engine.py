"""
Priority-ordered rule evaluation.

Rules are considered in ascending priority (ties keep input order), only
when enabled, and only when their source scope is empty or equals the
entry's source type. The first predicate that holds wins. Evaluation
reads rules and entries and never writes to them.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from app.models.import_source import SourceType
from app.models.rule import MappingRule
from app.services import rule_matcher


@dataclass(frozen=True)
class MappingResult:
    is_matched: bool
    rule: Optional[MappingRule] = None
    project_id: Optional[int] = None
    task_id: Optional[int] = None

    @classmethod
    def matched(cls, rule: MappingRule) -> "MappingResult":
        return cls(
            is_matched=True,
            rule=rule,
            project_id=rule.timelog_project_id,
            task_id=rule.timelog_task_id,
        )

    @classmethod
    def unmatched(cls) -> "MappingResult":
        return cls(is_matched=False)


def entry_source_type(entry: Any) -> SourceType:
    """Source type of the entry's import source; worklog API when unknown."""
    source = getattr(entry, "import_source", None)
    if source is None or source.source_type is None:
        return SourceType.tempo
    return SourceType(source.source_type)


def ordered_rules(rules: Iterable[MappingRule]) -> list[MappingRule]:
    """Enabled rules in evaluation order. `sorted` is stable, so ties keep input order."""
    return sorted((r for r in rules if r.is_enabled), key=lambda r: r.priority)


def applies_to(rule: MappingRule, source_type: SourceType) -> bool:
    return rule.source_type is None or SourceType(rule.source_type) == source_type


def evaluate(rules: Iterable[MappingRule], entry: Any) -> MappingResult:
    source_type = entry_source_type(entry)
    for rule in ordered_rules(rules):
        if not applies_to(rule, source_type):
            continue
        if rule_matcher.matches(rule, entry):
            return MappingResult.matched(rule)
    return MappingResult.unmatched()


def matches(rule: MappingRule, entry: Any) -> bool:
    """Predicate check alone, for rule previews. Ignores enabled, priority and scope."""
    return rule_matcher.matches(rule, entry)
