"""
Mapping rule administration.

Rules are plain rows; evaluation lives in `rule_engine`. Writes here
validate the target and, for regex rules, that the pattern compiles.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import regex
from sqlalchemy.orm import Session

from app.core.errors import InvalidRulePatternError
from app.models.rule import MappingRule, MatchOperator
from app.services.classification import get_rule
from app.services.entries import resolve_target


@dataclass
class RuleInput:
    name: str
    match_field: str
    match_operator: MatchOperator
    match_value: str
    timelog_project_id: int
    timelog_task_id: Optional[int] = None
    source_type: Optional[str] = None
    priority: int = 0


def _validate(db: Session, data: RuleInput) -> None:
    resolve_target(db, data.timelog_project_id, data.timelog_task_id)
    if MatchOperator(data.match_operator) == MatchOperator.regex:
        try:
            regex.compile(data.match_value, flags=regex.IGNORECASE)
        except regex.error as exc:
            raise InvalidRulePatternError(data.match_value, str(exc)) from exc


def _apply(rule: MappingRule, data: RuleInput) -> None:
    rule.name = data.name
    rule.match_field = data.match_field
    rule.match_operator = data.match_operator
    rule.match_value = data.match_value
    rule.timelog_project_id = data.timelog_project_id
    rule.timelog_task_id = data.timelog_task_id
    rule.source_type = data.source_type
    rule.priority = data.priority


def list_rules(db: Session) -> list[MappingRule]:
    return db.query(MappingRule).order_by(MappingRule.priority, MappingRule.id).all()


def create_rule(db: Session, data: RuleInput) -> MappingRule:
    _validate(db, data)
    rule = MappingRule(is_enabled=True)
    _apply(rule, data)
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def update_rule(db: Session, rule_id: int, data: RuleInput) -> MappingRule:
    rule = get_rule(db, rule_id)
    _validate(db, data)
    _apply(rule, data)
    db.commit()
    db.refresh(rule)
    return rule


def delete_rule(db: Session, rule_id: int) -> None:
    rule = get_rule(db, rule_id)
    db.delete(rule)
    db.commit()


def set_enabled(db: Session, rule_id: int, enabled: bool) -> MappingRule:
    rule = get_rule(db, rule_id)
    rule.is_enabled = enabled
    db.commit()
    db.refresh(rule)
    return rule


def move_priority(db: Session, rule_id: int, direction: int) -> list[MappingRule]:
    """Swap places with the neighbour above (-1) or below (+1). Edges are no-ops.

    Different priorities are swapped. Afterwards any rule that no longer sits
    strictly after its predecessor is bumped just past it, so ties (ordered
    by id) cannot undo the move.
    """
    rules = list_rules(db)
    index = next((i for i, r in enumerate(rules) if r.id == rule_id), None)
    if index is None:
        get_rule(db, rule_id)  # raises RuleNotFoundError
    swap = index + (1 if direction > 0 else -1)
    if 0 <= swap < len(rules):
        a, b = rules[index], rules[swap]
        a.priority, b.priority = b.priority, a.priority
        rules[index], rules[swap] = b, a
        for previous, current in zip(rules, rules[1:]):
            if current.priority <= previous.priority:
                current.priority = previous.priority + 1
        db.commit()
    return list_rules(db)
