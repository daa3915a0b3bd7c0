"""
Classification: apply mapping rules to pending entries.

Only entries in status `pending` are ever touched here; mapped,
submitted, failed and ignored entries are immune to re-classification.
"""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session, selectinload

from app.core.errors import RuleNotFoundError
from app.models.entry import EntryStatus, ImportedEntry
from app.models.rule import MappingRule
from app.services import rule_engine

logger = logging.getLogger(__name__)


def load_enabled_rules(db: Session) -> list[MappingRule]:
    return (
        db.query(MappingRule)
        .filter(MappingRule.is_enabled == True)  # noqa: E712
        .order_by(MappingRule.priority, MappingRule.id)
        .all()
    )


def get_rule(db: Session, rule_id: int) -> MappingRule:
    rule = db.get(MappingRule, rule_id)
    if rule is None:
        raise RuleNotFoundError(rule_id)
    return rule


def _entries_with_status(db: Session, *statuses: EntryStatus) -> list[ImportedEntry]:
    return (
        db.query(ImportedEntry)
        .options(selectinload(ImportedEntry.import_source))
        .filter(ImportedEntry.status.in_(statuses))
        .order_by(ImportedEntry.id)
        .all()
    )


def _assign(entry: ImportedEntry, rule: MappingRule) -> None:
    entry.status = EntryStatus.mapped
    entry.mapping_rule_id = rule.id
    entry.timelog_project_id = rule.timelog_project_id
    entry.timelog_task_id = rule.timelog_task_id


def apply_all_pending(db: Session) -> int:
    """Run the rule engine over every pending entry. Returns the number mapped."""
    rules = load_enabled_rules(db)
    if not rules:
        logger.info("No enabled mapping rules found, skipping classification")
        return 0

    entries = _entries_with_status(db, EntryStatus.pending)
    mapped = 0
    for entry in entries:
        result = rule_engine.evaluate(rules, entry)
        if not result.is_matched:
            continue
        _assign(entry, result.rule)
        mapped += 1

    if mapped:
        db.commit()
    logger.info("Mapped %d/%d pending entries", mapped, len(entries))
    return mapped


def preview_rule(db: Session, rule_id: int) -> list[ImportedEntry]:
    """Pending and failed entries the rule's predicate would match. Writes nothing.

    Ignores the enabled flag, priority and source scope so authors can try
    out a rule before switching it on.
    """
    rule = get_rule(db, rule_id)
    entries = _entries_with_status(db, EntryStatus.pending, EntryStatus.failed)
    return [entry for entry in entries if rule_engine.matches(rule, entry)]


def apply_rule(db: Session, rule_id: int) -> int:
    """Map every pending entry the single rule's predicate matches."""
    rule = get_rule(db, rule_id)
    entries = _entries_with_status(db, EntryStatus.pending)
    mapped = 0
    for entry in entries:
        if rule_engine.matches(rule, entry):
            _assign(entry, rule)
            mapped += 1
    if mapped:
        db.commit()
    logger.info("Rule %s mapped %d entries", rule_id, mapped)
    return mapped
