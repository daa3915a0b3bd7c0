"""
Mapping rules router.

GET    /rules                 — list, in evaluation order
POST   /rules                 — create
PUT    /rules/{id}            — update
DELETE /rules/{id}            — delete
POST   /rules/{id}/enabled    — enable / disable
POST   /rules/{id}/move       — swap priority with a neighbour
GET    /rules/{id}/preview    — entries the rule would match (read-only)
POST   /rules/{id}/apply      — map pending entries with this rule only
POST   /rules/apply-pending   — run every enabled rule over pending entries
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.common import ErrorResponse
from app.schemas.entries import EntryOut
from app.schemas.rules import (
    RuleApplyOut,
    RuleEnabledRequest,
    RuleIn,
    RuleMoveRequest,
    RuleOut,
    RulePreviewOut,
)
from app.services import classification, rules
from app.services.rules import RuleInput

router = APIRouter(prefix="/rules", tags=["rules"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Unknown rule."}}
_WRITE_ERRORS = {
    404: {"model": ErrorResponse, "description": "Unknown rule, project or task."},
    409: {"model": ErrorResponse, "description": "Target project or task is inactive."},
    422: {"model": ErrorResponse, "description": "Validation error or invalid regex pattern."},
}


def _to_input(payload: RuleIn) -> RuleInput:
    return RuleInput(
        name=payload.name,
        match_field=payload.match_field,
        match_operator=payload.match_operator,
        match_value=payload.match_value,
        timelog_project_id=payload.timelog_project_id,
        timelog_task_id=payload.timelog_task_id,
        source_type=payload.source_type,
        priority=payload.priority,
    )


@router.get("", response_model=list[RuleOut], summary="List mapping rules")
def list_rules(db: Session = Depends(get_db)):
    return rules.list_rules(db)


@router.post(
    "",
    response_model=RuleOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a mapping rule",
    responses=_WRITE_ERRORS,
)
def create_rule(payload: RuleIn, db: Session = Depends(get_db)):
    return rules.create_rule(db, _to_input(payload))


# Registered before the /{rule_id} routes so "apply-pending" is not read as an id.
@router.post(
    "/apply-pending",
    response_model=RuleApplyOut,
    summary="Run all enabled rules over pending entries",
)
def apply_pending(db: Session = Depends(get_db)):
    return RuleApplyOut(mapped=classification.apply_all_pending(db))


@router.put("/{rule_id}", response_model=RuleOut, summary="Update a mapping rule", responses=_WRITE_ERRORS)
def update_rule(rule_id: int, payload: RuleIn, db: Session = Depends(get_db)):
    return rules.update_rule(db, rule_id, _to_input(payload))


@router.delete(
    "/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a mapping rule",
    responses=_NOT_FOUND,
)
def delete_rule(rule_id: int, db: Session = Depends(get_db)):
    rules.delete_rule(db, rule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{rule_id}/enabled",
    response_model=RuleOut,
    summary="Enable or disable a rule",
    responses=_NOT_FOUND,
)
def set_enabled(rule_id: int, payload: RuleEnabledRequest, db: Session = Depends(get_db)):
    return rules.set_enabled(db, rule_id, payload.is_enabled)


@router.post(
    "/{rule_id}/move",
    response_model=list[RuleOut],
    summary="Move a rule up or down the evaluation order",
    responses=_NOT_FOUND,
)
def move_rule(rule_id: int, payload: RuleMoveRequest, db: Session = Depends(get_db)):
    """Returns the full rule list in its new order."""
    return rules.move_priority(db, rule_id, -1 if payload.direction == "up" else 1)


@router.get(
    "/{rule_id}/preview",
    response_model=RulePreviewOut,
    summary="Preview which entries a rule would match",
    responses=_NOT_FOUND,
)
def preview_rule(rule_id: int, db: Session = Depends(get_db)):
    """
    Evaluates the rule's predicate against pending and failed entries.
    Nothing is written.
    """
    matched = classification.preview_rule(db, rule_id)
    return RulePreviewOut(
        rule_id=rule_id,
        match_count=len(matched),
        entries=[EntryOut.model_validate(e) for e in matched],
    )


@router.post(
    "/{rule_id}/apply",
    response_model=RuleApplyOut,
    summary="Apply a single rule to pending entries",
    responses=_NOT_FOUND,
)
def apply_rule(rule_id: int, db: Session = Depends(get_db)):
    return RuleApplyOut(mapped=classification.apply_rule(db, rule_id))
