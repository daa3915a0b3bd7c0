"""
Single-rule predicate evaluation.

Every operator compares case-insensitively. A field that resolves to no
value never matches, whatever the operator. Regex rules run under a hard
timeout; a timeout or a broken pattern counts as no match.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import regex

from app.core.config import settings
from app.models.rule import MappingRule, MatchOperator
from app.services.field_resolver import resolve_field

logger = logging.getLogger(__name__)


def _equals(value: str, expected: str, timeout: float) -> bool:
    return value.lower() == expected.lower()


def _contains(value: str, expected: str, timeout: float) -> bool:
    return expected.lower() in value.lower()


def _starts_with(value: str, expected: str, timeout: float) -> bool:
    return value.lower().startswith(expected.lower())


def _regex(value: str, pattern: str, timeout: float) -> bool:
    try:
        return regex.search(pattern, value, flags=regex.IGNORECASE, timeout=timeout) is not None
    except regex.error as exc:
        logger.debug("Invalid rule pattern %r: %s", pattern, exc)
        return False
    except TimeoutError:
        logger.warning("Rule pattern %r timed out after %ss", pattern, timeout)
        return False


_OPERATORS: dict[MatchOperator, Callable[[str, str, float], bool]] = {
    MatchOperator.equals: _equals,
    MatchOperator.contains: _contains,
    MatchOperator.starts_with: _starts_with,
    MatchOperator.regex: _regex,
}


def matches(rule: MappingRule, entry: Any, timeout: Optional[float] = None) -> bool:
    """True if `rule`'s predicate holds for `entry`.

    Ignores priority, the enabled flag and source scope; callers that need
    those go through the rule engine.
    """
    value = resolve_field(rule.match_field, entry)
    if value is None:
        return False
    operator = _OPERATORS[MatchOperator(rule.match_operator)]
    limit = settings.REGEX_TIMEOUT_SECONDS if timeout is None else timeout
    return operator(value, rule.match_value or "", limit)
