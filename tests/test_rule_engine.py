"""
Tests for rule predicates and priority-ordered evaluation.

Rules and entries are plain model instances; nothing touches the database.
"""
import json

import pytest

from app.models.entry import ImportedEntry
from app.models.import_source import ImportSource, SourceType
from app.models.rule import MappingRule, MatchOperator
from app.services import rule_engine, rule_matcher


def _rule(rule_id, match_field="project_key", operator=MatchOperator.equals, value="ACME",
          priority=0, enabled=True, source_type=None, project_id=1, task_id=None):
    return MappingRule(
        id=rule_id,
        name=f"rule-{rule_id}",
        match_field=match_field,
        match_operator=operator,
        match_value=value,
        priority=priority,
        is_enabled=enabled,
        source_type=source_type,
        timelog_project_id=project_id,
        timelog_task_id=task_id,
    )


def _entry(source_type=SourceType.tempo, **kwargs):
    values = dict(
        external_id="1",
        user_identifier="dev@example.com",
        duration_seconds=3600,
        project_key="ACME",
        description="Code review",
    )
    values.update(kwargs)
    entry = ImportedEntry(**values)
    entry.import_source = ImportSource(name="s", source_type=source_type)
    return entry


class TestOperators:
    @pytest.mark.parametrize("operator,value,expected", [
        (MatchOperator.equals, "acme", True),
        (MatchOperator.equals, "ACM", False),
        (MatchOperator.contains, "cm", True),
        (MatchOperator.starts_with, "ac", True),
        (MatchOperator.starts_with, "me", False),
        (MatchOperator.regex, "^A.M", True),
        (MatchOperator.regex, "^X", False),
    ])
    def test_case_insensitive_operators(self, operator, value, expected):
        rule = _rule(1, operator=operator, value=value)
        assert rule_matcher.matches(rule, _entry()) is expected

    def test_regex_is_a_search_not_a_full_match(self):
        rule = _rule(1, match_field="description", operator=MatchOperator.regex, value="rev")
        assert rule_matcher.matches(rule, _entry())

    def test_absent_field_never_matches(self):
        for operator in MatchOperator:
            rule = _rule(1, match_field="issue_key", operator=operator, value="")
            assert rule_matcher.matches(rule, _entry(issue_key=None)) is False

    def test_invalid_regex_is_no_match(self):
        rule = _rule(1, operator=MatchOperator.regex, value="([unclosed")
        assert rule_matcher.matches(rule, _entry()) is False

    def test_regex_timeout_is_no_match(self, monkeypatch):
        def timing_out(*args, **kwargs):
            assert kwargs["timeout"] == 0.5
            raise TimeoutError("regex timed out")

        monkeypatch.setattr(rule_matcher.regex, "search", timing_out)
        rule = _rule(1, operator=MatchOperator.regex, value="(a+)+$")
        assert rule_matcher.matches(rule, _entry(), timeout=0.5) is False

    def test_metadata_field(self):
        entry = _entry(metadata_json=json.dumps({"customfield_10200": "x"}))
        rule = _rule(1, match_field="metadata.CUSTOMFIELD_10200", value="x")
        assert rule_matcher.matches(rule, entry)


class TestEvaluate:
    def test_lowest_priority_wins(self):
        low = _rule(1, priority=20, project_id=20)
        high = _rule(2, priority=5, project_id=5)
        result = rule_engine.evaluate([low, high], _entry())
        assert result.is_matched
        assert result.rule is high
        assert result.project_id == 5

    def test_ties_keep_input_order(self):
        first = _rule(1, priority=10, project_id=1)
        second = _rule(2, priority=10, project_id=2)
        assert rule_engine.evaluate([first, second], _entry()).rule is first
        assert rule_engine.evaluate([second, first], _entry()).rule is second

    def test_disabled_rules_skipped(self):
        disabled = _rule(1, priority=1, enabled=False, project_id=1)
        enabled = _rule(2, priority=9, project_id=2)
        assert rule_engine.evaluate([disabled, enabled], _entry()).rule is enabled

    def test_source_scope(self):
        upload_only = _rule(1, priority=1, source_type=SourceType.upload, project_id=1)
        any_source = _rule(2, priority=9, project_id=2)
        tempo_entry = _entry(source_type=SourceType.tempo)
        upload_entry = _entry(source_type=SourceType.upload)
        assert rule_engine.evaluate([upload_only, any_source], tempo_entry).rule is any_source
        assert rule_engine.evaluate([upload_only, any_source], upload_entry).rule is upload_only

    def test_no_match(self):
        result = rule_engine.evaluate([_rule(1, value="OTHER")], _entry())
        assert result.is_matched is False
        assert result.rule is None
        assert result.project_id is None

    def test_carries_task(self):
        result = rule_engine.evaluate([_rule(1, project_id=3, task_id=7)], _entry())
        assert (result.project_id, result.task_id) == (3, 7)

    def test_evaluate_does_not_modify_entry(self):
        entry = _entry()
        rule_engine.evaluate([_rule(1)], entry)
        assert entry.timelog_project_id is None
        assert entry.mapping_rule_id is None
